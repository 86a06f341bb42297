"""
MSVC compiler backend.

Drives cl.exe and link.exe directly, without a developer command prompt:
the standard include and library directories of MSVC and the Windows SDK
are passed explicitly on every command line.
"""

import subprocess
from pathlib import Path
from typing import List, Optional

from ..config.configuration import Architecture, Configuration, ProjectKind
from .compilation_executor import CompilationExecutor
from .compiler import ICompiler, Language, source_language
from .locators import MSVCLocator
from .platform_utils import msvc_host_string, msvc_target_string

SEPARATORS = "/\\"

# Flags whose attached value is a path
PATH_FLAGS = ("/Fo", "/I", "/OUT:", "/LIBPATH:")

# Flags that force the language of the following source argument
SOURCE_FLAGS = ("/Tc", "/Tp")


class CompilerMSVC(ICompiler):
    """
    Microsoft Visual C++ toolchain.

    Example usage:
        compiler = CompilerMSVC(build_dir=Path("build"))
        result = compiler.compile(Path("src/main.cpp"), Configuration())
        if result.success:
            print(f"Object: {result.object_file}")
    """

    name = "msvc"
    OBJECT_SUFFIX = ".obj"

    OUTPUT_SUFFIXES = {
        ProjectKind.APPLICATION: ".exe",
        ProjectKind.STATIC_LIBRARY: ".lib",
        ProjectKind.DYNAMIC_LIBRARY: ".dll",
    }

    LINK_MODES = {
        ProjectKind.APPLICATION: "/SUBSYSTEM:CONSOLE",
        ProjectKind.STATIC_LIBRARY: "/LIB",
        ProjectKind.DYNAMIC_LIBRARY: "/DLL",
    }

    MACHINE_FLAGS = {
        Architecture.X86: "/MACHINE:X86",
        Architecture.X86_64: "/MACHINE:x64",
    }

    def __init__(
        self,
        build_dir: Path,
        locator: Optional[MSVCLocator] = None,
        executor: Optional[CompilationExecutor] = None
    ):
        """
        Initialize MSVC compiler.

        Args:
            build_dir: Root directory for object files and link outputs
            locator: Toolchain discovery (defaults to probing this machine)
            executor: Process executor
        """
        super().__init__(build_dir, executor)
        self.locator = locator or MSVCLocator()

    def target_directory_name(self, configuration: Configuration) -> str:
        return msvc_target_string(configuration.architecture)

    def _tool_path(self, configuration: Configuration, tool: str) -> Path:
        msvc_dir = self.locator.require_msvc_dir()
        target = msvc_target_string(configuration.architecture)
        return msvc_dir / "bin" / msvc_host_string() / target / tool

    def _sdk_dir(self, configuration: Configuration, kind: str) -> Optional[Path]:
        """Versioned Windows SDK directory ("Include" or "Lib"), if found.

        A missing SDK is logged once per target by the locator.
        """
        version = self.locator.find_sdk_version(msvc_target_string(configuration.architecture))
        kits = self.locator.windows_kits_dir()
        if version is None or kits is None:
            return None
        return kits / kind / version

    def make_compiler_command(self, configuration: Configuration, file: Path) -> List[str]:
        """Build the cl.exe command for one source file.

        Layout:
            cl.exe /nologo /c /std:... [/D define]... [/D _HAS_EXCEPTIONS=0]
                   [/I standard]... [/I user]... /Fo<object> /Tc|/Tp <source>
        """
        language = source_language(file)
        cmd = [str(self._tool_path(configuration, "cl.exe")), "/nologo", "/c"]

        # Language standard
        if language == Language.C:
            cmd.append("/std:c11")
        else:
            cmd.append("/std:c++latest")

        # User-defined preprocessor defines
        for define in configuration.defines:
            cmd.extend(["/D", define])

        # No exceptions in C++
        if language == Language.CXX:
            cmd.extend(["/D", "_HAS_EXCEPTIONS=0"])

        # Standard include directories
        cmd.append(f"/I{self.locator.require_msvc_dir() / 'include'}")
        sdk_include_dir = self._sdk_dir(configuration, "Include")
        if sdk_include_dir is not None:
            for part in ("ucrt", "um", "shared"):
                cmd.append(f"/I{sdk_include_dir / part}")

        # User-defined include directories
        for include_dir in configuration.include_dirs:
            cmd.append(f"/I{include_dir}")

        cmd.append(f"/Fo{self.compiler_output_path(configuration, file)}")

        # Input file, with its language forced
        cmd.extend(["/Tc" if language == Language.C else "/Tp", str(file)])

        return cmd

    def make_linker_command(
        self,
        configuration: Configuration,
        object_files: List[Path],
        output_name: str,
        kind: ProjectKind
    ) -> List[str]:
        """Build the link.exe command.

        Layout:
            link.exe /SUBSYSTEM:CONSOLE|/LIB|/DLL /OUT:<output> [/LIBPATH:dir]...
                     [library]... [object]... /NOLOGO [/MACHINE:...]
        """
        target = msvc_target_string(configuration.architecture)
        output = self.linker_output_path(configuration, output_name, kind)

        cmd = [str(self._tool_path(configuration, "link.exe"))]
        cmd.append(self.LINK_MODES[kind])
        cmd.append(f"/OUT:{output}")

        # Standard library paths
        cmd.append(f"/LIBPATH:{self.locator.require_msvc_dir() / 'lib' / target}")
        sdk_lib_dir = self._sdk_dir(configuration, "Lib")
        if sdk_lib_dir is not None:
            cmd.append(f"/LIBPATH:{sdk_lib_dir / 'um' / target}")
            cmd.append(f"/LIBPATH:{sdk_lib_dir / 'ucrt' / target}")

        # User-defined library paths; link.exe rejects trailing separators
        for library_dir in configuration.library_dirs:
            library_dir = str(library_dir).rstrip(SEPARATORS) or str(library_dir)
            cmd.append(f"/LIBPATH:{library_dir}")

        # Libraries, assumed static when the extension is missing
        for library in configuration.libraries:
            cmd.append(library if Path(library).suffix else f"{library}.lib")

        # Object files
        cmd.extend(str(object_file) for object_file in object_files)

        cmd.append("/NOLOGO")

        if configuration.architecture is not None:
            cmd.append(self.MACHINE_FLAGS[configuration.architecture])

        return cmd

    def linker_output_path(
        self,
        configuration: Configuration,
        output_name: str,
        kind: ProjectKind
    ) -> Path:
        return (
            self.build_dir
            / self.target_directory_name(configuration)
            / f"{output_name}{self.OUTPUT_SUFFIXES[kind]}"
        )

    def format_command(self, cmd: List[str]) -> str:
        """Render a command the way it is typed at a Windows prompt.

        Path values of /Fo, /I, /OUT: and /LIBPATH: and the source after
        /Tc or /Tp are always quoted, e.g. /Fo"out.obj" /Tp "main.cpp".
        """
        parts = []
        quote_next = False
        for arg in cmd:
            if quote_next:
                parts.append(f'"{arg}"')
                quote_next = False
            elif arg in SOURCE_FLAGS:
                parts.append(arg)
                quote_next = True
            else:
                prefix = next((flag for flag in PATH_FLAGS if arg.startswith(flag)), None)
                if prefix is not None:
                    parts.append(f'{prefix}"{arg[len(prefix):]}"')
                else:
                    parts.append(subprocess.list2cmdline([arg]))
        return " ".join(parts)
