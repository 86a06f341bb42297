"""Toolchain discovery.

Locators find where a toolchain is installed. Everything they touch - the
environment, the process runner used for installer queries, the filesystem
root - is injectable, so tests can describe a fake machine with a dict and a
tmp_path instead of needing a real Visual Studio or GCC install.

Discovery results are cached per locator instance. The first lookup fills
the cache under a lock; afterwards compile threads only read it.
"""

import logging
import os
import shlex
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .compiler import ToolchainNotFoundError

DISCOVERY_TIMEOUT = 30.0

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


def _version_key(name: str) -> Tuple[int, ...]:
    """Sort key for dotted version directory names ("14.38.33130")."""
    parts = []
    for part in name.split("."):
        if not part.isdigit():
            return ()
        parts.append(int(part))
    return tuple(parts)


def _newest_first(directories: List[Path]) -> List[Path]:
    return sorted(directories, key=lambda d: (_version_key(d.name), d.name), reverse=True)


class _DiscoveryCache:
    """Thread-safe memo of discovery results."""

    def __init__(self):
        self._lock = threading.Lock()
        self._values: Dict[object, object] = {}

    def get(self, key: object, compute: Callable[[], object]) -> object:
        with self._lock:
            if key not in self._values:
                self._values[key] = compute()
            return self._values[key]

    def clear(self) -> None:
        with self._lock:
            self._values.clear()


class MSVCLocator:
    """Finds Visual Studio's MSVC tools and the Windows 10 SDK.

    Discovery order for the MSVC tools directory:
    1. VCToolsInstallDir environment variable (set by a developer prompt)
    2. vswhere.exe -latest -property installationPath, then the newest
       version under VC/Tools/MSVC

    The SDK version is the newest Windows Kits/10/Lib/<version> directory
    that has um/<target>/kernel32.lib for the requested target.
    """

    VSWHERE = Path("Microsoft Visual Studio") / "Installer" / "vswhere.exe"
    WINDOWS_KITS = Path("Windows Kits") / "10"
    MARKER_LIBRARY = "kernel32.lib"

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        runner: Optional[Runner] = None,
        timeout: float = DISCOVERY_TIMEOUT
    ):
        """Initialize locator.

        Args:
            environ: Environment mapping (defaults to os.environ)
            runner: subprocess.run compatible callable for vswhere
            timeout: Seconds vswhere may run
        """
        self.environ = os.environ if environ is None else environ
        self.runner = runner or subprocess.run
        self.timeout = timeout
        self._cache = _DiscoveryCache()

    def program_files_x86(self) -> Optional[Path]:
        """Location of "Program Files (x86)", or None outside Windows."""
        value = self.environ.get("ProgramFiles(x86)")
        return Path(value) if value else None

    def windows_kits_dir(self) -> Optional[Path]:
        program_files = self.program_files_x86()
        if program_files is None:
            return None
        return program_files / self.WINDOWS_KITS

    def find_msvc_dir(self) -> Optional[Path]:
        """Find the MSVC tools directory (the one containing bin/ and lib/)."""
        return self._cache.get("msvc_dir", self._discover_msvc_dir)

    def require_msvc_dir(self) -> Path:
        """Like find_msvc_dir(), but a missing install is an error.

        Raises:
            ToolchainNotFoundError: If MSVC is not installed
        """
        msvc_dir = self.find_msvc_dir()
        if msvc_dir is None:
            raise ToolchainNotFoundError(
                "MSVC not found. Install Visual Studio with the C++ workload "
                "or run from a developer command prompt."
            )
        return msvc_dir

    def find_sdk_version(self, target: str) -> Optional[str]:
        """Find the newest Windows SDK version that supports a target.

        Args:
            target: MSVC target directory name (x86 or x64)

        Returns:
            Version directory name (e.g. "10.0.22621.0") or None
        """
        return self._cache.get(("sdk_version", target), lambda: self._discover_sdk_version(target))

    def _discover_msvc_dir(self) -> Optional[Path]:
        tools_dir = self.environ.get("VCToolsInstallDir")
        if tools_dir and Path(tools_dir).is_dir():
            logging.debug(f"Using MSVC from VCToolsInstallDir: {tools_dir}")
            return Path(tools_dir)

        program_files = self.program_files_x86()
        if program_files is None:
            return None

        vswhere = program_files / self.VSWHERE
        if not vswhere.exists():
            logging.debug(f"vswhere not found at {vswhere}")
            return None

        try:
            result = self.runner(
                [str(vswhere), "-latest", "-property", "installationPath"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logging.warning(f"Failed to query Visual Studio installation: {e}")
            return None

        if result.returncode != 0:
            logging.warning(f"vswhere exited with code {result.returncode}")
            return None

        installation = Path(result.stdout.strip())
        msvc_root = installation / "VC" / "Tools" / "MSVC"
        if not result.stdout.strip() or not msvc_root.is_dir():
            return None

        versions = _newest_first([d for d in msvc_root.iterdir() if d.is_dir()])
        if not versions:
            return None

        logging.debug(f"Using MSVC {versions[0].name} from {installation}")
        return versions[0]

    def _discover_sdk_version(self, target: str) -> Optional[str]:
        version = self._newest_sdk_version(target)
        if version is None:
            logging.warning(
                f"Windows SDK for target {target} not found; "
                "building without SDK include and library paths"
            )
        return version

    def _newest_sdk_version(self, target: str) -> Optional[str]:
        kits = self.windows_kits_dir()
        if kits is None:
            return None

        lib_root = kits / "Lib"
        if not lib_root.is_dir():
            return None

        for version_dir in _newest_first([d for d in lib_root.iterdir() if d.is_dir()]):
            if (version_dir / "um" / target / self.MARKER_LIBRARY).exists():
                return version_dir.name

        return None


class GNULocator:
    """Finds GCC-compatible drivers and system library directories.

    Tools are looked up through their environment override (CC, CXX, AR)
    first, then by name on PATH.
    """

    ENVIRONMENT_OVERRIDES = {"cc": "CC", "cxx": "CXX", "ar": "AR"}

    def __init__(
        self,
        c_driver: str = "gcc",
        cxx_driver: str = "g++",
        archiver: str = "ar",
        environ: Optional[Mapping[str, str]] = None,
        which: Optional[Callable[[str], Optional[str]]] = None,
        sysroot: Path = Path("/")
    ):
        """Initialize locator.

        Args:
            c_driver: Default C compiler driver name
            cxx_driver: Default C++ compiler driver name
            archiver: Default static archiver name
            environ: Environment mapping (defaults to os.environ)
            which: shutil.which compatible lookup
            sysroot: Filesystem root searched for multiarch library directories
        """
        self.defaults = {"cc": c_driver, "cxx": cxx_driver, "ar": archiver}
        self.environ = os.environ if environ is None else environ
        self.which = which or shutil.which
        self.sysroot = Path(sysroot)
        self._cache = _DiscoveryCache()

    def find_tool(self, role: str) -> Optional[Path]:
        """Find the executable for a role ('cc', 'cxx' or 'ar')."""
        return self._cache.get(("tool", role), lambda: self._discover_tool(role))

    def require_tool(self, role: str) -> Path:
        """Like find_tool(), but a missing tool is an error.

        Raises:
            ToolchainNotFoundError: If the tool cannot be found
        """
        tool = self.find_tool(role)
        if tool is None:
            raise ToolchainNotFoundError(
                f"{self.defaults[role]} not found. Install it or set "
                f"{self.ENVIRONMENT_OVERRIDES[role]}."
            )
        return tool

    def find_library_dirs(self, triple: str) -> List[Path]:
        """System library directories for a target triple that exist."""
        return self._cache.get(("libdirs", triple), lambda: self._discover_library_dirs(triple))

    def _discover_tool(self, role: str) -> Optional[Path]:
        name = self.defaults[role]

        override = self.environ.get(self.ENVIRONMENT_OVERRIDES[role], "").strip()
        if override:
            try:
                name = shlex.split(override)[0]
            except ValueError:
                logging.warning(
                    f"Ignoring malformed {self.ENVIRONMENT_OVERRIDES[role]}={override!r}"
                )

        candidate = Path(name)
        if candidate.is_absolute():
            return candidate if candidate.exists() else None

        found = self.which(name)
        return Path(found) if found else None

    def _discover_library_dirs(self, triple: str) -> List[Path]:
        candidates = [
            self.sysroot / "usr" / "lib" / triple,
            self.sysroot / "lib" / triple,
        ]
        return [d for d in candidates if d.is_dir()]
