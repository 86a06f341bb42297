"""
Compiler factory for the Geno build system.

Centralizes the choice of toolchain backend so workspaces and the CLI never
construct backends directly. A backend is picked by name when one is
configured, otherwise by the host operating system.
"""

from pathlib import Path
from typing import Dict, Optional, Type

from ..errors import ConfigurationError
from .compiler import ICompiler
from .compiler_gcc import CompilerClang, CompilerGCC
from .compiler_msvc import CompilerMSVC
from .platform_utils import detect_system

COMPILERS: Dict[str, Type[ICompiler]] = {
    CompilerMSVC.name: CompilerMSVC,
    CompilerGCC.name: CompilerGCC,
    CompilerClang.name: CompilerClang,
}

HOST_DEFAULTS = {
    "windows": CompilerMSVC.name,
    "darwin": CompilerClang.name,
}


def default_toolchain(system: Optional[str] = None) -> str:
    """Name of the toolchain used on a system when none is configured."""
    system = system or detect_system()
    return HOST_DEFAULTS.get(system, CompilerGCC.name)


def create_compiler(
    build_dir: Path,
    toolchain: Optional[str] = None,
    system: Optional[str] = None
) -> ICompiler:
    """
    Create a compiler backend.

    Args:
        build_dir: Root directory for object files and link outputs
        toolchain: Backend name ('msvc', 'gcc', 'clang'), None for host default
        system: Host system name used to pick the default

    Returns:
        Compiler instance

    Raises:
        ConfigurationError: If the toolchain name is unknown
    """
    name = (toolchain or default_toolchain(system)).lower()

    compiler_class = COMPILERS.get(name)
    if compiler_class is None:
        available = ", ".join(sorted(COMPILERS))
        raise ConfigurationError(f"Unknown toolchain '{name}'. Available: {available}")

    return compiler_class(build_dir)
