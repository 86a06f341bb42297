"""Host and target naming for toolchains.

Each toolchain spells architectures its own way: MSVC uses Hostx64/x64
directory names, GNU toolchains use target triples. These helpers map a
Configuration architecture to those spellings.
"""

import platform
from typing import Optional

from ..config.configuration import Architecture, host_architecture


def detect_system() -> str:
    """Get the normalized host operating system name.

    Returns:
        'windows', 'linux', 'darwin', or the lowercased platform.system()
    """
    return platform.system().lower()


def msvc_host_string(host: Optional[Architecture] = None) -> str:
    """MSVC bin directory name of the host architecture (Hostx86/Hostx64)."""
    host = host or host_architecture()
    if host == Architecture.X86:
        return "Hostx86"
    return "Hostx64"


def msvc_target_string(target: Optional[Architecture]) -> str:
    """MSVC directory name of a target architecture (x86/x64).

    A missing target means the host architecture.
    """
    target = target or host_architecture()
    if target == Architecture.X86:
        return "x86"
    return "x64"


def target_triple(target: Optional[Architecture], system: Optional[str] = None) -> str:
    """GNU-style target triple for an architecture on a system.

    Examples:
        >>> target_triple(Architecture.X86_64, "linux")
        'x86_64-linux-gnu'
        >>> target_triple(Architecture.X86, "windows")
        'i686-pc-windows-msvc'
    """
    target = target or host_architecture()
    system = system or detect_system()
    cpu = "i686" if target == Architecture.X86 else "x86_64"

    if system == "windows":
        return f"{cpu}-pc-windows-msvc"
    if system == "darwin":
        return f"{cpu}-apple-darwin"
    return f"{cpu}-linux-gnu"
