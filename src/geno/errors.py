"""Error taxonomy for the Geno build core.

Every module-specific exception derives from one of four categories so callers
can decide how to react without knowing which component raised it:
- ConfigurationError: missing locations, conflicting build matrix columns
- ToolchainDiscoveryError: compiler install directory or SDK not found
- ProcessInvocationError: toolchain spawn failure or nonzero exit
- PersistenceError: document open/parse failure, unrecognized enum value
"""


class GenoError(Exception):
    """Base class for all Geno errors."""
    pass


class ConfigurationError(GenoError):
    """Raised when build configuration data is missing or inconsistent."""
    pass


class ToolchainDiscoveryError(GenoError):
    """Raised when a toolchain installation cannot be located."""
    pass


class ProcessInvocationError(GenoError):
    """Raised when a toolchain process cannot be spawned or fails."""
    pass


class PersistenceError(GenoError):
    """Raised when a workspace or project document cannot be read or written."""
    pass
