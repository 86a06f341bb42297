"""
Tool settings for the geno command line.

Settings come from three layers, later ones winning:
1. An optional geno.ini next to the workspace document:

       [geno]
       toolchain = clang
       jobs = 8
       build_dir = out

2. Environment variables GENO_TOOLCHAIN, GENO_JOBS and GENO_BUILD_DIR
3. Explicit command-line flags (applied by the CLI via override())
"""

import configparser
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from ..errors import ConfigurationError


class SettingsError(ConfigurationError):
    """Raised when geno.ini or a settings environment variable is invalid."""
    pass


SETTINGS_FILE = "geno.ini"
SECTION = "geno"


@dataclass
class GenoSettings:
    """Resolved tool settings.

    Attributes:
        toolchain: Compiler backend name (msvc, gcc, clang) or None for host default
        jobs: Maximum concurrent compiles per project, None for CPU count
        build_dir: Directory for object files and link outputs
    """

    toolchain: Optional[str] = None
    jobs: Optional[int] = None
    build_dir: Optional[Path] = None

    @classmethod
    def load(
        cls,
        workspace_dir: Path,
        environ: Optional[Mapping[str, str]] = None
    ) -> "GenoSettings":
        """Load settings for a workspace directory.

        Args:
            workspace_dir: Directory holding the workspace document
            environ: Environment mapping (defaults to os.environ)

        Returns:
            GenoSettings with file and environment layers applied

        Raises:
            SettingsError: If geno.ini cannot be parsed or a value is invalid
        """
        environ = os.environ if environ is None else environ
        settings = cls()

        ini_path = workspace_dir / SETTINGS_FILE
        if ini_path.exists():
            parser = configparser.ConfigParser()
            try:
                parser.read(ini_path, encoding="utf-8")
            except configparser.Error as e:
                raise SettingsError(f"Failed to parse {ini_path}: {e}") from e

            if parser.has_section(SECTION):
                section = parser[SECTION]
                settings = settings.override(
                    toolchain=section.get("toolchain"),
                    jobs=_parse_jobs(section.get("jobs"), str(ini_path)),
                    build_dir=_parse_dir(section.get("build_dir"), workspace_dir),
                )

        settings = settings.override(
            toolchain=environ.get("GENO_TOOLCHAIN"),
            jobs=_parse_jobs(environ.get("GENO_JOBS"), "GENO_JOBS"),
            build_dir=_parse_dir(environ.get("GENO_BUILD_DIR"), workspace_dir),
        )

        return settings

    def override(
        self,
        toolchain: Optional[str] = None,
        jobs: Optional[int] = None,
        build_dir: Optional[Path] = None
    ) -> "GenoSettings":
        """Return a copy with every non-None argument applied."""
        return replace(
            self,
            toolchain=toolchain.strip().lower() if toolchain else self.toolchain,
            jobs=jobs if jobs is not None else self.jobs,
            build_dir=build_dir if build_dir is not None else self.build_dir,
        )


def _parse_jobs(value: Optional[str], source: str) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        jobs = int(value)
    except ValueError:
        raise SettingsError(f"{source}: jobs must be an integer, got '{value}'")
    if jobs < 1:
        raise SettingsError(f"{source}: jobs must be at least 1, got {jobs}")
    return jobs


def _parse_dir(value: Optional[str], workspace_dir: Path) -> Optional[Path]:
    if value is None or not value.strip():
        return None
    path = Path(value.strip())
    if not path.is_absolute():
        path = workspace_dir / path
    return path
