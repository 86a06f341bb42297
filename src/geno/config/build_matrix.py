"""
Build matrix: named, orthogonal build-variant axes.

Each column (e.g. "Platform", "Configuration") lists option strings
("Windows"/"Linux", "Debug"/"Release"). An option may carry a Configuration
overlay describing what choosing it changes. Picking one option per column
resolves the matrix into a concrete Configuration; the cross product of all
columns enumerates every build variant.

Columns must stay orthogonal: two columns whose overlays assign the same
Configuration field would make resolution depend on column order, so such
matrices are flagged when they are built or loaded and refuse to resolve.
"""

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from ..errors import ConfigurationError
from ..gcl import Object
from .configuration import Architecture, Configuration


class BuildMatrixError(ConfigurationError):
    """Raised for invalid build matrix definitions or selections."""
    pass


@dataclass
class Column:
    """One build-variant axis.

    Attributes:
        name: Column name, unique within the matrix
        options: Distinct option strings in display/enumeration order
        configurations: Optional Configuration overlay per option
    """

    name: str
    options: List[str] = field(default_factory=list)
    configurations: Dict[str, Configuration] = field(default_factory=dict)

    def assigned_fields(self) -> set:
        """Union of Configuration fields assigned by any option."""
        assigned: set = set()
        for configuration in self.configurations.values():
            assigned |= configuration.assigned_fields()
        return assigned


class BuildMatrix:
    """Ordered set of build matrix columns.

    Example usage:
        matrix = BuildMatrix()
        matrix.new_column("Architecture")
        matrix.add_option("Architecture", "x86", Configuration(architecture=Architecture.X86))
        matrix.add_option("Architecture", "x64", Configuration(architecture=Architecture.X86_64))
        configuration = matrix.resolve({"Architecture": "x64"})
    """

    def __init__(self):
        self.columns: List[Column] = []
        self._conflicts: List[Tuple[str, str, str]] = []

    def column(self, name: str) -> Optional[Column]:
        """Find a column by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def new_column(self, name: str) -> Column:
        """Append an empty column.

        Raises:
            BuildMatrixError: If a column with this name already exists
        """
        if self.column(name) is not None:
            raise BuildMatrixError(f"Build matrix already has a column named '{name}'")

        column = Column(name)
        self.columns.append(column)
        return column

    def add_option(
        self,
        column_name: str,
        option: str,
        configuration: Optional[Configuration] = None
    ) -> None:
        """Append an option to a column.

        Args:
            column_name: Name of an existing column
            option: Option string, distinct within the column
            configuration: Overlay applied when the option is selected

        Raises:
            BuildMatrixError: If the column is unknown or the option exists
        """
        column = self.column(column_name)
        if column is None:
            raise BuildMatrixError(f"Unknown build matrix column '{column_name}'")
        if option in column.options:
            raise BuildMatrixError(
                f"Column '{column_name}' already has an option named '{option}'"
            )

        column.options.append(option)
        if configuration is not None:
            column.configurations[option] = configuration

        self.validate()

    def validate(self) -> List[Tuple[str, str, str]]:
        """Check that no two columns assign the same Configuration field.

        Returns:
            List of (first column, second column, field) conflicts
        """
        conflicts = []
        for first, second in itertools.combinations(self.columns, 2):
            for field_name in sorted(first.assigned_fields() & second.assigned_fields()):
                conflicts.append((first.name, second.name, field_name))

        for first_name, second_name, field_name in conflicts:
            logging.warning(
                f"Build matrix columns '{first_name}' and '{second_name}' "
                f"both set '{field_name}'"
            )

        self._conflicts = conflicts
        return conflicts

    @property
    def conflicts(self) -> List[Tuple[str, str, str]]:
        return list(self._conflicts)

    def resolve(
        self,
        selection: Mapping[str, str],
        base: Optional[Configuration] = None
    ) -> Configuration:
        """Resolve one option per column into a Configuration.

        Args:
            selection: Column name -> chosen option
            base: Configuration the overlays are applied to

        Returns:
            Resolved Configuration

        Raises:
            BuildMatrixError: On conflicting columns, a missing column choice,
                or an unknown column or option
        """
        if self._conflicts:
            first, second, field_name = self._conflicts[0]
            raise BuildMatrixError(
                f"Conflicting build matrix columns: '{first}' and '{second}' "
                f"both set '{field_name}'"
            )

        for name in selection:
            if self.column(name) is None:
                raise BuildMatrixError(f"Unknown build matrix column '{name}'")

        configuration = base if base is not None else Configuration()

        for column in self.columns:
            if column.name not in selection:
                raise BuildMatrixError(f"No option selected for column '{column.name}'")

            option = selection[column.name]
            if option not in column.options:
                raise BuildMatrixError(
                    f"Column '{column.name}' has no option '{option}'. "
                    f"Available: {', '.join(column.options) or 'none'}"
                )

            overlay = column.configurations.get(option)
            if overlay is not None:
                configuration = configuration.merged(overlay)

        return configuration

    def combinations(self) -> Iterator[Dict[str, str]]:
        """Enumerate every selection, first column varying slowest."""
        if not self.columns:
            return
        names = [column.name for column in self.columns]
        for values in itertools.product(*(column.options for column in self.columns)):
            yield dict(zip(names, values))

    def serialize(self) -> Object:
        """Build the "Matrix" table object for a workspace document."""
        matrix = Object.table("Matrix")
        for column in self.columns:
            column_object = matrix.add_child(Object.table(column.name))
            for option in column.options:
                overlay = column.configurations.get(option)
                if overlay is None:
                    column_object.add_child(Object(option))
                else:
                    column_object.add_child(_configuration_to_object(option, overlay))
        return matrix

    def deserialize(self, matrix: Object) -> None:
        """Replace the columns with those of a "Matrix" table object.

        Raises:
            BuildMatrixError: On duplicate columns or options
            GCLError: If the object layout is not a matrix
        """
        self.columns = []
        self._conflicts = []

        for column_object in matrix.children:
            column = self.new_column(column_object.name)
            for option_object in column_object.children:
                if option_object.is_table:
                    configuration = _configuration_from_object(option_object)
                    self._append_option(column, option_object.name, configuration)
                else:
                    self._append_option(column, option_object.string, None)

        self.validate()

    def _append_option(
        self,
        column: Column,
        option: str,
        configuration: Optional[Configuration]
    ) -> None:
        if option in column.options:
            raise BuildMatrixError(
                f"Column '{column.name}' already has an option named '{option}'"
            )
        column.options.append(option)
        if configuration is not None:
            column.configurations[option] = configuration


_LIST_KEYS = (
    ("Defines", "defines"),
    ("IncludeDirs", "include_dirs"),
    ("LibraryDirs", "library_dirs"),
    ("Libraries", "libraries"),
)

_PATH_FIELDS = {"include_dirs", "library_dirs"}


def _configuration_to_object(name: str, configuration: Configuration) -> Object:
    option = Object.table(name)

    if configuration.architecture is not None:
        option.add_child(Object("Architecture", configuration.architecture.value))

    for key, attribute in _LIST_KEYS:
        values = getattr(configuration, attribute)
        if values:
            option.add_child(Object.table(key, [Object(str(value)) for value in values]))

    return option


def _configuration_from_object(option: Object) -> Configuration:
    configuration = Configuration()
    keys = dict(_LIST_KEYS)

    for child in option.children:
        if child.name == "Architecture":
            configuration.architecture = Architecture.from_string(child.string)
        elif child.name in keys:
            attribute = keys[child.name]
            values = child.strings()
            if attribute in _PATH_FIELDS:
                setattr(configuration, attribute, [Path(value) for value in values])
            else:
                setattr(configuration, attribute, values)
        else:
            logging.debug(f"Ignoring unknown build matrix option key '{child.name}'")

    return configuration


