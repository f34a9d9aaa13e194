"""Comparison log: the diagnostic record produced by a comparison run.

A run yields a tree of ``CompareLog`` entries. Container nodes (a logical
schema, an entity, a property, the database extras) hold children and carry
a rolled-up state; diagnostics are the leaves. Trees are built bottom-up and
are immutable once built.

Usage:
    from schema_compare.compare.log import render_errors

    print(render_errors(comparer.logs))
"""

import re
from collections.abc import Iterable, Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict


class CompareType(str, Enum):
    """Kind of object a log entry is about."""

    MODEL = "Model"
    DATABASE = "Database"
    ENTITY = "Entity"
    PROPERTY = "Property"
    TABLE = "Table"
    VIEW = "View"
    COLUMN = "Column"
    PRIMARY_KEY = "PrimaryKey"
    FOREIGN_KEY = "ForeignKey"
    INDEX = "Index"


class CompareState(str, Enum):
    """Outcome of one check."""

    OK = "Ok"
    NOT_IN_DATABASE = "NotInDatabase"
    EXTRA_IN_DATABASE = "ExtraInDatabase"
    DIFFERENT_IN_DATABASE = "DifferentInDatabase"

    @property
    def verb(self) -> str:
        return _STATE_VERBS[self]


class CompareAttribute(str, Enum):
    """Which facet of an object was checked."""

    NOT_SET = "NotSet"
    TABLE_NAME = "TableName"
    COLUMN_NAME = "ColumnName"
    COLUMN_TYPE = "ColumnType"
    NULLABILITY = "Nullability"
    MAX_LENGTH = "MaxLength"
    DEFAULT_VALUE = "DefaultValue"
    COMPUTED_COLUMN = "ComputedColumn"
    KEY_COLUMNS = "KeyColumns"
    CONSTRAINT_NAME = "ConstraintName"
    PRINCIPAL_TABLE = "PrincipalTable"
    PRINCIPAL_COLUMNS = "PrincipalColumns"
    DELETE_BEHAVIOR = "DeleteBehavior"
    INDEX_COLUMNS = "IndexColumns"
    UNIQUE = "Unique"

    @property
    def display_name(self) -> str:
        """``ColumnName`` -> ``column name``."""
        return re.sub(r"(?<!^)(?=[A-Z])", " ", self.value).lower()


_STATE_VERBS = {
    CompareState.OK: "OK",
    CompareState.NOT_IN_DATABASE: "NOT IN DATABASE",
    CompareState.EXTRA_IN_DATABASE: "EXTRA IN DATABASE",
    CompareState.DIFFERENT_IN_DATABASE: "DIFFERENT",
}


class CompareLog(BaseModel):
    """One node of the comparison log tree.

    Example:
        >>> log = CompareLog(type=CompareType.ENTITY, state=CompareState.OK, name="Test")
        >>> str(log)
        "OK: Entity 'Test'"
    """

    model_config = ConfigDict(frozen=True)

    type: CompareType
    state: CompareState
    name: str
    attribute: CompareAttribute = CompareAttribute.NOT_SET
    expected: str | None = None
    found: str | None = None
    ignored: bool = False
    deferred: bool = False
    sub_logs: tuple["CompareLog", ...] = ()

    @classmethod
    def container(
        cls,
        compare_type: CompareType,
        name: str,
        sub_logs: Iterable["CompareLog"],
    ) -> "CompareLog":
        """Build a container whose state rolls up its children.

        The container is Ok only if every child is Ok or suppressed.
        """
        children = tuple(sub_logs)
        clean = all(child.state == CompareState.OK or child.ignored for child in children)
        return cls(
            type=compare_type,
            state=CompareState.OK if clean else CompareState.DIFFERENT_IN_DATABASE,
            name=name,
            sub_logs=children,
        )

    @property
    def is_error(self) -> bool:
        """True for a leaf diagnostic that counts against the verdict."""
        return (
            not self.sub_logs
            and self.state != CompareState.OK
            and not self.ignored
            and not self.deferred
        )

    def format(self, full_name: str | None = None) -> str:
        text = f"{self.state.verb}: {self.type.value} '{full_name or self.name}'"
        if self.attribute != CompareAttribute.NOT_SET:
            text += f", {self.attribute.display_name}"
        if self.state == CompareState.OK:
            return text
        values = []
        if self.expected is not None:
            values.append(f"Expected = {self.expected}")
        if self.found is not None:
            values.append(f"found = {self.found}" if values else f"Found = {self.found}")
        if values:
            text += ". " + ", ".join(values)
        return text

    def __str__(self) -> str:
        return self.format()


def walk(logs: Iterable[CompareLog]) -> Iterator[CompareLog]:
    """Depth-first, pre-order traversal of every node."""
    for log in logs:
        yield log
        yield from walk(log.sub_logs)


def list_all_errors(
    logs: Iterable[CompareLog], parent_names: tuple[str, ...] = ()
) -> list[str]:
    """Render every counted diagnostic, in the order it was checked.

    Suppressed and deferred entries stay in the tree but are not listed.
    Each name is shown as the path from the root, joined with ``->``.
    """
    result: list[str] = []
    for log in logs:
        names = (*parent_names, log.name)
        if log.is_error:
            result.append(log.format("->".join(names)))
        if log.sub_logs:
            result.extend(list_all_errors(log.sub_logs, names))
    return result


def render_errors(logs: Iterable[CompareLog]) -> str:
    """All counted diagnostics, one per line."""
    return "\n".join(list_all_errors(logs))


def has_errors(logs: Iterable[CompareLog]) -> bool:
    """True if any node would appear in ``list_all_errors``."""
    return any(log.is_error for log in walk(logs))
