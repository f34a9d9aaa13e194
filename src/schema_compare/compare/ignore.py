"""Ignore rules: accepted differences that do not fail a comparison.

A pattern matches a diagnostic field by field. ``None`` is a wildcard, and
so is an attribute of ``NotSet``. Names compare case-insensitively. A
``Table`` pattern also covers ``View`` entries.

Matching is evaluated per entry. A pattern that matches a table-level entry
says nothing about the column entries beneath it.
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from schema_compare.compare.log import CompareAttribute, CompareState, CompareType


class IgnorePattern(BaseModel):
    """A user-declared acceptance rule.

    Example:
        >>> rule = IgnorePattern(type=CompareType.TABLE, state=CompareState.EXTRA_IN_DATABASE)
        >>> rule.matches(CompareType.TABLE, CompareState.EXTRA_IN_DATABASE,
        ...              CompareAttribute.NOT_SET, "Audit")
        True
    """

    model_config = ConfigDict(frozen=True)

    type: CompareType
    state: CompareState
    attribute: CompareAttribute | None = None
    name: str | None = None

    def matches(
        self,
        compare_type: CompareType,
        state: CompareState,
        attribute: CompareAttribute,
        name: str | None,
    ) -> bool:
        if not _type_matches(self.type, compare_type) or self.state != state:
            return False
        if self.attribute not in (None, CompareAttribute.NOT_SET) and self.attribute != attribute:
            return False
        if self.name is not None and (name is None or self.name.lower() != name.lower()):
            return False
        return True


def is_ignored(
    compare_type: CompareType,
    state: CompareState,
    attribute: CompareAttribute,
    name: str | None,
    patterns: Iterable[IgnorePattern] | None,
) -> bool:
    """True if any pattern matches the candidate diagnostic."""
    if not patterns:
        return False
    return any(p.matches(compare_type, state, attribute, name) for p in patterns)


def _type_matches(pattern_type: CompareType, compare_type: CompareType) -> bool:
    if pattern_type == CompareType.TABLE:
        return compare_type in (CompareType.TABLE, CompareType.VIEW)
    return pattern_type == compare_type
