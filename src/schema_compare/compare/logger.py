"""Attribute logger bound to one schema object.

A ``CompareLogger`` records the outcome of each attribute checked on a
single table, column, key or index. It appends to the list it was handed,
consults the ignore rules, and calls ``set_error`` for every counted error.
"""

from collections.abc import Callable, Sequence

from schema_compare.compare.ignore import IgnorePattern, is_ignored
from schema_compare.compare.log import (
    CompareAttribute,
    CompareLog,
    CompareState,
    CompareType,
)


class CompareLogger:
    """Records Ok / missing / extra / different outcomes for one object.

    Args:
        compare_type: Kind of object this logger describes.
        name: Name of the object.
        logs: List the entries are appended to.
        ignore_rules: Patterns of accepted differences (may be ``None``).
        set_error: Called once per unsuppressed, non-deferred error.

    Example:
        >>> logs = []
        >>> logger = CompareLogger(CompareType.ENTITY, "Test", logs, None, lambda: None)
        >>> logger.mark_as_ok("MyValue")
        >>> str(logs[0])
        "OK: Entity 'Test'"
    """

    def __init__(
        self,
        compare_type: CompareType,
        name: str,
        logs: list[CompareLog],
        ignore_rules: Sequence[IgnorePattern] | None,
        set_error: Callable[[], None],
    ):
        self._type = compare_type
        self._name = name
        self._logs = logs
        self._ignore_rules = ignore_rules
        self._set_error = set_error

    def mark_as_ok(
        self, value: str | None = None, attribute: CompareAttribute = CompareAttribute.NOT_SET
    ) -> None:
        self._logs.append(
            CompareLog(
                type=self._type,
                state=CompareState.OK,
                name=self._name,
                attribute=attribute,
                expected=value,
            )
        )

    def not_in_database(
        self, expected: str | None, attribute: CompareAttribute = CompareAttribute.NOT_SET
    ) -> None:
        self._add(CompareState.NOT_IN_DATABASE, attribute, self._name, expected=expected)

    def extra_in_database(
        self,
        found: str | None,
        attribute: CompareAttribute,
        name_override: str | None = None,
    ) -> None:
        """Log something present in the database with no logical counterpart.

        ``name_override`` logs a whole extra object (e.g. a table) under its
        own name instead of the name this logger is bound to.
        """
        self._add(
            CompareState.EXTRA_IN_DATABASE,
            attribute,
            name_override or self._name,
            found=found,
        )

    def different_in_database(
        self,
        attribute: CompareAttribute,
        expected: str | None,
        found: str | None,
        deferred: bool = False,
    ) -> None:
        self._add(
            CompareState.DIFFERENT_IN_DATABASE,
            attribute,
            self._name,
            expected=expected,
            found=found,
            deferred=deferred,
        )

    def check_different(
        self,
        expected: str | None,
        found: str | None,
        attribute: CompareAttribute,
        case_sensitive: bool = True,
        deferred: bool = False,
    ) -> bool:
        """Log Ok when the values agree, Different otherwise.

        Returns:
            True if the values differed.
        """
        if _same(expected, found, case_sensitive):
            self.mark_as_ok(expected, attribute)
            return False
        self.different_in_database(attribute, expected, found, deferred=deferred)
        return True

    def _add(
        self,
        state: CompareState,
        attribute: CompareAttribute,
        name: str,
        expected: str | None = None,
        found: str | None = None,
        deferred: bool = False,
    ) -> None:
        ignored = is_ignored(self._type, state, attribute, name, self._ignore_rules)
        self._logs.append(
            CompareLog(
                type=self._type,
                state=state,
                name=name,
                attribute=attribute,
                expected=expected,
                found=found,
                ignored=ignored,
                deferred=deferred,
            )
        )
        if not ignored and not deferred:
            self._set_error()


def _same(expected: str | None, found: str | None, case_sensitive: bool) -> bool:
    if expected is None or found is None:
        return expected is found
    if case_sensitive:
        return expected == found
    return expected.lower() == found.lower()
