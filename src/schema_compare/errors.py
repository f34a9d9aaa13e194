"""Exceptions raised for caller mistakes.

Schema drift itself is never an exception -- it is recorded as
``CompareLog`` entries. Only misuse of the comparer raises.
"""


class CompareUsageError(ValueError):
    """Raised when the comparison cannot start because of a usage mistake.

    Examples: no logical schema supplied, a table named in
    ``tables_to_ignore`` that does not exist in the database, or a
    malformed ignore pattern.
    """

    pass
