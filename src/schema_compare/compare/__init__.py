"""Comparison log, ignore patterns, type equivalence, and the two stages.

The orchestrator lives in ``schema_compare.compare.comparer`` and is
re-exported from the top-level package.

Usage:
    from schema_compare.compare import CompareLog, IgnorePattern, render_errors
"""

from schema_compare.compare.ignore import IgnorePattern, is_ignored
from schema_compare.compare.log import (
    CompareAttribute,
    CompareLog,
    CompareState,
    CompareType,
    has_errors,
    list_all_errors,
    render_errors,
)
from schema_compare.compare.logger import CompareLogger
from schema_compare.compare.types import (
    canonical_type,
    defaults_equivalent,
    normalize_default,
    supported_dialects,
    types_equivalent,
)

__all__ = [
    "CompareAttribute",
    "CompareLog",
    "CompareState",
    "CompareType",
    "CompareLogger",
    "IgnorePattern",
    "is_ignored",
    "has_errors",
    "list_all_errors",
    "render_errors",
    "canonical_type",
    "types_equivalent",
    "normalize_default",
    "defaults_equivalent",
    "supported_dialects",
]
