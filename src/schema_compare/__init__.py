"""schema-compare: check that a database matches the schema an application declares.

Compares one or more logical schemas (read from SQLAlchemy metadata, or
built directly) against a physical schema introspected from PostgreSQL, in
two stages: a structural pass, then a semantic pass that understands type
aliases and default spellings. Accepted differences are declared as ignore
patterns and stay visible in the log.

Usage:
    from schema_compare import compare, load_logical_schema, render_errors
    from schema_compare import SchemaComparer, CompareConfig, IgnorePattern
    from schema_compare import compare_with_database, load_config
"""

__version__ = "0.1.0"

# Comparison
from schema_compare.compare.comparer import SchemaComparer, compare
from schema_compare.compare.ignore import IgnorePattern
from schema_compare.compare.log import (
    CompareAttribute,
    CompareLog,
    CompareState,
    CompareType,
    has_errors,
    list_all_errors,
    render_errors,
)

# Config
from schema_compare.config.loader import load_config
from schema_compare.config.models import CompareConfig, DatabaseProfile, ToolConfig

# Errors
from schema_compare.errors import CompareUsageError

# Factory
from schema_compare.factory import compare_with_database, resolve_connection_string

# Schema
from schema_compare.schema.introspector import SchemaIntrospector
from schema_compare.schema.metadata import load_logical_schema
from schema_compare.schema.models import DatabaseSchema, LogicalSchema

__all__ = [
    # Comparison
    "SchemaComparer",
    "compare",
    "IgnorePattern",
    "CompareAttribute",
    "CompareLog",
    "CompareState",
    "CompareType",
    "has_errors",
    "list_all_errors",
    "render_errors",
    # Config
    "load_config",
    "CompareConfig",
    "DatabaseProfile",
    "ToolConfig",
    # Errors
    "CompareUsageError",
    # Factory
    "compare_with_database",
    "resolve_connection_string",
    # Schema
    "SchemaIntrospector",
    "load_logical_schema",
    "DatabaseSchema",
    "LogicalSchema",
]
