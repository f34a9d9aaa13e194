"""Schema models and the two readers that produce them.

Provides the physical and logical schema models, live database
introspection (``SchemaIntrospector``), and the SQLAlchemy metadata reader
(``load_logical_schema``).

Usage:
    from schema_compare.schema import SchemaIntrospector, load_logical_schema
    from schema_compare.schema import DatabaseSchema, LogicalSchema
"""

from schema_compare.schema.introspector import SchemaIntrospector
from schema_compare.schema.metadata import load_logical_schema
from schema_compare.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    EntityModel,
    ForeignKeyModel,
    ForeignKeySchema,
    IndexModel,
    IndexSchema,
    LogicalSchema,
    PrimaryKeySchema,
    PropertyModel,
    TableSchema,
)

__all__ = [
    "SchemaIntrospector",
    "load_logical_schema",
    "ColumnSchema",
    "PrimaryKeySchema",
    "ForeignKeySchema",
    "IndexSchema",
    "TableSchema",
    "DatabaseSchema",
    "PropertyModel",
    "ForeignKeyModel",
    "IndexModel",
    "EntityModel",
    "LogicalSchema",
]
