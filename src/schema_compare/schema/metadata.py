"""Build a ``LogicalSchema`` from SQLAlchemy table metadata.

The application's SQLAlchemy models are its declared structure: this module
reads a ``MetaData`` (or a declarative base exposing ``.metadata``) into the
logical models the comparer understands. Nothing is connected to; types are
rendered with the target dialect's compiler.

Usage:
    from myapp.models import Base
    from schema_compare.schema.metadata import load_logical_schema

    model = load_logical_schema(Base, name="myapp")
"""

import logging

from sqlalchemy import Column, Enum, MetaData, String, Table, UniqueConstraint
from sqlalchemy.dialects import mssql, postgresql, sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.schema import DefaultClause

from schema_compare.errors import CompareUsageError
from schema_compare.schema.models import (
    EntityModel,
    ForeignKeyModel,
    IndexModel,
    LogicalSchema,
    PropertyModel,
)

logger = logging.getLogger(__name__)

_DIALECTS = {
    "postgresql": postgresql.dialect,
    "mssql": mssql.dialect,
    "sqlite": sqlite.dialect,
}


def load_logical_schema(
    source: object,
    name: str | None = None,
    dialect: str = "postgresql",
) -> LogicalSchema:
    """Read SQLAlchemy metadata into a logical schema.

    Args:
        source: A ``MetaData`` or a declarative base class.
        name: Logical schema name (defaults to the base class name, or
            ``"metadata"``).
        dialect: SQL dialect used to render column types and defaults.

    Returns:
        LogicalSchema with one entity per table, in declaration order.

    Raises:
        CompareUsageError: If ``source`` carries no metadata or the dialect
            is unknown.
    """
    metadata = source if isinstance(source, MetaData) else getattr(source, "metadata", None)
    if not isinstance(metadata, MetaData):
        raise CompareUsageError(
            f"Expected SQLAlchemy MetaData or a declarative base, got {type(source).__name__}"
        )
    if dialect not in _DIALECTS:
        raise CompareUsageError(
            f"Unknown dialect '{dialect}'. Supported: {', '.join(_DIALECTS)}"
        )

    sql_dialect = _DIALECTS[dialect]()
    class_names = _mapped_class_names(source)
    entities = [
        _entity(table, class_names.get(table, table.name), sql_dialect)
        for table in metadata.tables.values()
    ]
    logger.debug(f"Loaded {len(entities)} entities from SQLAlchemy metadata")
    return LogicalSchema(
        name=name or getattr(source, "__name__", "metadata"),
        default_schema=metadata.schema,
        entities=entities,
    )


def _mapped_class_names(source: object) -> dict[Table, str]:
    """Table -> mapped class name, for declarative bases."""
    registry = getattr(source, "registry", None)
    if registry is None:
        return {}
    names: dict[Table, str] = {}
    for mapper in registry.mappers:
        if isinstance(mapper.local_table, Table):
            names.setdefault(mapper.local_table, mapper.class_.__name__)
    return names


def _entity(table: Table, entity_name: str, sql_dialect: Dialect) -> EntityModel:
    """One table; ``table.info["is_view"]`` marks a view mapping."""
    return EntityModel(
        name=entity_name,
        table_name=table.name,
        schema_name=table.schema,
        is_view=bool(table.info.get("is_view", False)),
        properties=[_property(column, sql_dialect) for column in table.columns],
        primary_key_name=_name(table.primary_key.name),
        foreign_keys=[
            ForeignKeyModel(
                name=_name(fk.name),
                columns=[column.name for column in fk.columns],
                principal_schema=fk.referred_table.schema,
                principal_table=fk.referred_table.name,
                principal_columns=[element.column.name for element in fk.elements],
                on_delete=fk.ondelete or "NO ACTION",
            )
            for fk in table.foreign_key_constraints
        ],
        indexes=_indexes(table),
    )


def _property(column: Column, sql_dialect: Dialect) -> PropertyModel:
    computed = column.computed
    return PropertyModel(
        name=column.key,
        column_name=column.name,
        column_type=column.type.compile(dialect=sql_dialect).lower(),
        is_nullable=bool(column.nullable),
        max_length=_max_length(column),
        default=_server_default(column, sql_dialect),
        is_key=column.primary_key,
        computed_sql=(
            str(computed.sqltext.compile(dialect=sql_dialect)) if computed is not None else None
        ),
    )


def _max_length(column: Column) -> int | None:
    # Enum.length is the longest label, not a column size
    if isinstance(column.type, String) and not isinstance(column.type, Enum):
        return column.type.length
    return None


def _server_default(column: Column, sql_dialect: Dialect) -> str | None:
    """DDL text of a column's server default, as the database would store it."""
    default = column.server_default
    if not isinstance(default, DefaultClause):
        return None
    if isinstance(default.arg, str):
        return f"'{default.arg}'"
    return str(default.arg.compile(dialect=sql_dialect))


def _indexes(table: Table) -> list[IndexModel]:
    """Declared indexes, then unique constraints (backed by an index)."""
    indexes = [
        IndexModel(
            name=_name(index.name),
            columns=[column.name for column in index.columns],
            is_unique=bool(index.unique),
        )
        for index in sorted(table.indexes, key=lambda i: _name(i.name) or "")
    ]
    unique_constraints = [c for c in table.constraints if isinstance(c, UniqueConstraint)]
    for constraint in sorted(unique_constraints, key=lambda c: _name(c.name) or ""):
        indexes.append(
            IndexModel(
                name=_name(constraint.name),
                columns=[column.name for column in constraint.columns],
                is_unique=True,
            )
        )
    return indexes


def _name(value: object) -> str | None:
    # unnamed constraints carry None or a sentinel, depending on naming conventions
    return value if isinstance(value, str) else None
