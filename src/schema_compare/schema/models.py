"""Pydantic models for the two schema graphs being compared.

This module contains schema-domain models:
- Physical models (introspected from a live database): ColumnSchema,
  PrimaryKeySchema, ForeignKeySchema, IndexSchema, TableSchema,
  DatabaseSchema
- Logical models (declared by the application): PropertyModel,
  ForeignKeyModel, IndexModel, EntityModel, LogicalSchema

Both sides are plain data. The comparer reads them; only the orchestrator
removes excluded tables, and it does so on its own copy.
"""

from pydantic import BaseModel, Field


def qualified_name(schema_name: str | None, table_name: str) -> str:
    """Return ``schema.table`` (or just ``table`` without a schema)."""
    return f"{schema_name}.{table_name}" if schema_name else table_name


# ============================================================================
# Physical Schema Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a database column.

    Example:
        >>> col = ColumnSchema(name="id", data_type="integer")
        >>> col.is_nullable
        True
    """

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    max_length: int | None = None
    computed_sql: str | None = None


class PrimaryKeySchema(BaseModel):
    """Primary key constraint of a table."""

    name: str | None = None
    columns: list[str] = Field(default_factory=list)


class ForeignKeySchema(BaseModel):
    """Foreign key constraint of a table."""

    name: str
    columns: list[str] = Field(default_factory=list)
    references_schema: str | None = None
    references_table: str
    references_columns: list[str] = Field(default_factory=list)
    on_delete: str = "NO ACTION"


class IndexSchema(BaseModel):
    """Schema for a database index (primary key indexes excluded)."""

    name: str
    columns: list[str] = Field(default_factory=list)
    is_unique: bool = False
    index_type: str = "btree"


class TableSchema(BaseModel):
    """Schema for a database table or view."""

    name: str
    schema_name: str | None = None
    is_view: bool = False
    columns: dict[str, ColumnSchema] = Field(default_factory=dict)
    primary_key: PrimaryKeySchema | None = None
    foreign_keys: dict[str, ForeignKeySchema] = Field(default_factory=dict)
    indexes: dict[str, IndexSchema] = Field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return qualified_name(self.schema_name, self.name)

    def find_column(self, column_name: str) -> ColumnSchema | None:
        """Case-insensitive column lookup."""
        wanted = column_name.lower()
        for column in self.columns.values():
            if column.name.lower() == wanted:
                return column
        return None


class DatabaseSchema(BaseModel):
    """Complete physical schema of one database.

    ``tables`` is keyed by ``schema.table`` and keeps discovery order,
    which is the order extras are reported in.
    """

    name: str = ""
    default_schema: str | None = "public"
    tables: dict[str, TableSchema] = Field(default_factory=dict)

    def add_table(self, table: TableSchema) -> TableSchema:
        if table.schema_name is None:
            table.schema_name = self.default_schema
        self.tables[table.full_name] = table
        return table

    def find_table(self, schema_name: str | None, table_name: str) -> TableSchema | None:
        """Case-insensitive lookup by schema and table name.

        A ``None`` schema means the database default schema.
        """
        wanted = self.key_for(schema_name, table_name)
        for table in self.tables.values():
            if self.key_for(table.schema_name, table.name) == wanted:
                return table
        return None

    def key_for(self, schema_name: str | None, table_name: str) -> str:
        """Case-folded ``schema.table`` with the default schema applied."""
        return f"{schema_name or self.default_schema or ''}.{table_name}".lower()

    def table_key(self, table: TableSchema) -> str:
        return self.key_for(table.schema_name, table.name)


# ============================================================================
# Logical Schema Models
# ============================================================================


class PropertyModel(BaseModel):
    """A declared property and the column it maps to."""

    name: str
    column_name: str
    column_type: str
    is_nullable: bool = True
    max_length: int | None = None
    default: str | None = None
    is_key: bool = False
    computed_sql: str | None = None

    @property
    def is_computed(self) -> bool:
        return self.computed_sql is not None


class ForeignKeyModel(BaseModel):
    """A declared relationship, seen from the referencing (dependent) side."""

    name: str | None = None
    columns: list[str] = Field(default_factory=list)
    principal_schema: str | None = None
    principal_table: str
    principal_columns: list[str] = Field(default_factory=list)
    on_delete: str = "NO ACTION"


class IndexModel(BaseModel):
    """A declared index."""

    name: str | None = None
    columns: list[str] = Field(default_factory=list)
    is_unique: bool = False


class EntityModel(BaseModel):
    """A declared entity mapped to a table (or view)."""

    name: str
    table_name: str
    schema_name: str | None = None
    is_view: bool = False
    properties: list[PropertyModel] = Field(default_factory=list)
    primary_key_name: str | None = None
    foreign_keys: list[ForeignKeyModel] = Field(default_factory=list)
    indexes: list[IndexModel] = Field(default_factory=list)

    @property
    def key_columns(self) -> list[str]:
        """Key column names in declaration order."""
        return [p.column_name for p in self.properties if p.is_key]


class LogicalSchema(BaseModel):
    """The structure an application declares, e.g. one bounded context."""

    name: str
    default_schema: str | None = None
    entities: list[EntityModel] = Field(default_factory=list)
