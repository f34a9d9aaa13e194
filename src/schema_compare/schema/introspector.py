"""PostgreSQL schema introspection via information_schema and pg_catalog.

This module queries the live database to build a ``DatabaseSchema``:
- Tables and views, columns, data types, nullability, defaults, lengths
- Generated (computed) columns
- Primary keys and foreign keys
- Indexes (name, columns, uniqueness, type)

Uses psycopg (v3) for PostgreSQL connections. Connection and query errors
(``psycopg.Error``) propagate to the caller unchanged.
"""

import logging

import psycopg
from psycopg import Connection

from schema_compare.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    IndexSchema,
    PrimaryKeySchema,
    TableSchema,
)

logger = logging.getLogger(__name__)

# pg_constraint.confdeltype codes
DELETE_RULES = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


class SchemaIntrospector:
    """Introspects a PostgreSQL database into a ``DatabaseSchema``.

    Usage:
        with SchemaIntrospector(database_url) as introspector:
            database = introspector.introspect(["public", "billing"])
    """

    # Tables to exclude from introspection (system tables)
    EXCLUDED_TABLES = {
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def __init__(self, database_url: str, excluded_tables: set[str] | None = None):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
            excluded_tables: Table names never reported (defaults to
                ``EXCLUDED_TABLES``)
        """
        self._database_url = database_url
        self._excluded_tables = (
            self.EXCLUDED_TABLES if excluded_tables is None else excluded_tables
        )
        self._conn: Connection | None = None

    def __enter__(self) -> "SchemaIntrospector":
        """Context manager entry - opens connection."""
        # Append connect_timeout if not already in URL
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout=10"

        self._conn = psycopg.connect(url)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def introspect(self, schema_names: list[str] | None = None) -> DatabaseSchema:
        """Introspect tables and views of the given schemas.

        Args:
            schema_names: PostgreSQL schemas to introspect (default: public).
                The first one is the default schema.

        Returns:
            DatabaseSchema with all tables, views, columns, keys and indexes.
        """
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use with statement.")

        schema_names = schema_names or ["public"]
        database = DatabaseSchema(
            name=self._get_database_name(), default_schema=schema_names[0]
        )

        for schema_name in schema_names:
            for table_name, is_view in self._get_tables(schema_name):
                if table_name in self._excluded_tables:
                    continue

                table = TableSchema(name=table_name, schema_name=schema_name, is_view=is_view)
                table.columns = self._get_columns(schema_name, table_name)
                table.primary_key = self._get_primary_key(schema_name, table_name)
                table.foreign_keys = self._get_foreign_keys(schema_name, table_name)
                table.indexes = self._get_indexes(schema_name, table_name)
                database.add_table(table)

        logger.debug(
            f"Introspected {len(database.tables)} tables from schemas {', '.join(schema_names)}"
        )
        return database

    def _get_database_name(self) -> str:
        with self._conn.cursor() as cur:
            cur.execute("SELECT current_database()")
            row = cur.fetchone()
            return row[0] if row else ""

    def _get_tables(self, schema_name: str) -> list[tuple[str, bool]]:
        """Get (name, is_view) for every table and view in schema."""
        query = """
            SELECT table_name, table_type
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type IN ('BASE TABLE', 'VIEW')
            ORDER BY table_name
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (schema_name,))
            return [(row[0], row[1] == "VIEW") for row in cur.fetchall()]

    def _get_columns(self, schema_name: str, table_name: str) -> dict[str, ColumnSchema]:
        """Get columns for a table."""
        query = """
            SELECT
                column_name,
                data_type,
                udt_name,
                is_nullable,
                column_default,
                character_maximum_length,
                numeric_precision,
                numeric_scale,
                generation_expression
            FROM information_schema.columns
            WHERE table_schema = %s
              AND table_name = %s
            ORDER BY ordinal_position
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (schema_name, table_name))
            columns = {}
            for row in cur.fetchall():
                (
                    col_name,
                    data_type,
                    udt_name,
                    is_nullable,
                    default,
                    max_length,
                    precision,
                    scale,
                    generated,
                ) = row
                columns[col_name] = ColumnSchema(
                    name=col_name,
                    data_type=self._format_data_type(
                        data_type, udt_name, max_length, precision, scale
                    ),
                    is_nullable=(is_nullable == "YES"),
                    default=default,
                    max_length=max_length,
                    computed_sql=generated or None,
                )
            return columns

    def _normalize_data_type(self, data_type: str) -> str:
        """Normalize PostgreSQL data type names.

        Maps verbose information_schema types to standard names.
        """
        type_map = {
            "character varying": "varchar",
            "character": "char",
            "timestamp with time zone": "timestamptz",
            "timestamp without time zone": "timestamp",
            "integer": "int",
            "boolean": "bool",
        }
        return type_map.get(data_type.lower(), data_type.lower())

    def _format_data_type(
        self,
        data_type: str,
        udt_name: str,
        max_length: int | None,
        precision: int | None,
        scale: int | None,
    ) -> str:
        """Normalized type name with its length or precision modifier.

        information_schema reports ``character varying`` and the length
        separately; the logical model declares ``varchar(100)``.
        Enums and other user-defined types report ``USER-DEFINED`` and
        arrays report ``ARRAY``; both are named by ``udt_name`` instead
        (``mood``, ``_int4`` for ``int4[]``).
        """
        if data_type == "USER-DEFINED":
            return udt_name
        if data_type == "ARRAY":
            return f"{self._normalize_data_type(udt_name.removeprefix('_'))}[]"
        name = self._normalize_data_type(data_type)
        if max_length is not None and name in ("varchar", "char"):
            return f"{name}({max_length})"
        if name == "numeric" and precision is not None:
            return f"numeric({precision},{scale or 0})"
        return name

    def _get_primary_key(self, schema_name: str, table_name: str) -> PrimaryKeySchema | None:
        """Get the primary key of a table, columns in key order."""
        query = """
            SELECT tc.constraint_name, kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            WHERE tc.table_schema = %s
              AND tc.table_name = %s
              AND tc.constraint_type = 'PRIMARY KEY'
            ORDER BY kcu.ordinal_position
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (schema_name, table_name))
            rows = cur.fetchall()
        if not rows:
            return None
        return PrimaryKeySchema(name=rows[0][0], columns=[row[1] for row in rows])

    def _get_foreign_keys(
        self, schema_name: str, table_name: str
    ) -> dict[str, ForeignKeySchema]:
        """Get foreign keys for a table.

        ``conkey`` and ``confkey`` are unnested together, so each referencing
        column is paired with the principal column at the same position.
        """
        query = """
            SELECT
                c.conname AS constraint_name,
                a.attname AS column_name,
                rn.nspname AS references_schema,
                rt.relname AS references_table,
                ra.attname AS references_column,
                c.confdeltype AS delete_code
            FROM pg_constraint c
            JOIN pg_class t ON t.oid = c.conrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_class rt ON rt.oid = c.confrelid
            JOIN pg_namespace rn ON rn.oid = rt.relnamespace
            JOIN LATERAL unnest(c.conkey, c.confkey)
                WITH ORDINALITY AS k(attnum, ref_attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = k.attnum
            JOIN pg_attribute ra ON ra.attrelid = c.confrelid AND ra.attnum = k.ref_attnum
            WHERE n.nspname = %s
              AND t.relname = %s
              AND c.contype = 'f'
            ORDER BY c.conname, k.ordinality
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (schema_name, table_name))

            foreign_keys: dict[str, ForeignKeySchema] = {}
            for row in cur.fetchall():
                name, col_name, ref_schema, ref_table, ref_col, delete_code = row

                if name not in foreign_keys:
                    foreign_keys[name] = ForeignKeySchema(
                        name=name,
                        references_schema=ref_schema,
                        references_table=ref_table,
                        on_delete=DELETE_RULES.get(delete_code, "NO ACTION"),
                    )
                fk = foreign_keys[name]
                fk.columns.append(col_name)
                fk.references_columns.append(ref_col)

            return foreign_keys

    def _get_indexes(self, schema_name: str, table_name: str) -> dict[str, IndexSchema]:
        """Get indexes for a table (excluding primary key)."""
        query = """
            SELECT
                i.relname AS index_name,
                array_agg(a.attname ORDER BY x.ordinality) AS columns,
                ix.indisunique AS is_unique,
                am.amname AS index_type
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_am am ON am.oid = i.relam
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
              AND NOT ix.indisprimary
            GROUP BY i.relname, ix.indisunique, am.amname
            ORDER BY i.relname
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (schema_name, table_name))
            indexes = {}
            for row in cur.fetchall():
                name, columns, is_unique, idx_type = row
                indexes[name] = IndexSchema(
                    name=name,
                    columns=list(columns),
                    is_unique=is_unique,
                    index_type=idx_type,
                )
            return indexes
