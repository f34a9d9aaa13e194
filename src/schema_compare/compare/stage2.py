"""Stage 2: semantic comparison against a reference schema.

Builds the physical schema a fresh database created from the logical
schemas would have (canonical type spellings, key columns NOT NULL,
normalized defaults) and compares the real database against it using the
dialect's equivalence rules. Only objects present on both sides are
examined; missing and extra objects are Stage 1's business.

Pure logic -- no I/O.
"""

import logging
from collections.abc import Sequence

from schema_compare.compare.ignore import IgnorePattern
from schema_compare.compare.log import CompareAttribute, CompareLog, CompareType
from schema_compare.compare.logger import CompareLogger
from schema_compare.compare.stage1 import nullability
from schema_compare.compare.types import (
    canonical_type,
    defaults_equivalent,
    normalize_default,
    types_equivalent,
)
from schema_compare.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    IndexSchema,
    LogicalSchema,
    PrimaryKeySchema,
    TableSchema,
)

logger = logging.getLogger(__name__)


def build_reference_schema(
    logical_schemas: Sequence[LogicalSchema],
    dialect: str = "postgresql",
    name: str = "",
    default_schema: str | None = "public",
) -> DatabaseSchema:
    """Build the physical schema the logical schemas would create.

    Entities of different logical schemas that map to the same table are
    merged; the first declaration of a column wins.

    Example:
        >>> reference = build_reference_schema([model], dialect="postgresql")
        >>> reference.find_table("public", "books").columns["id"].data_type
        'integer'
    """
    reference = DatabaseSchema(name=name, default_schema=default_schema)
    for model in logical_schemas:
        for entity in model.entities:
            schema_name = entity.schema_name or model.default_schema or default_schema
            table = reference.find_table(schema_name, entity.table_name)
            if table is None:
                table = reference.add_table(
                    TableSchema(name=entity.table_name, schema_name=schema_name, is_view=entity.is_view)
                )

            for prop in entity.properties:
                if table.find_column(prop.column_name) is not None:
                    continue
                table.columns[prop.column_name] = ColumnSchema(
                    name=prop.column_name,
                    data_type=canonical_type(prop.column_type, dialect),
                    is_nullable=prop.is_nullable and not prop.is_key,
                    default=normalize_default(prop.default),
                    max_length=prop.max_length,
                    computed_sql=prop.computed_sql,
                )

            if entity.key_columns and table.primary_key is None:
                table.primary_key = PrimaryKeySchema(
                    name=entity.primary_key_name, columns=entity.key_columns
                )
            for fk in entity.foreign_keys:
                fk_name = fk.name or "_".join(["fk", entity.table_name, *fk.columns])
                table.foreign_keys.setdefault(
                    fk_name,
                    ForeignKeySchema(
                        name=fk_name,
                        columns=fk.columns,
                        references_schema=fk.principal_schema or schema_name,
                        references_table=fk.principal_table,
                        references_columns=fk.principal_columns,
                        on_delete=fk.on_delete,
                    ),
                )
            for index in entity.indexes:
                index_name = index.name or "_".join(["ix", entity.table_name, *index.columns])
                table.indexes.setdefault(
                    index_name,
                    IndexSchema(name=index_name, columns=index.columns, is_unique=index.is_unique),
                )
    return reference


class Stage2Comparer:
    """Semantic pass over the attributes Stage 1 can only compare as strings.

    Args:
        database: Physical schema (same filtered copy Stage 1 used).
        ignore_rules: Accepted differences.
        dialect: Name of the type-equivalence table to apply.
        reference: Pre-built reference schema; built from the logical
            schemas when omitted.
    """

    def __init__(
        self,
        database: DatabaseSchema,
        ignore_rules: list[IgnorePattern] | None = None,
        dialect: str = "postgresql",
        reference: DatabaseSchema | None = None,
    ):
        self._database = database
        self._ignore_rules = ignore_rules
        self._dialect = dialect
        self._reference = reference
        self._verdicts: dict[tuple[str, str, CompareAttribute], bool] = {}
        self._has_errors = False

    @property
    def has_errors(self) -> bool:
        return self._has_errors

    def _set_error(self) -> None:
        self._has_errors = True

    def compare(self, logical_schemas: Sequence[LogicalSchema]) -> CompareLog:
        """Compare the database against the reference schema.

        Returns:
            A ``Database`` container named ``<database> (reference)`` with
            one ``Table`` container per table examined.
        """
        reference = self._reference or build_reference_schema(
            logical_schemas,
            dialect=self._dialect,
            name=self._database.name,
            default_schema=self._database.default_schema,
        )

        table_logs = []
        for ref_table in reference.tables.values():
            table = self._database.find_table(ref_table.schema_name, ref_table.name)
            if table is None:
                continue
            table_key = self._database.table_key(table)
            column_logs: list[CompareLog] = []
            for ref_column in ref_table.columns.values():
                column = table.find_column(ref_column.name)
                if column is None:
                    continue
                self._compare_column(table_key, ref_column, column, column_logs)
            table_type = CompareType.VIEW if table.is_view else CompareType.TABLE
            table_logs.append(CompareLog.container(table_type, table.name, column_logs))

        logger.debug(f"Stage 2 examined {len(table_logs)} tables")
        return CompareLog.container(
            CompareType.DATABASE, f"{self._database.name or 'database'} (reference)", table_logs
        )

    def _compare_column(
        self,
        table_key: str,
        expected: ColumnSchema,
        found: ColumnSchema,
        logs: list[CompareLog],
    ) -> None:
        column_logger = CompareLogger(
            CompareType.COLUMN, expected.name, logs, self._ignore_rules, self._set_error
        )
        column_key = found.name.lower()
        self._record(
            column_logger,
            (table_key, column_key, CompareAttribute.COLUMN_TYPE),
            expected.data_type,
            found.data_type,
            types_equivalent(expected.data_type, found.data_type, self._dialect),
        )
        self._record(
            column_logger,
            (table_key, column_key, CompareAttribute.NULLABILITY),
            nullability(expected.is_nullable),
            nullability(found.is_nullable),
            expected.is_nullable == found.is_nullable,
        )
        self._record(
            column_logger,
            (table_key, column_key, CompareAttribute.DEFAULT_VALUE),
            expected.default,
            found.default,
            defaults_equivalent(expected.default, found.default),
        )

    def _record(
        self,
        column_logger: CompareLogger,
        key: tuple[str, str, CompareAttribute],
        expected: str | None,
        found: str | None,
        equivalent: bool,
    ) -> None:
        attribute = key[2]
        self._verdicts[key] = equivalent
        if equivalent:
            column_logger.mark_as_ok(found, attribute)
        else:
            column_logger.different_in_database(attribute, expected, found)

    def is_equivalent(self, table_key: str, column_name: str, attribute: CompareAttribute) -> bool | None:
        """Verdict for one attribute, or ``None`` if it was not examined."""
        return self._verdicts.get((table_key, column_name.lower(), attribute))
