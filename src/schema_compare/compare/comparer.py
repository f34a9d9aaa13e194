"""Compare one or more logical schemas against a database schema.

Runs the structural pass (Stage 1) over every logical schema, reports
database objects none of them reached, and, when the structural pass is
clean (or ``always_run_stage2`` is set), runs the semantic pass (Stage 2).

Pure logic -- no I/O, no database connections.

Usage:
    from schema_compare import SchemaComparer

    comparer = SchemaComparer(config)
    has_errors = comparer.compare([orders_model, billing_model], database)
    if has_errors:
        print(comparer.all_errors)
"""

import logging
from collections.abc import Sequence

from schema_compare.compare.log import CompareLog, render_errors
from schema_compare.compare.log import has_errors as log_has_errors
from schema_compare.compare.stage1 import Stage1Comparer
from schema_compare.compare.stage2 import Stage2Comparer
from schema_compare.config.models import CompareConfig
from schema_compare.errors import CompareUsageError
from schema_compare.schema.models import DatabaseSchema, LogicalSchema, TableSchema

logger = logging.getLogger(__name__)


class SchemaComparer:
    """Drives a comparison run and keeps its log.

    Args:
        config: Comparison options. A snapshot is taken at the start of
            every ``compare`` call, so later edits do not affect a run.
    """

    def __init__(self, config: CompareConfig | None = None):
        self._config = config or CompareConfig()
        self._logs: tuple[CompareLog, ...] = ()

    @property
    def logs(self) -> tuple[CompareLog, ...]:
        """Full log tree of the last run, suppressed entries included."""
        return self._logs

    @property
    def has_errors(self) -> bool:
        """Result of the last run."""
        return log_has_errors(self._logs)

    @property
    def all_errors(self) -> str:
        """Every counted error of the last run, one per line."""
        return render_errors(self._logs)

    def compare(
        self,
        logical_schemas: LogicalSchema | Sequence[LogicalSchema],
        database: DatabaseSchema,
    ) -> bool:
        """Compare logical schemas with the database.

        Args:
            logical_schemas: One logical schema or several sharing the database.
            database: Introspected physical schema. It is not modified.

        Returns:
            True if any unsuppressed difference was found.

        Raises:
            CompareUsageError: If no logical schema is supplied, or a table
                named in ``tables_to_ignore``/``tables_to_include`` is not in
                the database.
        """
        if isinstance(logical_schemas, LogicalSchema):
            logical_schemas = [logical_schemas]
        if not logical_schemas:
            raise CompareUsageError("You must provide at least one logical schema.")

        config = self._config.model_copy(deep=True)
        config.validate_options()
        database = database.model_copy(deep=True)
        remove_excluded_tables(database, config)

        stage1 = Stage1Comparer(database, config.ignore_rules)
        model_logs = [stage1.compare_model(model) for model in logical_schemas]
        extras_log = stage1.compare_extras()
        logger.info(
            f"Stage 1 compared {len(logical_schemas)} logical schema(s): "
            f"{'errors found' if stage1.has_errors else 'no errors'}"
        )

        if stage1.has_errors and not config.always_run_stage2:
            logger.info("Stage 2 skipped: Stage 1 found errors")
            self._logs = (*stage1.resolve_deferred(model_logs, None), extras_log)
            return log_has_errors(self._logs)

        stage2 = Stage2Comparer(database, config.ignore_rules, dialect=config.dialect)
        reference_log = stage2.compare(logical_schemas)
        logger.info(f"Stage 2: {'errors found' if stage2.has_errors else 'no errors'}")

        self._logs = (
            *stage1.resolve_deferred(model_logs, stage2.is_equivalent),
            extras_log,
            reference_log,
        )
        return log_has_errors(self._logs)


def compare(
    logical_schemas: LogicalSchema | Sequence[LogicalSchema],
    database: DatabaseSchema,
    config: CompareConfig | None = None,
) -> tuple[bool, tuple[CompareLog, ...]]:
    """Functional form of ``SchemaComparer.compare``.

    Returns:
        ``(has_errors, logs)``

    Example:
        >>> has_errors, logs = compare(model, database)
        >>> print(render_errors(logs))
    """
    comparer = SchemaComparer(config)
    result = comparer.compare(logical_schemas, database)
    return result, comparer.logs


# ============================================================================
# Table exclusion
# ============================================================================


def remove_excluded_tables(database: DatabaseSchema, config: CompareConfig) -> None:
    """Drop out-of-scope tables from ``database`` before comparing.

    - ``tables_to_include`` keeps only the named tables.
    - ``tables_to_ignore`` removes the named tables.

    Raises:
        CompareUsageError: If a named table is not in the database.
    """
    if config.tables_to_include is not None:
        keep = {
            database.table_key(table)
            for table in _named_tables(database, config.tables_to_include, "tables_to_include")
        }
        for key, table in list(database.tables.items()):
            if database.table_key(table) not in keep:
                logger.debug(f"Excluding table {table.full_name} (not in tables_to_include)")
                del database.tables[key]

    if config.tables_to_ignore is not None:
        for table in _named_tables(database, config.tables_to_ignore, "tables_to_ignore"):
            logger.debug(f"Excluding table {table.full_name} (tables_to_ignore)")
            for key, candidate in list(database.tables.items()):
                if candidate is table:
                    del database.tables[key]


def _named_tables(database: DatabaseSchema, comma_delimited: str, option: str) -> list[TableSchema]:
    tables = []
    for entry in (part.strip() for part in comma_delimited.split(",")):
        if not entry:
            continue
        parts = [p.strip() for p in entry.split(".")]
        schema_name, table_name = (None, parts[0]) if len(parts) == 1 else (parts[0], parts[1])
        table = database.find_table(schema_name, table_name)
        if table is None:
            raise CompareUsageError(
                f"The {option} option contains a table name of '{entry}', "
                f"which was not found in the database"
            )
        tables.append(table)
    return tables
