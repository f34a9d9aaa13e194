"""Stage 1: structural comparison of logical schemas against the database.

Walks each logical schema entity by entity, finds the matching table,
columns, keys and indexes, and logs every attribute it checks. Column type,
nullability and default mismatches are logged as *deferred*: they are raw
string differences that the semantic pass (Stage 2) decides.

After every logical schema has been walked, ``compare_extras`` reports the
database objects that no logical schema reached.

Pure logic -- no I/O.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from schema_compare.compare.ignore import IgnorePattern
from schema_compare.compare.log import (
    CompareAttribute,
    CompareLog,
    CompareState,
    CompareType,
)
from schema_compare.compare.logger import CompareLogger
from schema_compare.schema.models import (
    DatabaseSchema,
    EntityModel,
    ForeignKeySchema,
    IndexSchema,
    LogicalSchema,
    PropertyModel,
    TableSchema,
    qualified_name,
)

logger = logging.getLogger(__name__)

# Answers "is this deferred attribute equivalent?" for (table key, column, attribute).
# None means the attribute was not examined.
SemanticVerdict = Callable[[str, str, CompareAttribute], bool | None]


@dataclass
class SchemaVisits:
    """Database objects reached from at least one logical schema."""

    tables: set[str] = field(default_factory=set)
    columns: set[tuple[str, str]] = field(default_factory=set)
    primary_keys: set[str] = field(default_factory=set)
    foreign_keys: set[tuple[str, str]] = field(default_factory=set)
    indexes: set[tuple[str, str]] = field(default_factory=set)


def nullability(is_nullable: bool) -> str:
    return "NULL" if is_nullable else "NOT NULL"


def column_list(columns: Iterable[str]) -> str:
    return ", ".join(columns)


def delete_rule(rule: str | None) -> str:
    """``set_null`` / ``SetNull`` / ``SET NULL`` -> ``SET NULL``."""
    if not rule:
        return "NO ACTION"
    text = rule.strip().replace("_", " ")
    if " " not in text and not text.isupper():
        # CamelCase spelling, e.g. SetNull
        text = "".join(f" {c}" if c.isupper() and i else c for i, c in enumerate(text))
    return " ".join(text.upper().split())


class Stage1Comparer:
    """Structural pass over one database, shared by all logical schemas of a run.

    Args:
        database: Physical schema (already filtered by the table exclusion policy).
        ignore_rules: Accepted differences.

    Usage:
        stage1 = Stage1Comparer(database, config.ignore_rules)
        logs = [stage1.compare_model(model) for model in logical_schemas]
        logs.append(stage1.compare_extras())
        if not stage1.has_errors:
            ...
    """

    def __init__(
        self,
        database: DatabaseSchema,
        ignore_rules: list[IgnorePattern] | None = None,
    ):
        self._database = database
        self._ignore_rules = ignore_rules
        self._visits = SchemaVisits()
        # (model position, entity position) -> table key
        self._entity_tables: dict[tuple[int, int], str] = {}
        self._model_count = 0
        self._has_errors = False

    @property
    def has_errors(self) -> bool:
        """True once any unsuppressed, non-deferred error has been logged."""
        return self._has_errors

    def _set_error(self) -> None:
        self._has_errors = True

    def _logger(self, compare_type: CompareType, name: str, logs: list[CompareLog]) -> CompareLogger:
        return CompareLogger(compare_type, name, logs, self._ignore_rules, self._set_error)

    # ------------------------------------------------------------------
    # Logical -> database
    # ------------------------------------------------------------------

    def compare_model(self, model: LogicalSchema) -> CompareLog:
        """Compare one logical schema; returns its ``Model`` container."""
        position = self._model_count
        self._model_count += 1
        entity_logs = [
            self._compare_entity(model, entity, (position, index))
            for index, entity in enumerate(model.entities)
        ]
        return CompareLog.container(CompareType.MODEL, model.name, entity_logs)

    def _compare_entity(
        self, model: LogicalSchema, entity: EntityModel, position: tuple[int, int]
    ) -> CompareLog:
        logs: list[CompareLog] = []
        schema_name = entity.schema_name or model.default_schema or self._database.default_schema
        table_type = CompareType.VIEW if entity.is_view else CompareType.TABLE
        table_logger = self._logger(table_type, entity.table_name, logs)

        table = self._database.find_table(schema_name, entity.table_name)
        if table is None:
            logger.debug(f"Entity '{entity.name}': table {schema_name}.{entity.table_name} not found")
            table_logger.not_in_database(
                qualified_name(schema_name, entity.table_name), CompareAttribute.TABLE_NAME
            )
            return CompareLog.container(CompareType.ENTITY, entity.name, logs)

        table_key = self._database.table_key(table)
        self._visits.tables.add(table_key)
        self._entity_tables[position] = table_key
        table_logger.check_different(entity.table_name, table.name, CompareAttribute.TABLE_NAME)

        for prop in entity.properties:
            logs.append(self._compare_property(prop, table, table_key))
        self._compare_primary_key(entity, table, table_key, logs)
        self._compare_foreign_keys(entity, schema_name, table, table_key, logs)
        self._compare_indexes(entity, table, table_key, logs)

        return CompareLog.container(CompareType.ENTITY, entity.name, logs)

    def _compare_property(self, prop: PropertyModel, table: TableSchema, table_key: str) -> CompareLog:
        logs: list[CompareLog] = []
        column_logger = self._logger(CompareType.COLUMN, prop.column_name, logs)

        column = table.find_column(prop.column_name)
        if column is None:
            column_logger.not_in_database(prop.column_name, CompareAttribute.COLUMN_NAME)
            return CompareLog.container(CompareType.PROPERTY, prop.name, logs)

        self._visits.columns.add((table_key, column.name.lower()))
        column_logger.check_different(prop.column_name, column.name, CompareAttribute.COLUMN_NAME)
        column_logger.check_different(
            prop.column_type, column.data_type, CompareAttribute.COLUMN_TYPE, deferred=True
        )
        column_logger.check_different(
            nullability(prop.is_nullable),
            nullability(column.is_nullable),
            CompareAttribute.NULLABILITY,
            deferred=True,
        )
        if prop.max_length is not None:
            found_length = None if column.max_length is None else str(column.max_length)
            column_logger.check_different(str(prop.max_length), found_length, CompareAttribute.MAX_LENGTH)
        column_logger.check_different(
            prop.default, column.default, CompareAttribute.DEFAULT_VALUE, deferred=True
        )
        if prop.computed_sql is not None or column.computed_sql is not None:
            column_logger.check_different(
                prop.computed_sql, column.computed_sql, CompareAttribute.COMPUTED_COLUMN
            )
        return CompareLog.container(CompareType.PROPERTY, prop.name, logs)

    def _compare_primary_key(
        self, entity: EntityModel, table: TableSchema, table_key: str, logs: list[CompareLog]
    ) -> None:
        key_columns = entity.key_columns
        if not key_columns:
            return
        pk_logger = self._logger(
            CompareType.PRIMARY_KEY, entity.primary_key_name or f"PK_{entity.table_name}", logs
        )
        physical = table.primary_key
        if physical is None or not physical.columns:
            pk_logger.not_in_database(column_list(key_columns), CompareAttribute.KEY_COLUMNS)
            return

        self._visits.primary_keys.add(table_key)
        # column order matters for a key
        pk_logger.check_different(
            column_list(key_columns),
            column_list(physical.columns),
            CompareAttribute.KEY_COLUMNS,
            case_sensitive=False,
        )
        if entity.primary_key_name is not None:
            pk_logger.check_different(
                entity.primary_key_name, physical.name, CompareAttribute.CONSTRAINT_NAME
            )

    def _compare_foreign_keys(
        self,
        entity: EntityModel,
        schema_name: str | None,
        table: TableSchema,
        table_key: str,
        logs: list[CompareLog],
    ) -> None:
        for fk in entity.foreign_keys:
            fk_logger = self._logger(
                CompareType.FOREIGN_KEY, fk.name or column_list(fk.columns), logs
            )
            found = _find_by_columns(table.foreign_keys.values(), fk.columns)
            if found is None:
                fk_logger.not_in_database(column_list(fk.columns), CompareAttribute.NOT_SET)
                continue

            self._visits.foreign_keys.add((table_key, found.name.lower()))
            if fk.name is not None:
                fk_logger.check_different(fk.name, found.name, CompareAttribute.CONSTRAINT_NAME)
            fk_logger.check_different(
                self._database.key_for(fk.principal_schema or schema_name, fk.principal_table),
                self._database.key_for(found.references_schema, found.references_table),
                CompareAttribute.PRINCIPAL_TABLE,
            )
            fk_logger.check_different(
                column_list(fk.principal_columns),
                column_list(found.references_columns),
                CompareAttribute.PRINCIPAL_COLUMNS,
                case_sensitive=False,
            )
            fk_logger.check_different(
                delete_rule(fk.on_delete), delete_rule(found.on_delete), CompareAttribute.DELETE_BEHAVIOR
            )

    def _compare_indexes(
        self, entity: EntityModel, table: TableSchema, table_key: str, logs: list[CompareLog]
    ) -> None:
        for index in entity.indexes:
            index_logger = self._logger(
                CompareType.INDEX, index.name or column_list(index.columns), logs
            )
            candidates = [
                i for i in table.indexes.values()
                if (table_key, i.name.lower()) not in self._visits.indexes
            ]
            found = _find_by_columns(candidates, index.columns, prefer_unique=index.is_unique)
            if found is None:
                index_logger.not_in_database(column_list(index.columns), CompareAttribute.INDEX_COLUMNS)
                continue

            self._visits.indexes.add((table_key, found.name.lower()))
            index_logger.check_different(
                _uniqueness(index.is_unique), _uniqueness(found.is_unique), CompareAttribute.UNIQUE
            )
            if index.name is not None:
                index_logger.check_different(index.name, found.name, CompareAttribute.CONSTRAINT_NAME)

    # ------------------------------------------------------------------
    # Database -> logical (extras)
    # ------------------------------------------------------------------

    def compare_extras(self) -> CompareLog:
        """Report database objects that no compared logical schema reached.

        Call after every logical schema has been compared. Extras are listed
        in the order the database schema holds them.
        """
        logs: list[CompareLog] = []
        database_name = self._database.name or "database"
        extra_tables = self._logger(CompareType.TABLE, database_name, logs)
        extra_views = self._logger(CompareType.VIEW, database_name, logs)

        for table in self._database.tables.values():
            table_key = self._database.table_key(table)
            if table_key not in self._visits.tables:
                extras = extra_views if table.is_view else extra_tables
                extras.extra_in_database(table.full_name, CompareAttribute.TABLE_NAME, table.name)
                continue

            table_logs = self._table_extras(table, table_key)
            if table_logs:
                table_type = CompareType.VIEW if table.is_view else CompareType.TABLE
                logs.append(CompareLog.container(table_type, table.name, table_logs))

        return CompareLog.container(CompareType.DATABASE, database_name, logs)

    def _table_extras(self, table: TableSchema, table_key: str) -> list[CompareLog]:
        logs: list[CompareLog] = []
        for column in table.columns.values():
            if (table_key, column.name.lower()) not in self._visits.columns:
                self._logger(CompareType.COLUMN, column.name, logs).extra_in_database(
                    column.name, CompareAttribute.COLUMN_NAME
                )
        primary_key = table.primary_key
        if primary_key is not None and primary_key.columns and table_key not in self._visits.primary_keys:
            self._logger(
                CompareType.PRIMARY_KEY, primary_key.name or f"PK_{table.name}", logs
            ).extra_in_database(column_list(primary_key.columns), CompareAttribute.KEY_COLUMNS)
        for fk in table.foreign_keys.values():
            if (table_key, fk.name.lower()) not in self._visits.foreign_keys:
                self._logger(CompareType.FOREIGN_KEY, fk.name, logs).extra_in_database(
                    column_list(fk.columns), CompareAttribute.NOT_SET
                )
        for index in table.indexes.values():
            if (table_key, index.name.lower()) not in self._visits.indexes:
                self._logger(CompareType.INDEX, index.name, logs).extra_in_database(
                    column_list(index.columns), CompareAttribute.INDEX_COLUMNS
                )
        return logs

    # ------------------------------------------------------------------
    # Deferred attributes
    # ------------------------------------------------------------------

    def resolve_deferred(
        self, model_logs: Iterable[CompareLog], verdict: SemanticVerdict | None
    ) -> list[CompareLog]:
        """Settle deferred entries once the semantic pass has (or has not) run.

        With no ``verdict`` every deferred entry becomes an ordinary entry.
        Otherwise equivalent attributes are reclassified as Ok, and the rest
        stay deferred because the semantic pass logged them itself.
        ``model_logs`` must be the ``compare_model`` results in call order.
        """
        resolved = []
        for model_index, model_log in enumerate(model_logs):
            entity_logs = []
            for entity_index, entity_log in enumerate(model_log.sub_logs):
                table_key = self._entity_tables.get((model_index, entity_index))
                entity_logs.append(self._resolve_entity(entity_log, table_key, verdict))
            resolved.append(CompareLog.container(model_log.type, model_log.name, entity_logs))
        return resolved

    def _resolve_entity(
        self, entity_log: CompareLog, table_key: str | None, verdict: SemanticVerdict | None
    ) -> CompareLog:
        children = []
        for child in entity_log.sub_logs:
            if child.type == CompareType.PROPERTY:
                leaves = [_resolve_leaf(leaf, table_key, verdict) for leaf in child.sub_logs]
                child = CompareLog.container(child.type, child.name, leaves)
            children.append(child)
        return CompareLog.container(entity_log.type, entity_log.name, children)


def _resolve_leaf(leaf: CompareLog, table_key: str | None, verdict: SemanticVerdict | None) -> CompareLog:
    if not leaf.deferred:
        return leaf
    outcome = None
    if verdict is not None and table_key is not None:
        outcome = verdict(table_key, leaf.name.lower(), leaf.attribute)
    if outcome is None:
        return leaf.model_copy(update={"deferred": False})
    if outcome:
        return leaf.model_copy(update={"deferred": False, "state": CompareState.OK})
    return leaf


def _find_by_columns(
    candidates: Iterable[ForeignKeySchema | IndexSchema],
    columns: list[str],
    prefer_unique: bool | None = None,
) -> ForeignKeySchema | IndexSchema | None:
    wanted = [c.lower() for c in columns]
    matches = [c for c in candidates if [col.lower() for col in c.columns] == wanted]
    if prefer_unique is not None:
        for match in matches:
            if getattr(match, "is_unique", None) == prefer_unique:
                return match
    return matches[0] if matches else None


def _uniqueness(is_unique: bool) -> str:
    return "unique" if is_unique else "not unique"
