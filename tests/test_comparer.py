"""Tests for the comparison orchestrator: stages, gating, suppression, table scope."""

import enum
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Column, Enum, Integer, MetaData, Table
from sqlalchemy.dialects.postgresql import ARRAY

from schema_compare import SchemaComparer, compare
from schema_compare.compare.ignore import IgnorePattern
from schema_compare.compare.log import (
    CompareAttribute,
    CompareLog,
    CompareState,
    CompareType,
    list_all_errors,
    render_errors,
    walk,
)
from schema_compare.config.models import CompareConfig
from schema_compare.errors import CompareUsageError
from schema_compare.schema.introspector import SchemaIntrospector
from schema_compare.schema.metadata import load_logical_schema
from schema_compare.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    EntityModel,
    LogicalSchema,
    PrimaryKeySchema,
    PropertyModel,
    TableSchema,
)


def _extra_table_leaves(logs: tuple[CompareLog, ...]) -> list[CompareLog]:
    return [
        log
        for log in walk(logs)
        if log.type == CompareType.TABLE
        and log.state == CompareState.EXTRA_IN_DATABASE
        and not log.sub_logs
    ]


def _has_reference_log(logs: tuple[CompareLog, ...]) -> bool:
    return any(log.name.endswith("(reference)") for log in logs)


# ============================================================================
# Test: Scenarios
# ============================================================================


class TestScenarios:
    """End-to-end comparisons of the book library."""

    def test_identical_schemas(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Identical schemas: no errors, only Ok entries."""
        has_errors, logs = compare(library_model, library_database)

        assert has_errors is False
        assert all(log.state == CompareState.OK for log in walk(logs))
        assert _has_reference_log(logs)

    def test_missing_column(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """A missing column is exactly one NotInDatabase Column entry."""
        del library_database.tables["public.authors"].columns["name"]

        has_errors, logs = compare(library_model, library_database)

        errors = [log for log in walk(logs) if log.is_error]
        assert has_errors is True
        assert len(errors) == 1
        assert errors[0].type == CompareType.COLUMN
        assert errors[0].state == CompareState.NOT_IN_DATABASE
        assert errors[0].attribute == CompareAttribute.COLUMN_NAME

    def test_extra_table(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """An unmapped table is one ExtraInDatabase Table entry named after it."""
        library_database.add_table(audit_table)

        has_errors, logs = compare(library_model, library_database)

        assert has_errors is True
        (extra,) = _extra_table_leaves(logs)
        assert extra.name == "Audit"

    def test_extra_table_ignored(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """An ignored extra table stays in the log but not in the errors."""
        library_database.add_table(audit_table)
        config = CompareConfig()
        config.add_ignore_rule(
            IgnorePattern(type=CompareType.TABLE, state=CompareState.EXTRA_IN_DATABASE)
        )

        has_errors, logs = compare(library_model, library_database, config)

        assert has_errors is False
        (extra,) = _extra_table_leaves(logs)
        assert extra.name == "Audit" and extra.ignored is True
        assert "Audit" not in render_errors(logs)

    def test_equivalent_type_spelling(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """A type spelled differently but equivalent ends up Ok."""
        library_database.tables["public.books"].columns["id"].data_type = "int4"

        has_errors, logs = compare(library_model, library_database)

        assert has_errors is False
        type_leaves = [
            log
            for log in walk(logs[:1])
            if log.attribute == CompareAttribute.COLUMN_TYPE and log.name == "id"
        ]
        assert [leaf.state for leaf in type_leaves] == [CompareState.OK, CompareState.OK]


# ============================================================================
# Test: Stage 2 gating
# ============================================================================


class TestStageGating:
    """Verify when the semantic pass runs."""

    def test_stage2_skipped_after_stage1_errors(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Stage 1 errors stop the run before Stage 2."""
        del library_database.tables["public.authors"].columns["name"]

        comparer = SchemaComparer()
        comparer.compare(library_model, library_database)

        assert len(comparer.logs) == 2
        assert not _has_reference_log(comparer.logs)

    def test_always_run_stage2(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """always_run_stage2 runs Stage 2 regardless."""
        del library_database.tables["public.authors"].columns["name"]

        comparer = SchemaComparer(CompareConfig(always_run_stage2=True))
        comparer.compare(library_model, library_database)

        assert _has_reference_log(comparer.logs)

    def test_deferred_differences_do_not_gate(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """A real type difference is reported once, by Stage 2."""
        library_database.tables["public.books"].columns["title"].data_type = "text"

        comparer = SchemaComparer()
        has_errors = comparer.compare(library_model, library_database)

        assert has_errors is True
        assert comparer.all_errors.splitlines() == [
            "DIFFERENT: Column 'library (reference)->books->title', column type. "
            "Expected = character varying(100), found = text"
        ]

    def test_deferred_become_errors_when_stage2_skipped(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Without Stage 2, Stage 1's raw differences are reported."""
        del library_database.tables["public.authors"].columns["name"]
        library_database.tables["public.books"].columns["title"].data_type = "text"

        comparer = SchemaComparer()
        comparer.compare(library_model, library_database)

        assert comparer.all_errors.splitlines() == [
            "DIFFERENT: Column 'Library->Book->Title->title', column type. "
            "Expected = varchar(100), found = text",
            "NOT IN DATABASE: Column 'Library->Author->Name->name', column name. Expected = name",
        ]


# ============================================================================
# Test: Suppression
# ============================================================================


class TestSuppression:
    """Verify ignore rules exclude exactly what they match."""

    def test_matched_entries_kept_but_not_counted(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Suppressed entries are in the tree, not in the errors."""
        library_database.tables["public.books"].columns["title"].max_length = 50
        config = CompareConfig(
            ignore_rules=[
                IgnorePattern(
                    type=CompareType.COLUMN,
                    state=CompareState.DIFFERENT_IN_DATABASE,
                    attribute=CompareAttribute.MAX_LENGTH,
                )
            ]
        )

        comparer = SchemaComparer(config)
        has_errors = comparer.compare(library_model, library_database)

        assert has_errors is False
        assert comparer.all_errors == ""
        ignored = [log for log in walk(comparer.logs) if log.ignored]
        assert [log.attribute for log in ignored] == [CompareAttribute.MAX_LENGTH]

    def test_no_propagation_to_other_tables(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Ignoring a missing table does not hide a missing column elsewhere."""
        del library_database.tables["public.authors"]
        del library_database.tables["public.books"].columns["title"]
        config = CompareConfig(
            ignore_rules=[
                IgnorePattern(type=CompareType.TABLE, state=CompareState.NOT_IN_DATABASE)
            ]
        )

        comparer = SchemaComparer(config)
        has_errors = comparer.compare(library_model, library_database)

        assert has_errors is True
        assert comparer.all_errors.splitlines() == [
            "NOT IN DATABASE: Column 'Library->Book->Title->title', column name. Expected = title"
        ]

    def test_named_pattern_only_matches_that_name(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """A name in the pattern restricts it to one object."""
        library_database.add_table(audit_table)
        library_database.add_table(TableSchema(name="logs"))
        config = CompareConfig(
            ignore_rules=[
                IgnorePattern(
                    type=CompareType.TABLE, state=CompareState.EXTRA_IN_DATABASE, name="audit"
                )
            ]
        )

        has_errors, logs = compare(library_model, library_database, config)

        assert has_errors is True
        assert list_all_errors(logs) == [
            "EXTRA IN DATABASE: Table 'library->logs', table name. Found = public.logs"
        ]


# ============================================================================
# Test: Table scope
# ============================================================================


class TestTableScope:
    """Verify tables_to_include / tables_to_ignore."""

    def test_every_extra_table_reported_once(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """Each unreached table appears exactly once."""
        library_database.add_table(audit_table)
        library_database.add_table(TableSchema(name="logs"))

        _, logs = compare(library_model, library_database)

        assert sorted(leaf.name for leaf in _extra_table_leaves(logs)) == ["Audit", "logs"]

    def test_tables_to_include(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """Only the listed tables are compared."""
        library_database.add_table(audit_table)

        has_errors, logs = compare(
            library_model,
            library_database,
            CompareConfig(tables_to_include="books, public.authors"),
        )

        assert has_errors is False
        assert _extra_table_leaves(logs) == []

    def test_tables_to_ignore(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """Listed tables are removed before comparing, case-insensitively."""
        library_database.add_table(audit_table)

        has_errors, _ = compare(
            library_model, library_database, CompareConfig(tables_to_ignore="public.audit")
        )

        assert has_errors is False

    def test_caller_database_not_modified(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """Exclusion works on a copy."""
        library_database.add_table(audit_table)

        compare(library_model, library_database, CompareConfig(tables_to_ignore="Audit"))

        assert "public.Audit" in library_database.tables

    def test_unknown_table_to_ignore(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """A listed table that does not exist is a usage error."""
        with pytest.raises(CompareUsageError) as exc_info:
            compare(library_model, library_database, CompareConfig(tables_to_ignore="Missing"))

        assert str(exc_info.value) == (
            "The tables_to_ignore option contains a table name of 'Missing', "
            "which was not found in the database"
        )

    def test_unknown_table_to_include(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """The allow-list is checked the same way."""
        with pytest.raises(CompareUsageError, match="tables_to_include"):
            compare(
                library_model,
                library_database,
                CompareConfig(tables_to_include="books,billing.invoices"),
            )


# ============================================================================
# Test: Runs and usage
# ============================================================================


class TestComparerRuns:
    """Verify run-level behavior."""

    def test_idempotent(
        self,
        library_model: LogicalSchema,
        library_database: DatabaseSchema,
        audit_table: TableSchema,
    ) -> None:
        """Comparing the same pair twice yields identical trees."""
        library_database.add_table(audit_table)
        library_database.tables["public.books"].columns["id"].data_type = "int4"
        comparer = SchemaComparer()

        comparer.compare(library_model, library_database)
        first = comparer.logs
        comparer.compare(library_model, library_database)

        assert comparer.logs == first

    def test_multiple_logical_schemas(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Several logical schemas share one database and one extras check."""
        books = library_model.model_copy(
            update={"name": "Books", "entities": library_model.entities[:1]}
        )
        authors = library_model.model_copy(
            update={"name": "Authors", "entities": library_model.entities[1:]}
        )

        comparer = SchemaComparer()
        has_errors = comparer.compare([books, authors], library_database)

        assert has_errors is False
        assert [log.name for log in comparer.logs] == [
            "Books",
            "Authors",
            "library",
            "library (reference)",
        ]

    def test_same_named_logical_schemas(self) -> None:
        """Equal model and entity names still resolve against their own tables."""
        first = LogicalSchema(
            name="app",
            entities=[
                EntityModel(
                    name="Item",
                    table_name="books",
                    properties=[
                        PropertyModel(name="Title", column_name="title", column_type="varchar(100)")
                    ],
                )
            ],
        )
        second = LogicalSchema(
            name="app",
            entities=[
                EntityModel(
                    name="Item",
                    table_name="authors",
                    properties=[PropertyModel(name="Name", column_name="name", column_type="text")],
                )
            ],
        )
        database = DatabaseSchema(name="app")
        database.add_table(
            TableSchema(
                name="books",
                columns={"title": ColumnSchema(name="title", data_type="character varying(100)")},
            )
        )
        database.add_table(
            TableSchema(name="authors", columns={"name": ColumnSchema(name="name", data_type="text")})
        )

        comparer = SchemaComparer()

        assert comparer.compare([first, second], database) is False
        assert comparer.all_errors == ""
        assert all(log.state == CompareState.OK for log in comparer.logs[:2])

    def test_no_logical_schema(self, library_database: DatabaseSchema) -> None:
        """An empty sequence is a usage error."""
        with pytest.raises(CompareUsageError):
            SchemaComparer().compare([], library_database)

    def test_ok_ignore_pattern_rejected(self) -> None:
        """Ok entries cannot be ignored."""
        config = CompareConfig()
        with pytest.raises(CompareUsageError):
            config.add_ignore_rule(IgnorePattern(type=CompareType.TABLE, state=CompareState.OK))

    def test_ok_pattern_in_list_rejected_at_compare(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """An Ok pattern placed directly in the list is rejected when the run starts."""
        config = CompareConfig(
            ignore_rules=[IgnorePattern(type=CompareType.TABLE, state=CompareState.OK)]
        )
        with pytest.raises(CompareUsageError):
            compare(library_model, library_database, config)

    def test_unknown_dialect(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Only known dialects are accepted."""
        with pytest.raises(CompareUsageError, match="Unknown dialect"):
            compare(library_model, library_database, CompareConfig(dialect="oracle"))

    def test_config_snapshot(
        self, library_model: LogicalSchema, library_database: DatabaseSchema
    ) -> None:
        """Rules added after a run do not change its log."""
        library_database.tables["public.books"].columns["title"].max_length = 50
        config = CompareConfig()
        comparer = SchemaComparer(config)

        assert comparer.compare(library_model, library_database) is True
        logs = comparer.logs
        config.add_ignore_rule(
            IgnorePattern(type=CompareType.COLUMN, state=CompareState.DIFFERENT_IN_DATABASE)
        )

        assert comparer.logs == logs
        assert comparer.has_errors is True


# ============================================================================
# Test: SQLAlchemy model against an introspected database
# ============================================================================


class Mood(enum.Enum):
    happy = "happy"
    sad = "sad"


class TestNamedAndArrayTypes:
    """Enum and ARRAY columns of a database built from the model compare clean."""

    def test_enum_and_array_table_matches(self) -> None:
        """Serial key, native enum and integer array report no differences."""
        metadata = MetaData()
        Table(
            "people",
            metadata,
            Column("id", Integer, primary_key=True),
            Column("mood", Enum(Mood)),
            Column("tags", ARRAY(Integer)),
        )
        model = load_logical_schema(metadata, name="app")

        # information_schema.columns rows as PostgreSQL reports them
        introspector = SchemaIntrospector("postgresql://localhost/app")
        introspector._conn = MagicMock()
        cursor = introspector._conn.cursor.return_value.__enter__.return_value
        cursor.fetchall.return_value = [
            ("id", "integer", "int4", "NO", "nextval('people_id_seq'::regclass)", None, 32, 0, None),
            ("mood", "USER-DEFINED", "mood", "YES", None, None, None, None, None),
            ("tags", "ARRAY", "_int4", "YES", None, None, None, None, None),
        ]
        database = DatabaseSchema(name="app")
        database.add_table(
            TableSchema(
                name="people",
                columns=introspector._get_columns("public", "people"),
                primary_key=PrimaryKeySchema(name="people_pkey", columns=["id"]),
            )
        )

        comparer = SchemaComparer()

        assert comparer.compare(model, database) is False
        assert comparer.all_errors == ""
        assert _has_reference_log(comparer.logs)
