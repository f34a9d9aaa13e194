"""Shared fixtures: a small book library declared both ways.

``library_model`` is the logical schema an application declares and
``library_database`` is the physical schema a clean database created from
it would report. Each test gets fresh copies and may change them freely.
"""

import pytest

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


def build_library_model() -> LogicalSchema:
    return LogicalSchema(
        name="Library",
        entities=[
            EntityModel(
                name="Book",
                table_name="books",
                properties=[
                    PropertyModel(
                        name="Id", column_name="id", column_type="integer",
                        is_nullable=False, is_key=True,
                    ),
                    PropertyModel(
                        name="Title", column_name="title", column_type="varchar(100)",
                        is_nullable=False, max_length=100,
                    ),
                    PropertyModel(
                        name="AuthorId", column_name="author_id", column_type="integer",
                        is_nullable=False,
                    ),
                ],
                primary_key_name="books_pkey",
                foreign_keys=[
                    ForeignKeyModel(
                        name="books_author_id_fkey",
                        columns=["author_id"],
                        principal_table="authors",
                        principal_columns=["id"],
                        on_delete="CASCADE",
                    )
                ],
                indexes=[IndexModel(name="ix_books_title", columns=["title"])],
            ),
            EntityModel(
                name="Author",
                table_name="authors",
                properties=[
                    PropertyModel(
                        name="Id", column_name="id", column_type="integer",
                        is_nullable=False, is_key=True,
                    ),
                    PropertyModel(
                        name="Name", column_name="name", column_type="text",
                        is_nullable=False,
                    ),
                ],
                primary_key_name="authors_pkey",
            ),
        ],
    )


def build_library_database() -> DatabaseSchema:
    database = DatabaseSchema(name="library")
    database.add_table(
        TableSchema(
            name="books",
            columns={
                "id": ColumnSchema(name="id", data_type="integer", is_nullable=False),
                "title": ColumnSchema(
                    name="title", data_type="varchar(100)", is_nullable=False, max_length=100
                ),
                "author_id": ColumnSchema(name="author_id", data_type="integer", is_nullable=False),
            },
            primary_key=PrimaryKeySchema(name="books_pkey", columns=["id"]),
            foreign_keys={
                "books_author_id_fkey": ForeignKeySchema(
                    name="books_author_id_fkey",
                    columns=["author_id"],
                    references_schema="public",
                    references_table="authors",
                    references_columns=["id"],
                    on_delete="CASCADE",
                )
            },
            indexes={"ix_books_title": IndexSchema(name="ix_books_title", columns=["title"])},
        )
    )
    database.add_table(
        TableSchema(
            name="authors",
            columns={
                "id": ColumnSchema(name="id", data_type="integer", is_nullable=False),
                "name": ColumnSchema(name="name", data_type="text", is_nullable=False),
            },
            primary_key=PrimaryKeySchema(name="authors_pkey", columns=["id"]),
        )
    )
    return database


@pytest.fixture
def library_model() -> LogicalSchema:
    return build_library_model()


@pytest.fixture
def library_database() -> DatabaseSchema:
    return build_library_database()


@pytest.fixture
def audit_table() -> TableSchema:
    """A table no logical schema maps."""
    return TableSchema(
        name="Audit",
        columns={"id": ColumnSchema(name="id", data_type="integer", is_nullable=False)},
    )
