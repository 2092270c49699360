"""Tests for heuristic key repair."""

from ddl2data.core.integrity.repair import IntegrityRepairer
from ddl2data.core.integrity.validator import validate_dataset
from ddl2data.core.schema.types import (
    ColumnMetadata,
    ForeignKey,
    SchemaMetadata,
    TableMetadata,
)


def _schema(declared_pk=True):
    authors = TableMetadata(
        name="authors",
        columns={"id": ColumnMetadata(type="int"), "name": ColumnMetadata()},
        primary_key=["id"] if declared_pk else [],
    )
    books = TableMetadata(
        name="books",
        columns={"id": ColumnMetadata(type="int"), "author_id": ColumnMetadata(type="int")},
        primary_key=["id"],
        foreign_keys=[ForeignKey(["author_id"], "authors", ["id"])],
    )
    return SchemaMetadata(tables={"authors": authors, "books": books})


def test_duplicate_and_null_keys_rewritten():
    schema = _schema()
    data = {
        "authors": [{"id": 3, "name": "a"}, {"id": 3, "name": "b"}, {"id": None, "name": "c"}],
        "books": [{"id": 1, "author_id": 3}],
    }
    audit = IntegrityRepairer().repair(schema, data)

    assert [r["id"] for r in data["authors"]] == [1, 2, 3]
    assert audit.pk_rewrites == {"authors": 3}
    assert "Rewrote authors.id to 1..3" in audit.notes


def test_dangling_foreign_keys_round_robin():
    schema = _schema()
    data = {
        "authors": [{"id": 10, "name": "a"}, {"id": 20, "name": "b"}],
        "books": [
            {"id": 1, "author_id": 99},
            {"id": 2, "author_id": None},
            {"id": 3, "author_id": 20},
            {"id": 4, "author_id": "x"},
        ],
    }
    audit = IntegrityRepairer().repair(schema, data)

    assert [r["author_id"] for r in data["books"]] == [10, 20, 20, 10]
    assert audit.fk_rewrites == {"books.author_id": 3}
    assert validate_dataset(schema, data).passed


def test_valid_keys_untouched():
    schema = _schema()
    data = {
        "authors": [{"id": 5, "name": "a"}, {"id": 7, "name": "b"}],
        "books": [{"id": 1, "author_id": 7}],
    }
    audit = IntegrityRepairer().repair(schema, data)

    assert not audit.changed
    assert [r["id"] for r in data["authors"]] == [5, 7]


def test_booleans_and_long_strings_are_not_usable_keys():
    schema = _schema()
    data = {
        "authors": [{"id": True, "name": "a"}, {"id": False, "name": "b"}],
        "books": [{"id": "x" * 41, "author_id": 1}],
    }
    audit = IntegrityRepairer().repair(schema, data)

    assert [r["id"] for r in data["authors"]] == [1, 2]
    assert data["books"][0]["id"] == 1
    assert audit.pk_rewrites == {"authors": 2, "books": 1}


def test_empty_table_gets_one_row():
    schema = _schema()
    data = {"authors": [], "books": [{"id": 1, "author_id": 42}]}
    audit = IntegrityRepairer().repair(schema, data)

    assert data["authors"] == [{"id": 1, "name": None}]
    assert data["books"][0]["author_id"] == 1
    assert "Synthesized 1 row for empty table authors" in audit.notes


def test_inferred_key_noted():
    schema = _schema(declared_pk=False)
    data = {"authors": [{"id": 1, "name": "a"}], "books": [{"id": 1, "author_id": 1}]}
    audit = IntegrityRepairer().repair(schema, data)

    assert "Inferred PK authors.id (not declared in schema)" in audit.notes


def test_composite_foreign_keys_skipped():
    parent = TableMetadata(
        name="p",
        columns={"a": ColumnMetadata(type="int"), "b": ColumnMetadata(type="int")},
        primary_key=["a", "b"],
    )
    child = TableMetadata(
        name="c",
        columns={"a": ColumnMetadata(type="int"), "b": ColumnMetadata(type="int")},
        foreign_keys=[ForeignKey(["a", "b"], "p", ["a", "b"])],
    )
    schema = SchemaMetadata(tables={"p": parent, "c": child})
    data = {"p": [{"a": 1, "b": 1}], "c": [{"a": 9, "b": 9}]}

    IntegrityRepairer().repair(schema, data)

    assert data["c"] == [{"a": 9, "b": 9}]


def _users_profiles_schema():
    users = TableMetadata(
        name="users",
        columns={"id": ColumnMetadata(type="int")},
        primary_key=["id"],
    )
    profiles = TableMetadata(
        name="profiles",
        columns={"user_id": ColumnMetadata(type="int"), "bio": ColumnMetadata()},
        primary_key=["user_id"],
        foreign_keys=[ForeignKey(["user_id"], "users", ["id"])],
    )
    return SchemaMetadata(tables={"profiles": profiles, "users": users})


def test_shared_key_column_never_duplicates_parent_keys():
    schema = _users_profiles_schema()
    data = {
        "users": [{"id": 1}, {"id": 2}],
        "profiles": [
            {"user_id": 1, "bio": "a"},
            {"user_id": 2, "bio": "b"},
            {"user_id": 3, "bio": "c"},
        ],
    }
    audit = IntegrityRepairer().repair(schema, data)

    assert [r["user_id"] for r in data["profiles"]] == [1, 2]
    assert audit.dropped_rows == {"profiles": 1}
    assert audit.to_dict()["droppedRows"] == {"profiles": 1}
    report = validate_dataset(schema, data)
    assert report.passed
    assert report.summary["pkDuplicates"] == 0


def test_shared_key_column_takes_unused_parent_keys_first():
    schema = _users_profiles_schema()
    data = {
        "users": [{"id": 1}, {"id": 2}, {"id": 3}],
        "profiles": [
            {"user_id": 2, "bio": "a"},
            {"user_id": 9, "bio": "b"},
            {"user_id": 7, "bio": "c"},
        ],
    }
    audit = IntegrityRepairer().repair(schema, data)

    assert [r["user_id"] for r in data["profiles"]] == [2, 1, 3]
    assert audit.fk_rewrites == {"profiles.user_id": 2}
    assert not audit.dropped_rows
