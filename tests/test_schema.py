import sqlite3

import pytest

from sqlite_inspect.btree import BTreeWalker
from sqlite_inspect.exceptions import UnsupportedFeatureError
from sqlite_inspect.pager import Pager
from sqlite_inspect.schema import SCHEMA_TABLE, SchemaCatalog

from conftest import SCHOOL_SQL, create_database, sqlite_master


@pytest.fixture
def school_db(tmp_path):
    return str(create_database(tmp_path / "school.db", SCHOOL_SQL))


def load_catalog(path):
    with Pager.open(path) as pager:
        return SchemaCatalog.load(BTreeWalker(pager))


def test_catalog_matches_sqlite(school_db):
    catalog = load_catalog(school_db)

    expected = sqlite_master(school_db)
    assert [
        (o.kind, o.name, o.table_name, o.rootpage, o.sql) for o in catalog.objects
    ] == [(kind, name, tbl, rootpage or 0, sql) for kind, name, tbl, rootpage, sql in expected]


def test_table_entries(school_db):
    catalog = load_catalog(school_db)

    # students, sqlite_sequence (AUTOINCREMENT), courses and enrolments
    assert catalog.count("table") == 4
    assert catalog.count("index") == 2  # enrolments_student and the courses autoindex
    assert catalog.count("view") == 1
    assert catalog.count("trigger") == 1
    assert [o.name for o in catalog.user_tables] == ["students", "courses", "enrolments"]

    roots = {name: rootpage for kind, name, _, rootpage, _ in sqlite_master(school_db)}
    for name in ("students", "courses", "enrolments", "sqlite_sequence"):
        assert catalog.table(name).rootpage == roots[name]

    assert catalog.table("students").columns == ("id", "name", "year")
    assert catalog.table("students").rowid_alias == 0
    assert catalog.table("courses").rowid_alias is None
    assert catalog.table("Enrolments").columns == ("student_id", "course_code")


def test_schema_size(school_db):
    catalog = load_catalog(school_db)

    assert catalog.schema_size == sum(
        len(sql) for *_, sql in sqlite_master(school_db) if sql is not None
    )


def test_schema_table_lookup(planets_db):
    catalog = load_catalog(planets_db)

    assert catalog.table("sqlite_master") is SCHEMA_TABLE
    assert catalog.table("sqlite_schema").rootpage == 1
    with pytest.raises(KeyError):
        catalog.table("moons")


def test_empty_database(tmp_path):
    # the schema page is written out, but ends up holding nothing
    path = str(create_database(tmp_path / "empty.db", "CREATE TABLE t (a); DROP TABLE t;"))

    catalog = load_catalog(path)

    assert catalog.objects == []
    assert catalog.tables == {}


def test_utf16_database_is_unsupported(tmp_path):
    path = str(
        create_database(
            tmp_path / "utf16.db", "PRAGMA encoding = 'UTF-16le'; CREATE TABLE t (a);"
        )
    )

    with pytest.raises(UnsupportedFeatureError):
        load_catalog(path)


def test_virtual_table_without_column_list(tmp_path):
    path = tmp_path / "search.db"
    try:
        create_database(path, "CREATE TABLE t (a); CREATE VIRTUAL TABLE docs USING fts4;")
    except sqlite3.OperationalError:
        pytest.skip("sqlite3 was built without fts4")

    catalog = load_catalog(str(path))

    (docs,) = [o for o in catalog.objects if o.name == "docs"]
    assert docs.kind == "table"
    assert docs.rootpage == 0
    assert "docs" not in catalog.tables
    # the shadow tables behind it are ordinary tables
    assert catalog.table("docs_content").rootpage > 0
    assert catalog.table("t").columns == ("a",)


def test_generated_columns_layout(tmp_path):
    path = str(
        create_database(
            tmp_path / "boxes.db",
            "CREATE TABLE boxes (w INT, area INT AS (w * w), "
            "id INTEGER PRIMARY KEY, side INT AS (w * 4) STORED);",
        )
    )

    table = load_catalog(path).table("boxes")

    assert table.generated == (None, "VIRTUAL", None, "STORED")
    assert table.stored_columns == (0, 2, 3)
    assert table.stored_rowid_alias == 1
    assert table.insert_positions == (0, 1)
