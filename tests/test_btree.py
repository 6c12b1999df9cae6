import sqlite3

import pytest

from sqlite_inspect.btree import BTreeWalker
from sqlite_inspect.exceptions import FormatError, UnsupportedFeatureError
from sqlite_inspect.pager import Pager
from sqlite_inspect.rows import TableSchema
from sqlite_inspect.schema import SchemaCatalog

from conftest import PLANETS


def rootpage(path, name):
    connection = sqlite3.connect(path)
    try:
        return connection.execute(
            "SELECT rootpage FROM sqlite_master WHERE name = ?", (name,)
        ).fetchone()[0]
    finally:
        connection.close()


def patch(path, offset, data):
    with open(path, "r+b") as f:
        f.seek(offset)
        f.write(data)


def test_planets_rows(planets_db):
    with Pager.open(planets_db) as pager:
        walker = BTreeWalker(pager)
        catalog = SchemaCatalog.load(walker)
        rows = list(walker.walk(catalog.table("planets")))

    assert len(rows) == 8
    assert [row.rowid for row in rows] == list(range(1, 9))
    assert [row.values for row in rows] == PLANETS


def test_multi_level_table(big_db):
    with Pager.open(big_db) as pager:
        walker = BTreeWalker(pager)
        table = SchemaCatalog.load(walker).table("numbers")
        assert pager.load_page(table.rootpage).page_type.is_interior

        rows = list(walker.walk(table))
        assert walker.count(table.rootpage) == 3000

    assert len(rows) == 3000
    rowids = [row.rowid for row in rows]
    assert all(a < b for a, b in zip(rowids, rowids[1:]))
    assert rows[0].values == (1, "number 1", 1)
    assert rows[-1].values == (3000, "number 3000", 9000000)


def test_integer_primary_key_is_the_rowid(tmp_path):
    path = str(tmp_path / "alias.db")
    connection = sqlite3.connect(path)
    connection.execute("CREATE TABLE people (name TEXT, person_id INTEGER PRIMARY KEY)")
    connection.executemany(
        "INSERT INTO people VALUES (?, ?)", [("ada", 10), ("bob", -3), ("cy", 2**40)]
    )
    connection.commit()
    connection.close()

    with Pager.open(path) as pager:
        walker = BTreeWalker(pager)
        rows = list(walker.walk(SchemaCatalog.load(walker).table("people")))

    assert [row.values for row in rows] == [("bob", -3), ("ada", 10), ("cy", 2**40)]
    assert all(row.values[1] == row.rowid for row in rows)


def test_table_without_alias_keeps_stored_values(tmp_path):
    path = str(tmp_path / "plain.db")
    connection = sqlite3.connect(path)
    connection.execute("CREATE TABLE events (id INT PRIMARY KEY, what TEXT)")
    connection.executemany("INSERT INTO events VALUES (?, ?)", [(50, "a"), (40, "b")])
    connection.commit()
    connection.close()

    with Pager.open(path) as pager:
        walker = BTreeWalker(pager)
        rows = list(walker.walk(SchemaCatalog.load(walker).table("events")))

    assert [(row.rowid, row.values) for row in rows] == [(1, (50, "a")), (2, (40, "b"))]


def test_virtual_generated_columns_are_not_in_the_record(tmp_path):
    path = str(tmp_path / "boxes.db")
    connection = sqlite3.connect(path)
    connection.execute(
        "CREATE TABLE boxes (w INT, area INT GENERATED ALWAYS AS (w * w) VIRTUAL, "
        "id INTEGER PRIMARY KEY, side INT AS (w * 4) STORED)"
    )
    connection.executemany("INSERT INTO boxes (w, id) VALUES (?, ?)", [(3, 7), (5, 9)])
    connection.commit()
    connection.close()

    with Pager.open(path) as pager:
        walker = BTreeWalker(pager)
        rows = list(walker.walk(SchemaCatalog.load(walker).table("boxes")))

    # w, id (the rowid) and the stored side, no area
    assert [row.values for row in rows] == [(3, 7, 12), (5, 9, 20)]


def test_overflow_payloads(overflow_db):
    with Pager.open(overflow_db) as pager:
        walker = BTreeWalker(pager)
        rows = list(walker.walk(SchemaCatalog.load(walker).table("documents")))

    assert rows[0].values == (1, "short", b"\x00\x01")
    assert rows[1].values == (2, "x" * 10000, bytes(range(256)) * 20)
    assert rows[2].values == (3, "ünïcödé " * 500, None)


def test_depth_limit(big_db):
    with Pager.open(big_db) as pager:
        walker = BTreeWalker(pager, max_depth=0)
        catalog = SchemaCatalog.load(walker)

        with pytest.raises(FormatError):
            list(walker.walk(catalog.table("numbers")))


def test_cycle_is_format_error(big_db):
    root = rootpage(big_db, "numbers")
    # point the root's right-most child back at the root itself
    patch(big_db, (root - 1) * 512 + 8, root.to_bytes(4, "big"))

    with Pager.open(big_db) as pager:
        walker = BTreeWalker(pager, max_depth=1000)
        catalog = SchemaCatalog.load(walker)

        with pytest.raises(FormatError) as excinfo:
            list(walker.walk(catalog.table("numbers")))

    assert excinfo.value.page == root


def test_out_of_order_children_are_reported_not_sorted(big_db):
    root = rootpage(big_db, "numbers")
    start = (root - 1) * 512
    with open(big_db, "rb") as f:
        f.seek(start + 12)
        first, second = f.read(2), f.read(2)
    patch(big_db, start + 12, second + first)

    with Pager.open(big_db) as pager:
        walker = BTreeWalker(pager)
        catalog = SchemaCatalog.load(walker)

        with pytest.raises(FormatError):
            list(walker.walk(catalog.table("numbers")))


def test_index_btree_is_not_walked(planets_db):
    connection = sqlite3.connect(planets_db)
    connection.execute("CREATE INDEX planets_name ON planets (name)")
    connection.commit()
    connection.close()
    index_root = rootpage(planets_db, "planets_name")

    with Pager.open(planets_db) as pager:
        walker = BTreeWalker(pager)

        with pytest.raises(UnsupportedFeatureError):
            list(walker.walk(TableSchema("planets_name", index_root, ("name",))))


def test_without_rowid_table_is_not_walked(tmp_path):
    path = str(tmp_path / "without_rowid.db")
    connection = sqlite3.connect(path)
    connection.execute("CREATE TABLE kv (k TEXT PRIMARY KEY, v TEXT) WITHOUT ROWID")
    connection.execute("INSERT INTO kv VALUES ('a', 'b')")
    connection.commit()
    connection.close()

    with Pager.open(path) as pager:
        walker = BTreeWalker(pager)
        catalog = SchemaCatalog.load(walker)

        with pytest.raises(UnsupportedFeatureError):
            list(walker.walk(catalog.table("kv")))


def test_truncated_file_is_io_error(planets_db):
    with open(planets_db, "r+b") as f:
        f.truncate(4096 + 1000)

    with Pager.open(planets_db) as pager:
        walker = BTreeWalker(pager)
        catalog = SchemaCatalog.load(walker)

        with pytest.raises(IOError):
            list(walker.walk(catalog.table("planets")))


def test_page_number_outside_database(planets_db):
    with Pager.open(planets_db) as pager:
        with pytest.raises(FormatError):
            pager.read_page(0)
        with pytest.raises(FormatError):
            pager.read_page(3)


def test_negative_max_depth_is_rejected(planets_db):
    with Pager.open(planets_db) as pager:
        with pytest.raises(ValueError):
            BTreeWalker(pager, max_depth=-1)
