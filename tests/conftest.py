import sqlite3

import pytest

PLANETS_SQL = """
CREATE TABLE planets (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    diameter INTEGER NOT NULL,
    distance INTEGER NOT NULL,
    moons INTEGER NOT NULL
);

INSERT INTO planets (id, name, type, diameter, distance, moons)
VALUES
(1, 'Mercury', 'Terrestrial', 4879, 57910000, 0),
(2, 'Venus', 'Terrestrial', 12104, 108200000, 0),
(3, 'Earth', 'Terrestrial', 12742, 149600000, 1),
(4, 'Mars', 'Terrestrial', 6779, 227900000, 2),
(5, 'Jupiter', 'Gas Giant', 139820, 778500000, 79),
(6, 'Saturn', 'Gas Giant', 116460, 1433000000, 83),
(7, 'Uranus', 'Ice Giant', 50724, 2871000000, 27),
(8, 'Neptune', 'Ice Giant', 49244, 4495000000, 14);
"""

PLANETS = [
    (1, "Mercury", "Terrestrial", 4879, 57910000, 0),
    (2, "Venus", "Terrestrial", 12104, 108200000, 0),
    (3, "Earth", "Terrestrial", 12742, 149600000, 1),
    (4, "Mars", "Terrestrial", 6779, 227900000, 2),
    (5, "Jupiter", "Gas Giant", 139820, 778500000, 79),
    (6, "Saturn", "Gas Giant", 116460, 1433000000, 83),
    (7, "Uranus", "Ice Giant", 50724, 2871000000, 27),
    (8, "Neptune", "Ice Giant", 49244, 4495000000, 14),
]


SCHOOL_SQL = """
CREATE TABLE students (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, year INTEGER);
CREATE TABLE courses (code TEXT PRIMARY KEY, title TEXT);
CREATE TABLE enrolments (student_id INTEGER, course_code TEXT);
CREATE INDEX enrolments_student ON enrolments (student_id);
CREATE VIEW first_years AS SELECT * FROM students WHERE year = 1;
CREATE TRIGGER forget_student AFTER DELETE ON students
BEGIN
    DELETE FROM enrolments WHERE student_id = old.id;
END;
INSERT INTO students (name, year) VALUES ('ada', 1), ('bob', 2);
"""


def create_database(path, script, page_size=4096):
    connection = sqlite3.connect(path)
    try:
        connection.execute(f"PRAGMA page_size = {page_size}")
        connection.executescript(script)
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture
def planets_db(tmp_path):
    return str(create_database(tmp_path / "planets.db", PLANETS_SQL))


@pytest.fixture
def big_db(tmp_path):
    """
    Small pages and a few thousand rows, so the table needs interior pages
    and at least one level of them.
    """
    path = tmp_path / "big.db"
    connection = sqlite3.connect(path)
    try:
        connection.execute("PRAGMA page_size = 512")
        connection.execute(
            "CREATE TABLE numbers (id INTEGER PRIMARY KEY, label TEXT, squared INTEGER)"
        )
        connection.executemany(
            "INSERT INTO numbers VALUES (?, ?, ?)",
            [(i, f"number {i}", i * i) for i in range(1, 3001)],
        )
        connection.commit()
    finally:
        connection.close()
    return str(path)


@pytest.fixture
def overflow_db(tmp_path):
    path = tmp_path / "overflow.db"
    connection = sqlite3.connect(path)
    try:
        connection.execute("PRAGMA page_size = 1024")
        connection.execute("CREATE TABLE documents (id INTEGER PRIMARY KEY, body TEXT, data BLOB)")
        connection.executemany(
            "INSERT INTO documents VALUES (?, ?, ?)",
            [
                (1, "short", b"\x00\x01"),
                (2, "x" * 10000, bytes(range(256)) * 20),
                (3, "ünïcödé " * 500, None),
            ],
        )
        connection.commit()
    finally:
        connection.close()
    return str(path)


def sqlite_master(path):
    connection = sqlite3.connect(path)
    try:
        return connection.execute(
            "SELECT type, name, tbl_name, rootpage, sql FROM sqlite_master ORDER BY rowid"
        ).fetchall()
    finally:
        connection.close()
