# https://www.sqlite.org/fileformat.html#the_database_header
DB_FILE_HEADER_SIZE = 100
SQLITE_MAGIC = b"SQLite format 3\x00"
MIN_PAGE_SIZE = 512
MAX_PAGE_SIZE = 65536

# SQLite refuses to open files with any other payload fractions
MAX_EMBEDDED_PAYLOAD_FRACTION = 64
MIN_EMBEDDED_PAYLOAD_FRACTION = 32
LEAF_PAYLOAD_FRACTION = 32

# https://www.sqlite.org/fileformat2.html#b_tree_pages
INTERIOR_PAGE_HEADER_SIZE = 12
LEAF_PAGE_HEADER_SIZE = 8
CELL_POINTER_SIZE = 2
CHILD_POINTER_SIZE = 4
OVERFLOW_POINTER_SIZE = 4

LAST_SEVEN_BITS_MASK = 0b_0111_1111
CONTINUATION_BIT_MASK = 0b_1000_0000
MAX_VARINT_LENGTH = 9

TEXT_ENCODINGS = {1: "utf8", 2: "utf16le", 3: "utf16be"}
UTF8_ENCODING = 1

# The schema table always lives in the b-tree rooted at page 1
SCHEMA_ROOT_PAGE = 1
SCHEMA_TABLE_NAME = "sqlite_schema"
SCHEMA_TABLE_ALIASES = ("sqlite_schema", "sqlite_master")
SCHEMA_TABLE_COLUMNS = ["type", "name", "tbl_name", "rootpage", "sql"]
SQLITE_SEQUENCE_TABLE_NAME = "sqlite_sequence"
SQLITE_STAT_TABLE_NAME = "sqlite_stat1"
INTERNAL_TABLE_PREFIX = "sqlite_"

# A b-tree of depth 20 with the smallest pages already addresses far more
# rows than a file can hold, anything deeper is a broken page graph.
DEFAULT_MAX_DEPTH = 20

# The shell reports the connection's data version, which is 1 for a fresh
# connection that has not observed any commits.
FRESH_CONNECTION_DATA_VERSION = 1

DUMP_COMMAND = ".dump"
DBINFO_COMMAND = ".dbinfo"

# https://www.sqlite.org/lang_keywords.html, table names matching one of
# these get double quoted in the dump output
SQLITE_KEYWORDS = frozenset(
    """
    ABORT ACTION ADD AFTER ALL ALTER ALWAYS ANALYZE AND AS ASC ATTACH
    AUTOINCREMENT BEFORE BEGIN BETWEEN BY CASCADE CASE CAST CHECK COLLATE
    COLUMN COMMIT CONFLICT CONSTRAINT CREATE CROSS CURRENT CURRENT_DATE
    CURRENT_TIME CURRENT_TIMESTAMP DATABASE DEFAULT DEFERRABLE DEFERRED DELETE
    DESC DETACH DISTINCT DO DROP EACH ELSE END ESCAPE EXCEPT EXCLUDE EXCLUSIVE
    EXISTS EXPLAIN FAIL FILTER FIRST FOLLOWING FOR FOREIGN FROM FULL GENERATED
    GLOB GROUP GROUPS HAVING IF IGNORE IMMEDIATE IN INDEX INDEXED INITIALLY
    INNER INSERT INSTEAD INTERSECT INTO IS ISNULL JOIN KEY LAST LEFT LIKE LIMIT
    MATCH MATERIALIZED NATURAL NO NOT NOTHING NOTNULL NULL NULLS OF OFFSET ON
    OR ORDER OTHERS OUTER OVER PARTITION PLAN PRAGMA PRECEDING PRIMARY QUERY
    RAISE RANGE RECURSIVE REFERENCES REGEXP REINDEX RELEASE RENAME REPLACE
    RESTRICT RETURNING RIGHT ROLLBACK ROW ROWS SAVEPOINT SELECT SET TABLE TEMP
    TEMPORARY THEN TIES TO TRANSACTION TRIGGER UNBOUNDED UNION UNIQUE UPDATE
    USING VACUUM VALUES VIEW VIRTUAL WHEN WHERE WINDOW WITH WITHOUT
    """.split()
)
