"""
Text output of the .dbinfo and .dump commands, laid out exactly like the
sqlite3 shell prints them.
"""
import math
import re

from sqlite_inspect.btree import BTreeWalker
from sqlite_inspect.consts import (
    FRESH_CONNECTION_DATA_VERSION,
    INTERNAL_TABLE_PREFIX,
    SQLITE_KEYWORDS,
    SQLITE_SEQUENCE_TABLE_NAME,
    SQLITE_STAT_TABLE_NAME,
    TEXT_ENCODINGS,
)
from sqlite_inspect.header import FileHeader
from sqlite_inspect.schema import SchemaCatalog, is_virtual_table

from typing import Any, List

PLAIN_IDENTIFIER_REGEX = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def render_dbinfo(header: FileHeader, catalog: SchemaCatalog) -> str:
    encoding = str(header.text_encoding)
    if header.text_encoding in TEXT_ENCODINGS:
        encoding += f" ({TEXT_ENCODINGS[header.text_encoding]})"

    fields = [
        ("database page size:", header.page_size),
        ("write format:", header.write_format),
        ("read format:", header.read_format),
        ("reserved bytes:", header.reserved_bytes),
        ("file change counter:", header.file_change_counter),
        ("database page count:", header.database_page_count),
        ("freelist page count:", header.freelist_page_count),
        ("schema cookie:", header.schema_cookie),
        ("schema format:", header.schema_format),
        ("default cache size:", header.default_cache_size),
        ("autovacuum top root:", header.autovacuum_top_root),
        ("incremental vacuum:", header.incremental_vacuum),
        ("text encoding:", encoding),
        ("user version:", header.user_version),
        ("application id:", header.application_id),
        ("software version:", header.sqlite_version),
        ("number of tables:", catalog.count("table")),
        ("number of indexes:", catalog.count("index")),
        ("number of triggers:", catalog.count("trigger")),
        ("number of views:", catalog.count("view")),
        ("schema size:", catalog.schema_size),
        ("data version", FRESH_CONNECTION_DATA_VERSION),
    ]

    return "".join(f"{label:<20} {value}\n" for label, value in fields)


def render_dump(catalog: SchemaCatalog, walker: BTreeWalker) -> str:
    """
    Renders the whole dump before anything is returned, so a failure halfway
    through a table never leaves a partial dump behind.
    """
    lines = ["PRAGMA foreign_keys=OFF;", "BEGIN TRANSACTION;"]
    writable_schema = False

    # sqlite_sequence goes last so that its contents are not overwritten by
    # the AUTOINCREMENT tables being filled in
    tables = sorted(
        (o for o in catalog.objects if o.kind == "table" and o.sql is not None),
        key=lambda o: o.name == SQLITE_SEQUENCE_TABLE_NAME,
    )

    for table in tables:
        if table.name == SQLITE_SEQUENCE_TABLE_NAME:
            lines.append(f"DELETE FROM {SQLITE_SEQUENCE_TABLE_NAME};")
        elif table.name == SQLITE_STAT_TABLE_NAME:
            lines.append("ANALYZE sqlite_schema;")
        elif table.name.startswith(INTERNAL_TABLE_PREFIX):
            continue
        elif is_virtual_table(table):
            # Virtual tables have no b-tree, only their schema entry can be restored
            if not writable_schema:
                lines.append("PRAGMA writable_schema=ON;")
                writable_schema = True
            lines.append(
                "INSERT INTO sqlite_schema(type,name,tbl_name,rootpage,sql)"
                f"VALUES('table',{quote_text(table.name)},{quote_text(table.name)},"
                f"0,{quote_text(table.sql)});"
            )
            continue
        else:
            lines.append(f"{table.sql};")

        if not table.rootpage:
            continue

        table_schema = catalog.table(table.name)
        positions = table_schema.insert_positions

        insert_prefix = f"INSERT INTO {quote_identifier(table.name)} VALUES("
        for row in walker.walk(table_schema):
            values = ",".join(format_value(row.values[i]) for i in positions)
            lines.append(f"{insert_prefix}{values});")

    for schema_object in catalog.objects:
        if schema_object.kind in ("index", "trigger", "view") and schema_object.sql:
            lines.append(f"{schema_object.sql};")

    if writable_schema:
        lines.append("PRAGMA writable_schema=OFF;")
    lines.append("COMMIT;")

    return "\n".join(lines) + "\n"


def quote_identifier(name: str) -> str:
    if PLAIN_IDENTIFIER_REGEX.fullmatch(name) and name.upper() not in SQLITE_KEYWORDS:
        return name
    return '"' + name.replace('"', '""') + '"'


def format_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, bytes):
        return f"X'{value.hex()}'"
    return quote_text(value)


def format_float(value: float) -> str:
    if math.isnan(value):
        return "NULL"
    if math.isinf(value):
        return "9.0e+999" if value > 0 else "-9.0e+999"
    if value.is_integer() and INT64_MIN <= value <= INT64_MAX:
        return f"{int(value)}.0"
    return format(value, ".20g")


def quote_text(text: str) -> str:
    """
    Single quotes the text, doubling the quotes inside it. Newlines and
    carriage returns would not survive a line based reader, so like the
    shell they are swapped for a marker that replace() turns back into
    char(10) and char(13).
    """
    quoted = text.replace("'", "''")
    if "\n" not in text and "\r" not in text:
        return f"'{quoted}'"

    prefix: List[str] = []
    suffix: List[str] = []
    if "\n" in text:
        marker = _unused_marker(text, "\\n", "\\012")
        quoted = quoted.replace("\n", marker)
        prefix.append("replace(")
        suffix.insert(0, f",'{marker}',char(10))")
    if "\r" in text:
        marker = _unused_marker(text, "\\r", "\\015")
        quoted = quoted.replace("\r", marker)
        prefix.append("replace(")
        suffix.insert(0, f",'{marker}',char(13))")

    return "".join(prefix) + f"'{quoted}'" + "".join(suffix)


def _unused_marker(text: str, preferred: str, fallback: str) -> str:
    if preferred not in text:
        return preferred
    if fallback not in text:
        return fallback

    i = 0
    while f"({preferred}{i})" in text:
        i += 1
    return f"({preferred}{i})"
