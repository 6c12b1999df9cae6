from __future__ import annotations
import logging

from sqlite_inspect.btree import BTreeWalker
from sqlite_inspect.consts import (
    INTERNAL_TABLE_PREFIX,
    SCHEMA_ROOT_PAGE,
    SCHEMA_TABLE_ALIASES,
    SCHEMA_TABLE_COLUMNS,
    SCHEMA_TABLE_NAME,
    TEXT_ENCODINGS,
    UTF8_ENCODING,
)
from sqlite_inspect.ddl import parse_columns
from sqlite_inspect.exceptions import FormatError, UnsupportedFeatureError
from sqlite_inspect.header import FileHeader
from sqlite_inspect.rows import Row, SchemaObject, TableSchema

from typing import Dict, List

logger = logging.getLogger(__name__)

# The schema table describes itself nowhere, its layout is fixed
SCHEMA_TABLE = TableSchema(
    name=SCHEMA_TABLE_NAME,
    rootpage=SCHEMA_ROOT_PAGE,
    columns=tuple(SCHEMA_TABLE_COLUMNS),
)


class SchemaCatalog:
    """
    Everything listed in the schema table, in rowid order, plus the column
    layout of every table that has a b-tree of its own.
    """

    objects: List[SchemaObject]
    tables: Dict[str, TableSchema]

    def __init__(self, objects: List[SchemaObject], tables: Dict[str, TableSchema]):
        self.objects = objects
        self.tables = tables

    @staticmethod
    def load(walker: BTreeWalker) -> SchemaCatalog:
        check_text_encoding(walker.pager.header)

        objects = [schema_object_from_row(row) for row in walker.walk(SCHEMA_TABLE)]

        tables = {}
        for schema_object in objects:
            if schema_object.kind != "table" or schema_object.sql is None:
                continue
            # no b-tree behind it, and "USING fts4" alone has no column list
            if is_virtual_table(schema_object):
                continue

            column_list = parse_columns(schema_object.sql)
            tables[schema_object.name] = TableSchema(
                name=schema_object.name,
                rootpage=schema_object.rootpage,
                columns=column_list.columns,
                rowid_alias=column_list.rowid_alias,
                without_rowid=column_list.without_rowid,
                generated=column_list.generated,
            )

        logger.debug(
            "Schema has %d objects, %d of them tables", len(objects), len(tables)
        )
        return SchemaCatalog(objects, tables)

    def table(self, name: str) -> TableSchema:
        if name.lower() in SCHEMA_TABLE_ALIASES:
            return SCHEMA_TABLE

        for table_name, table in self.tables.items():
            if table_name.lower() == name.lower():
                return table

        raise KeyError(f"No such table: {name}")

    def count(self, kind: str) -> int:
        return sum(1 for schema_object in self.objects if schema_object.kind == kind)

    @property
    def schema_size(self) -> int:
        # total(length(sql)), length counts characters rather than bytes
        return sum(
            len(schema_object.sql)
            for schema_object in self.objects
            if schema_object.sql is not None
        )

    @property
    def user_tables(self) -> List[SchemaObject]:
        return [
            schema_object
            for schema_object in self.objects
            if schema_object.kind == "table"
            and not schema_object.name.startswith(INTERNAL_TABLE_PREFIX)
        ]


def check_text_encoding(header: FileHeader):
    # 0 is what a database that was never written to holds, SQLite defaults it to UTF-8
    if header.text_encoding not in (0, UTF8_ENCODING):
        encoding = TEXT_ENCODINGS.get(header.text_encoding, header.text_encoding)
        raise UnsupportedFeatureError(
            f"Text encoding {encoding} is not supported, only utf8 is", offset=56
        )


def is_virtual_table(schema_object: SchemaObject) -> bool:
    words = (schema_object.sql or "").upper().split(None, 3)[:3]
    return schema_object.kind == "table" and words == ["CREATE", "VIRTUAL", "TABLE"]


def schema_object_from_row(row: Row) -> SchemaObject:
    kind, name, table_name, rootpage, sql = row.values

    if not isinstance(kind, str) or not isinstance(name, str):
        raise FormatError(
            f"Schema row {row.rowid} does not hold a valid type and name: {row.values}",
            page=SCHEMA_ROOT_PAGE,
        )

    return SchemaObject(
        kind=kind,
        name=name,
        table_name=table_name,
        rootpage=rootpage or 0,
        sql=sql,
    )
