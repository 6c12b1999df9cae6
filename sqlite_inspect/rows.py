# https://www.sqlite.org/fileformat.html#record_format
from dataclasses import dataclass

from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Row:
    rowid: int
    values: Tuple[Any, ...]


# https://www.sqlite.org/fileformat.html#storage_of_the_sql_database_schema
@dataclass(frozen=True)
class SchemaObject:
    kind: str  # table, index, view or trigger
    name: str
    table_name: str
    rootpage: int  # 0 for views and triggers, they have no b-tree
    sql: Optional[str]  # NULL for the indexes backing UNIQUE and PRIMARY KEY constraints


@dataclass(frozen=True)
class TableSchema:
    name: str
    rootpage: int
    columns: Tuple[str, ...]
    rowid_alias: Optional[int] = None  # index of the INTEGER PRIMARY KEY column
    without_rowid: bool = False
    # VIRTUAL or STORED for generated columns, None for ordinary ones. Empty
    # when no column is generated
    generated: Tuple[Optional[str], ...] = ()

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def generated_kind(self, index: int) -> Optional[str]:
        return self.generated[index] if index < len(self.generated) else None

    @property
    def stored_columns(self) -> Tuple[int, ...]:
        """Indexes of the columns found in the record, VIRTUAL ones are computed on read"""
        return tuple(
            i for i in range(self.column_count) if self.generated_kind(i) != "VIRTUAL"
        )

    @property
    def stored_rowid_alias(self) -> Optional[int]:
        """Position of the rowid alias column within the stored columns"""
        if self.rowid_alias is None:
            return None
        return self.stored_columns.index(self.rowid_alias)

    @property
    def insert_positions(self) -> Tuple[int, ...]:
        """
        Positions within the stored columns of the values an INSERT takes.
        Generated columns, STORED ones included, are recomputed by SQLite.
        """
        return tuple(
            position
            for position, i in enumerate(self.stored_columns)
            if self.generated_kind(i) is None
        )
