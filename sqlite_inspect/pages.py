from __future__ import annotations
from enum import Enum
from dataclasses import dataclass

from sqlite_inspect.consts import (
    CELL_POINTER_SIZE,
    CHILD_POINTER_SIZE,
    INTERIOR_PAGE_HEADER_SIZE,
    LEAF_PAGE_HEADER_SIZE,
    OVERFLOW_POINTER_SIZE,
)
from sqlite_inspect.exceptions import FormatError
from sqlite_inspect.reading import read_uint, read_varint, to_signed64

from typing import List, Optional, Union


class PageType(Enum):
    INTERIOR_INDEX = 0x02
    """
    Interior page of an index b-tree. Each cell holds a left child pointer
    and a key, the right-most child comes from the page header:

        | Ptr1 | Key1 | Ptr2 | Key2 | Right-most |

    Ptr1 leads to keys below Key1, Ptr2 to keys from Key1 up to Key2 and the
    right-most child to everything after the last key.
    """
    INTERIOR_TABLE = 0x05
    """Same layout as the index one, but the keys are rowids and carry no payload"""
    LEAF_INDEX = 0x0A
    LEAF_TABLE = 0x0D

    @property
    def is_interior(self) -> bool:
        return self in (PageType.INTERIOR_INDEX, PageType.INTERIOR_TABLE)

    @property
    def is_table(self) -> bool:
        return self in (PageType.INTERIOR_TABLE, PageType.LEAF_TABLE)

    @property
    def header_size(self) -> int:
        return INTERIOR_PAGE_HEADER_SIZE if self.is_interior else LEAF_PAGE_HEADER_SIZE


@dataclass(frozen=True)
class PageHeader:
    """
    https://www.sqlite.org/fileformat2.html#b_tree_pages

    | Offset | Size | Description                                                  |
    |--------|------|--------------------------------------------------------------|
    | 0      | 1    | Page type                                                    |
    | 1      | 2    | Start of the first freeblock (0 if none)                     |
    | 3      | 2    | Number of cells on the page                                  |
    | 5      | 2    | Start of the cell content area (0 means 65536)               |
    | 7      | 1    | Number of fragmented free bytes in the cell content area     |
    | 8      | 4    | Right-most pointer (interior pages only)                     |
    """

    page_type: PageType
    first_freeblock: int
    cell_count: int
    cell_content_start: int
    fragmented_free_bytes: int
    right_most_pointer: Optional[int]  # Only present in interior page headers


@dataclass(frozen=True)
class TableLeafCell:
    """
    A row. The payload is the record, possibly cut short with the remainder
    living in a chain of overflow pages starting at overflow_page.
    """

    rowid: int
    payload_size: int
    local_payload: bytes
    overflow_page: Optional[int]


@dataclass(frozen=True)
class TableInteriorCell:
    """
    Cell type used by interior table pages. Every row in the left child has a
    rowid less than or equal to key.
    """

    left_child: int
    key: int


@dataclass(frozen=True)
class IndexLeafCell:
    payload_size: int
    local_payload: bytes
    overflow_page: Optional[int]


@dataclass(frozen=True)
class IndexInteriorCell:
    left_child: int
    payload_size: int
    local_payload: bytes
    overflow_page: Optional[int]


Cell = Union[TableLeafCell, TableInteriorCell, IndexLeafCell, IndexInteriorCell]
PayloadCell = Union[TableLeafCell, IndexLeafCell, IndexInteriorCell]


def local_payload_size(payload_size: int, usable_size: int, is_table_leaf: bool) -> int:
    """
    How many payload bytes are stored on the b-tree page itself. Anything
    beyond that spills over to overflow pages.
    https://www.sqlite.org/fileformat2.html#cellformat
    """
    if is_table_leaf:
        max_local = usable_size - 35
    else:
        max_local = ((usable_size - 12) * 64 // 255) - 23

    if payload_size <= max_local:
        return payload_size

    min_local = ((usable_size - 12) * 32 // 255) - 23
    surplus = min_local + ((payload_size - min_local) % (usable_size - 4))
    return surplus if surplus <= max_local else min_local


class Page:
    number: int
    header: PageHeader
    cell_pointer_array: List[int]
    cells: List[Cell]

    def __init__(
        self,
        number: int,
        header: PageHeader,
        cell_pointer_array: List[int],
        cells: List[Cell],
    ):
        self.number = number
        self.header = header
        self.cell_pointer_array = cell_pointer_array
        self.cells = cells

    @property
    def page_type(self) -> PageType:
        return self.header.page_type

    @property
    def cell_count(self) -> int:
        return self.header.cell_count

    @property
    def right_most_pointer(self) -> Optional[int]:
        return self.header.right_most_pointer

    @staticmethod
    def from_bytes(
        number: int, data: bytes, header_offset: int, usable_size: int
    ) -> Page:
        """
        Parses a whole b-tree page: the page header, the cell pointer array
        and then every cell the pointers lead to.

        header_offset is where the page header starts, which is 100 on the
        first page as the database file header comes before it. The cell
        pointers are always relative to the start of the page.
        """
        header = Page._read_header(number, data, header_offset)

        pointers_start = header_offset + header.page_type.header_size
        cell_pointer_array = [
            read_uint(data, pointers_start + i * CELL_POINTER_SIZE, 2, number)
            for i in range(header.cell_count)
        ]

        cells = []
        for cell_pointer in cell_pointer_array:
            if not pointers_start <= cell_pointer < usable_size:
                raise FormatError(
                    f"Cell pointer {cell_pointer} lies outside the cell content area",
                    number,
                    cell_pointer,
                )
            cells.append(
                Page._read_cell(
                    header.page_type, number, data, cell_pointer, usable_size
                )
            )

        return Page(number, header, cell_pointer_array, cells)

    @staticmethod
    def _read_header(number: int, data: bytes, offset: int) -> PageHeader:
        page_type_int = read_uint(data, offset, 1, number)
        try:
            page_type = PageType(page_type_int)
        except ValueError:
            raise FormatError(f"Invalid page type: {page_type_int}", number, offset)

        cell_content_start = read_uint(data, offset + 5, 2, number)

        right_most_pointer = None
        if page_type.is_interior:
            right_most_pointer = read_uint(data, offset + 8, 4, number)

        return PageHeader(
            page_type=page_type,
            first_freeblock=read_uint(data, offset + 1, 2, number),
            cell_count=read_uint(data, offset + 3, 2, number),
            cell_content_start=cell_content_start or 65536,
            fragmented_free_bytes=read_uint(data, offset + 7, 1, number),
            right_most_pointer=right_most_pointer,
        )

    @staticmethod
    def _read_cell(
        page_type: PageType, number: int, data: bytes, offset: int, usable_size: int
    ) -> Cell:
        match page_type:
            case PageType.LEAF_TABLE:
                payload_size, used = read_varint(data, offset, number)
                rowid, rowid_bytes = read_varint(data, offset + used, number)
                local_payload, overflow_page = Page._read_payload(
                    number,
                    data,
                    offset + used + rowid_bytes,
                    payload_size,
                    usable_size,
                    is_table_leaf=True,
                )
                return TableLeafCell(
                    to_signed64(rowid), payload_size, local_payload, overflow_page
                )
            case PageType.INTERIOR_TABLE:
                left_child = read_uint(data, offset, CHILD_POINTER_SIZE, number)
                key, _ = read_varint(data, offset + CHILD_POINTER_SIZE, number)
                return TableInteriorCell(left_child, to_signed64(key))
            case PageType.LEAF_INDEX:
                payload_size, used = read_varint(data, offset, number)
                local_payload, overflow_page = Page._read_payload(
                    number, data, offset + used, payload_size, usable_size
                )
                return IndexLeafCell(payload_size, local_payload, overflow_page)
            case PageType.INTERIOR_INDEX:
                left_child = read_uint(data, offset, CHILD_POINTER_SIZE, number)
                payload_size, used = read_varint(
                    data, offset + CHILD_POINTER_SIZE, number
                )
                local_payload, overflow_page = Page._read_payload(
                    number,
                    data,
                    offset + CHILD_POINTER_SIZE + used,
                    payload_size,
                    usable_size,
                )
                return IndexInteriorCell(
                    left_child, payload_size, local_payload, overflow_page
                )

    @staticmethod
    def _read_payload(
        number: int,
        data: bytes,
        offset: int,
        payload_size: int,
        usable_size: int,
        is_table_leaf: bool = False,
    ):
        local_size = local_payload_size(payload_size, usable_size, is_table_leaf)
        if offset + local_size > usable_size:
            raise FormatError(
                f"Cell payload of {local_size} bytes runs past the end of the page",
                number,
                offset,
            )

        local_payload = bytes(data[offset : offset + local_size])
        if local_size == payload_size:
            return local_payload, None

        overflow_page = read_uint(
            data, offset + local_size, OVERFLOW_POINTER_SIZE, number
        )
        return local_payload, overflow_page
