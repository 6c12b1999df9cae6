import logging

from sqlite_inspect.consts import DEFAULT_MAX_DEPTH
from sqlite_inspect.exceptions import FormatError, UnsupportedFeatureError
from sqlite_inspect.pager import Pager
from sqlite_inspect.pages import PageType, TableLeafCell
from sqlite_inspect.records import decode_record
from sqlite_inspect.rows import Row, TableSchema

from typing import Iterator, Set

logger = logging.getLogger(__name__)


class BTreeWalker:
    """
    Walks table b-trees from their root page down to the leaves.

    Nothing is kept between walks. Within one walk every page may be visited
    once, so a page graph that loops back on itself is reported instead of
    being followed forever, and the depth is capped by max_depth.
    """

    pager: Pager
    max_depth: int

    def __init__(self, pager: Pager, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 0:
            raise ValueError(f"max_depth must not be negative, got {max_depth}")
        self.pager = pager
        self.max_depth = max_depth

    def walk(self, table: TableSchema) -> Iterator[Row]:
        """
        Yields every row of the table in ascending rowid order. VIRTUAL
        generated columns are not stored, so rows only carry the others.
        """
        if table.without_rowid:
            raise UnsupportedFeatureError(
                f"Table {table.name} is a WITHOUT ROWID table, which is stored "
                "as an index b-tree",
                page=table.rootpage,
            )

        rowid_alias = table.stored_rowid_alias
        stored_column_count = len(table.stored_columns)

        for cell in self.leaf_cells(table.rootpage):
            record = decode_record(
                self.pager.read_payload(cell),
                rowid=cell.rowid,
                rowid_alias=rowid_alias,
                expected_columns=stored_column_count,
            )
            yield Row(cell.rowid, tuple(record))

    def count(self, rootpage: int) -> int:
        return sum(1 for _ in self.leaf_cells(rootpage))

    def leaf_cells(self, rootpage: int) -> Iterator[TableLeafCell]:
        """
        Yields the leaf cells of a table b-tree in storage order, which for
        a well formed tree is ascending rowid order. The order is checked,
        never fixed up.
        """
        last_rowid = None
        for cell in self._walk_page(rootpage, 0, set()):
            if last_rowid is not None and cell.rowid <= last_rowid:
                raise FormatError(
                    f"Rowid {cell.rowid} follows rowid {last_rowid}, the table "
                    "b-tree is out of order"
                )
            last_rowid = cell.rowid
            yield cell

    def _walk_page(
        self, page_number: int, depth: int, visited: Set[int]
    ) -> Iterator[TableLeafCell]:
        if depth > self.max_depth:
            raise FormatError(
                f"Table b-tree is deeper than the maximum of {self.max_depth} levels",
                page=page_number,
            )
        if page_number in visited:
            raise FormatError(
                "Table b-tree refers back to a page it already visited",
                page=page_number,
            )
        visited.add(page_number)

        page = self.pager.load_page(page_number)

        match page.page_type:
            case PageType.LEAF_TABLE:
                yield from page.cells
            case PageType.INTERIOR_TABLE:
                # Besides traversing all the pages pointed by this page, we must also
                # traverse its right most child, which holds the biggest row ids
                for cell in page.cells:
                    yield from self._walk_page(cell.left_child, depth + 1, visited)
                yield from self._walk_page(page.right_most_pointer, depth + 1, visited)
            case PageType.INTERIOR_INDEX | PageType.LEAF_INDEX:
                raise UnsupportedFeatureError(
                    f"Expected a table b-tree page but found an {page.page_type.name} "
                    "page, index b-trees cannot be walked",
                    page=page_number,
                )
