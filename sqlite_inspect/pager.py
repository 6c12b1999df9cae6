from __future__ import annotations
import logging
import os
from contextlib import contextmanager

from sqlite_inspect.consts import DB_FILE_HEADER_SIZE, OVERFLOW_POINTER_SIZE
from sqlite_inspect.exceptions import DatabaseIOError, FormatError
from sqlite_inspect.header import FileHeader, read_header
from sqlite_inspect.pages import Page, PayloadCell
from sqlite_inspect.reading import page_start, read_uint

from typing import BinaryIO, Generator

logger = logging.getLogger(__name__)


class Pager:
    """
    Positional access to the pages of one open database file.

    There is no cache, every call goes back to the file. The pager does not
    own the handle it is given; use Pager.open to get one whose file is closed
    on the way out.
    """

    database_file: BinaryIO
    header: FileHeader
    page_count: int

    def __init__(self, database_file: BinaryIO, header: FileHeader):
        self.database_file = database_file
        self.header = header

        file_size = os.fstat(database_file.fileno()).st_size
        self.page_count = header.effective_page_count(file_size)

    @staticmethod
    @contextmanager
    def open(path: str) -> Generator[Pager, None, None]:
        with open(path, "rb") as database_file:
            header = read_header(database_file)
            logger.debug(
                "Opened %s: page size %d, %d pages",
                path,
                header.page_size,
                header.database_page_count,
            )
            yield Pager(database_file, header)

    @property
    def page_size(self) -> int:
        return self.header.page_size

    @property
    def usable_size(self) -> int:
        return self.header.usable_size

    @staticmethod
    def header_offset(page_number: int) -> int:
        # For the first page, the page header comes after the 100 byte database header
        return DB_FILE_HEADER_SIZE if page_number == 1 else 0

    def read_page(self, page_number: int) -> bytes:
        if not 1 <= page_number <= self.page_count:
            raise FormatError(
                f"Page number {page_number} is outside of the database, "
                f"which has {self.page_count} pages",
                page=page_number,
            )

        start = page_start(page_number, self.page_size)
        self.database_file.seek(start)
        data = self.database_file.read(self.page_size)

        if len(data) != self.page_size:
            raise DatabaseIOError(
                f"Truncated file: expected {self.page_size} bytes but read {len(data)}",
                page=page_number,
                offset=start,
            )

        return data

    def load_page(self, page_number: int) -> Page:
        logger.debug("Loading page %d", page_number)
        return Page.from_bytes(
            page_number,
            self.read_page(page_number),
            self.header_offset(page_number),
            self.usable_size,
        )

    def read_payload(self, cell: PayloadCell) -> bytes:
        """
        Returns the complete payload of a cell, following its overflow chain
        if it did not fit on the b-tree page.

        Each overflow page starts with the 4 byte number of the next page in
        the chain (0 on the last one), the rest of its usable space is payload.
        """
        if cell.overflow_page is None:
            return cell.local_payload

        chunks = [cell.local_payload]
        remaining = cell.payload_size - len(cell.local_payload)
        chunk_size = self.usable_size - OVERFLOW_POINTER_SIZE
        visited = set()

        page_number = cell.overflow_page
        while remaining > 0:
            if page_number == 0:
                raise FormatError(
                    f"Overflow chain ended with {remaining} payload bytes missing"
                )
            if page_number in visited:
                raise FormatError("Overflow chain loops back on itself", page_number)
            visited.add(page_number)

            data = self.read_page(page_number)
            next_page = read_uint(data, 0, OVERFLOW_POINTER_SIZE, page_number)
            taken = min(remaining, chunk_size)
            chunks.append(data[OVERFLOW_POINTER_SIZE : OVERFLOW_POINTER_SIZE + taken])

            remaining -= taken
            page_number = next_page

        logger.debug(
            "Reassembled %d byte payload from %d overflow pages",
            cell.payload_size,
            len(visited),
        )
        return b"".join(chunks)
