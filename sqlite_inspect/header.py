from __future__ import annotations
import logging
from dataclasses import dataclass

from sqlite_inspect.consts import (
    DB_FILE_HEADER_SIZE,
    LEAF_PAYLOAD_FRACTION,
    MAX_EMBEDDED_PAYLOAD_FRACTION,
    MAX_PAGE_SIZE,
    MIN_EMBEDDED_PAYLOAD_FRACTION,
    MIN_PAGE_SIZE,
    SQLITE_MAGIC,
    TEXT_ENCODINGS,
)
from sqlite_inspect.exceptions import FormatError
from sqlite_inspect.reading import read_uint

from typing import BinaryIO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileHeader:
    """
    The first 100 bytes of the database file.
    https://www.sqlite.org/fileformat.html#the_database_header

    Every field is a big-endian unsigned integer at a fixed offset, so the
    whole thing is read in one go and never touched again.
    """

    page_size: int  # already resolved, the stored value 1 means 65536
    write_format: int
    read_format: int
    reserved_bytes: int  # unused space at the end of every page
    max_payload_fraction: int
    min_payload_fraction: int
    leaf_payload_fraction: int
    file_change_counter: int
    database_page_count: int
    freelist_trunk_page: int
    freelist_page_count: int
    schema_cookie: int
    schema_format: int
    default_cache_size: int
    autovacuum_top_root: int  # largest root b-tree page, 0 unless auto-vacuum
    text_encoding: int
    user_version: int
    incremental_vacuum: int
    application_id: int
    version_valid_for: int
    sqlite_version: int

    @staticmethod
    def from_bytes(data: bytes) -> FileHeader:
        if data[:16] != SQLITE_MAGIC:
            raise FormatError("Not a SQLite 3 database, bad magic string", offset=0)

        if len(data) < DB_FILE_HEADER_SIZE:
            raise FormatError(
                f"File is too short to hold a database header: {len(data)} bytes",
                offset=0,
            )

        page_size = FileHeader._resolve_page_size(read_uint(data, 16, 2))

        def field(offset: int, size: int = 4) -> int:
            return read_uint(data, offset, size)

        header = FileHeader(
            page_size=page_size,
            write_format=field(18, 1),
            read_format=field(19, 1),
            reserved_bytes=field(20, 1),
            max_payload_fraction=field(21, 1),
            min_payload_fraction=field(22, 1),
            leaf_payload_fraction=field(23, 1),
            file_change_counter=field(24),
            database_page_count=field(28),
            freelist_trunk_page=field(32),
            freelist_page_count=field(36),
            schema_cookie=field(40),
            schema_format=field(44),
            default_cache_size=field(48),
            autovacuum_top_root=field(52),
            text_encoding=field(56),
            user_version=field(60),
            incremental_vacuum=field(64),
            application_id=field(68),
            # bytes 72..91 are reserved for expansion
            version_valid_for=field(92),
            sqlite_version=field(96),
        )
        header._validate()
        return header

    @staticmethod
    def _resolve_page_size(stored: int) -> int:
        page_size = MAX_PAGE_SIZE if stored == 1 else stored

        is_power_of_two = page_size & (page_size - 1) == 0
        if not is_power_of_two or not MIN_PAGE_SIZE <= page_size <= MAX_PAGE_SIZE:
            raise FormatError(f"Invalid page size {stored}", offset=16)

        return page_size

    def _validate(self):
        fractions = (
            self.max_payload_fraction,
            self.min_payload_fraction,
            self.leaf_payload_fraction,
        )
        expected = (
            MAX_EMBEDDED_PAYLOAD_FRACTION,
            MIN_EMBEDDED_PAYLOAD_FRACTION,
            LEAF_PAYLOAD_FRACTION,
        )
        if fractions != expected:
            raise FormatError(
                f"Unexpected payload fractions {fractions}, expected {expected}",
                offset=21,
            )

        # SQLite needs at least 480 usable bytes per page
        if self.usable_size < 480:
            raise FormatError(
                f"Reserved space of {self.reserved_bytes} bytes leaves a usable "
                f"page size of {self.usable_size}",
                offset=20,
            )

    @property
    def usable_size(self) -> int:
        return self.page_size - self.reserved_bytes

    @property
    def text_encoding_name(self) -> str:
        return TEXT_ENCODINGS.get(self.text_encoding, "unknown")

    def effective_page_count(self, file_size: int) -> int:
        """
        The in-header page count is only trusted when it is non-zero and the
        file was last written by a version that keeps it up to date, in which
        case version-valid-for matches the change counter. Otherwise fall back
        to the file size, the same way SQLite does.
        """
        if (
            self.database_page_count
            and self.version_valid_for == self.file_change_counter
        ):
            return self.database_page_count

        logger.debug(
            "In-header page count %d is stale, deriving it from the file size",
            self.database_page_count,
        )
        return file_size // self.page_size


def read_header(database_file: BinaryIO) -> FileHeader:
    database_file.seek(0)
    return FileHeader.from_bytes(database_file.read(DB_FILE_HEADER_SIZE))
