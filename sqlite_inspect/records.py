# record format
# https://www.sqlite.org/fileformat.html#record_format
# A record contains a header and a body, in that order
import struct

from sqlite_inspect.exceptions import FormatError
from sqlite_inspect.reading import read_int, read_varint

from typing import Any, List, Optional, Tuple

# serial type -> width in bytes of the integer it holds
INTEGER_WIDTHS = {1: 1, 2: 2, 3: 3, 4: 4, 5: 6, 6: 8}
FLOAT_SERIAL_TYPE = 7
ZERO_SERIAL_TYPE = 8
ONE_SERIAL_TYPE = 9
RESERVED_SERIAL_TYPES = (10, 11)


def serial_type_width(serial_type: int) -> int:
    """Number of body bytes taken by a value of the given serial type."""
    if serial_type in INTEGER_WIDTHS:
        return INTEGER_WIDTHS[serial_type]
    if serial_type == FLOAT_SERIAL_TYPE:
        return 8
    if serial_type in (0, ZERO_SERIAL_TYPE, ONE_SERIAL_TYPE):
        return 0
    if serial_type in RESERVED_SERIAL_TYPES:
        raise FormatError(f"Reserved serial type {serial_type} found in record")
    if serial_type % 2 == 0:
        return (serial_type - 12) // 2
    return (serial_type - 13) // 2


def read_record_header(payload: bytes) -> Tuple[List[int], int]:
    """Returns the serial types of the record and the offset where its body starts."""
    header_size, num_header_bytes = read_varint(payload)
    if header_size > len(payload):
        raise FormatError(
            f"Record header claims {header_size} bytes but the payload has {len(payload)}"
        )

    i = num_header_bytes
    serial_types = []
    while i < header_size:
        serial_type, bytes_used = read_varint(payload, i)
        i += bytes_used
        serial_types.append(serial_type)

    if i != header_size:
        raise FormatError("Last serial type runs past the end of the record header")

    return serial_types, header_size


def read_column_value(
    payload: bytes, offset: int, serial_type: int, encoding: str = "utf-8"
) -> Any:
    width = serial_type_width(serial_type)
    if offset + width > len(payload):
        raise FormatError(
            f"Column of serial type {serial_type} runs past the end of the record",
            offset=offset,
        )

    if serial_type == 0:
        return None
    elif serial_type in INTEGER_WIDTHS:
        return read_int(payload, offset, width)
    elif serial_type == FLOAT_SERIAL_TYPE:
        return struct.unpack(">d", payload[offset : offset + 8])[0]
    elif serial_type == ZERO_SERIAL_TYPE:
        return 0
    elif serial_type == ONE_SERIAL_TYPE:
        return 1
    elif serial_type % 2 == 0:
        return bytes(payload[offset : offset + width])

    try:
        return payload[offset : offset + width].decode(encoding)
    except UnicodeDecodeError as e:
        raise FormatError(f"Text column is not valid {encoding}: {e.reason}", offset=offset)


def decode_record(
    payload: bytes,
    *,
    rowid: Optional[int] = None,
    rowid_alias: Optional[int] = None,
    expected_columns: Optional[int] = None,
    encoding: str = "utf-8",
) -> List[Any]:
    """
    Decodes a record into its list of column values.

    expected_columns is the column count the schema declares for the table,
    a record with a different number of columns is rejected.

    When a table has an INTEGER PRIMARY KEY column, that column is an alias
    of the rowid: it is stored in the record as a NULL and SQLite always uses
    the b-tree key instead. rowid_alias is the index of that column, and it
    gets replaced with rowid here so nobody downstream has to care.
    """
    serial_types, offset = read_record_header(payload)

    if expected_columns is not None and len(serial_types) != expected_columns:
        raise FormatError(
            f"Record has {len(serial_types)} columns but {expected_columns} were expected"
        )

    record_columns = []
    for serial_type in serial_types:
        record_columns.append(
            read_column_value(payload, offset, serial_type, encoding)
        )
        offset += serial_type_width(serial_type)

    if rowid_alias is not None:
        if rowid is None:
            raise ValueError("A rowid is needed to fill in the rowid alias column")
        record_columns[rowid_alias] = rowid

    return record_columns
