from sqlite_inspect.consts import (
    CONTINUATION_BIT_MASK,
    LAST_SEVEN_BITS_MASK,
    MAX_VARINT_LENGTH,
)
from sqlite_inspect.exceptions import FormatError

from typing import Optional, Tuple

UINT64_MASK = (1 << 64) - 1


def page_start(page_number: int, page_size: int) -> int:
    # page numbers are 1-based
    return (page_number - 1) * page_size


def read_varint(
    buffer: bytes, offset: int = 0, page: Optional[int] = None
) -> Tuple[int, int]:
    """
    Decodes the varint starting at buffer[offset] and returns (value, bytes used).
    https://www.sqlite.org/fileformat.html#varint

    Each of the first 8 bytes gives 7 bits and a continuation flag in the high
    bit, the 9th byte (if we get that far) gives all of its 8 bits.
    """
    value = 0
    for i in range(MAX_VARINT_LENGTH):
        position = offset + i
        if position >= len(buffer):
            raise FormatError("Varint runs past the end of its buffer", page, offset)

        byte = buffer[position]
        if i == MAX_VARINT_LENGTH - 1:
            return (value << 8) | byte, MAX_VARINT_LENGTH

        value = (value << 7) | (byte & LAST_SEVEN_BITS_MASK)
        if not byte & CONTINUATION_BIT_MASK:
            return value, i + 1

    # unreachable, the 9th byte always terminates
    raise FormatError("Malformed varint", page, offset)


def encode_varint(value: int) -> bytes:
    if value < 0:
        if value < -(1 << 63):
            raise ValueError(f"{value} does not fit in 64 bits")
        value &= UINT64_MASK
    elif value > UINT64_MASK:
        raise ValueError(f"{value} does not fit in 64 bits")

    # Values needing more than 56 bits use the 9 byte form, where the last
    # byte carries a full 8 bits
    if value >> 56:
        head = value >> 8
        groups = [(head >> (7 * i)) & LAST_SEVEN_BITS_MASK for i in range(7, -1, -1)]
        return bytes(group | CONTINUATION_BIT_MASK for group in groups) + bytes(
            [value & 0xFF]
        )

    groups = [value & LAST_SEVEN_BITS_MASK]
    value >>= 7
    while value:
        groups.append(value & LAST_SEVEN_BITS_MASK)
        value >>= 7
    groups.reverse()

    return bytes(
        [group | CONTINUATION_BIT_MASK for group in groups[:-1]] + [groups[-1]]
    )


def to_signed64(value: int) -> int:
    # rowids are signed 64-bit integers stored in an unsigned varint
    if value & (1 << 63):
        return value - (1 << 64)
    return value


def read_uint(
    buffer: bytes, offset: int, size: int, page: Optional[int] = None
) -> int:
    if offset + size > len(buffer):
        raise FormatError(
            f"Expected {size} bytes but only {max(len(buffer) - offset, 0)} remain",
            page,
            offset,
        )
    return int.from_bytes(buffer[offset : offset + size], "big")


def read_int(buffer: bytes, offset: int, size: int, page: Optional[int] = None) -> int:
    # signed counterpart of read_uint, used for the record integer types
    if offset + size > len(buffer):
        raise FormatError(
            f"Expected {size} bytes but only {max(len(buffer) - offset, 0)} remain",
            page,
            offset,
        )
    return int.from_bytes(buffer[offset : offset + size], "big", signed=True)
