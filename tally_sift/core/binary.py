"""
Little-endian binary encoding helpers shared by the sketch serializers.

All multi-byte fields are little-endian. Readers validate every access against
the byte range they were given, so a truncated or oversized buffer surfaces as
a FormatError instead of a struct.error or a silently wrong value.
"""

import struct
from typing import Iterable, List, Optional, Tuple, Union

from tally_sift.core.errors import FormatError

Buffer = Union[bytes, bytearray, memoryview]

UINT32_MAX = 0xFFFFFFFF


def check_range(data: Buffer, start: int = 0, length: Optional[int] = None) -> memoryview:
    """
    Validate a byte range and return a zero-copy view of it.

    Args:
        data: The buffer holding the serialized structure.
        start: Offset of the structure within the buffer.
        length: Length of the structure. None means the rest of the buffer.

    Returns:
        A memoryview covering exactly the requested range.

    Raises:
        FormatError: If the range falls outside the buffer.
    """
    view = memoryview(data).cast("B")
    total = len(view)

    if length is None:
        length = total - start

    if start < 0 or length < 0 or start + length > total:
        raise FormatError(
            f"Byte range [{start}, {start + length}) does not fit a buffer "
            f"of {total} bytes"
        )

    return view[start : start + length]


def pack_uint32_array(values: Iterable[int]) -> bytes:
    """
    Encode a sequence of integers as consecutive little-endian uint32 values.

    Raises:
        FormatError: If any value does not fit in an unsigned 32-bit integer.
    """
    values = list(values)
    try:
        return struct.pack(f"<{len(values)}I", *values)
    except struct.error as exc:
        raise FormatError(f"Value does not fit in 32 bits: {exc}") from exc


class BinaryReader:
    """Sequential reader over a validated byte range."""

    __slots__ = ["_view", "_offset"]

    def __init__(self, view: memoryview):
        self._view = view
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._view) - self._offset

    def _unpack(self, fmt: str) -> Tuple:
        size = struct.calcsize(fmt)
        if size > self.remaining:
            raise FormatError(
                f"Unexpected end of data at offset {self._offset}: "
                f"needed {size} bytes, {self.remaining} left"
            )
        values = struct.unpack_from(fmt, self._view, self._offset)
        self._offset += size
        return values

    def read_uint8(self) -> int:
        return self._unpack("<B")[0]

    def read_uint32(self) -> int:
        return self._unpack("<I")[0]

    def read_float64(self) -> float:
        return self._unpack("<d")[0]

    def read_uint32_array(self, count: int) -> List[int]:
        return list(self._unpack(f"<{count}I"))

    def read_bytes(self, count: int) -> bytes:
        if count > self.remaining:
            raise FormatError(
                f"Unexpected end of data at offset {self._offset}: "
                f"needed {count} bytes, {self.remaining} left"
            )
        chunk = self._view[self._offset : self._offset + count].tobytes()
        self._offset += count
        return chunk
