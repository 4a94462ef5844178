"""Binary property list (bplist00) reading and writing.

Binary plist structure:
1. 8-byte magic "bplist00"
2. Object table - variable length objects, each starting with a marker
   byte (high nibble = type, low nibble = size or extra info)
3. Offset table - one fixed-width big-endian offset per object
4. 32-byte trailer:
   - 6 bytes: unused (5) and sort version (1)
   - 1 byte: offset table entry width
   - 1 byte: object reference width
   - 8 bytes: number of objects
   - 8 bytes: index of the root object
   - 8 bytes: offset of the offset table

Containers refer to their children by object index, so one object may be
shared by several containers. The reader parses each index at most once
and hands out the same value for every reference to it.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta

from plistcodec.config import MAX_DEPTH_LIMIT, ParseLimits
from plistcodec.exceptions import (
    CircularReferenceError,
    CorruptedDataError,
    InvalidReferenceError,
    InvalidSignatureError,
    InvalidTrailerError,
    NestingTooDeepError,
    TruncatedDataError,
    UnsupportedObjectError,
)
from plistcodec.models.values import (
    BINARY_EPOCH,
    INT64_MAX,
    PlistArray,
    PlistBoolean,
    PlistData,
    PlistDate,
    PlistDict,
    PlistInteger,
    PlistReal,
    PlistString,
    PlistUid,
    PlistValue,
)

logger = logging.getLogger(__name__)

BINARY_MAGIC = b"bplist00"
HEADER_SIZE = len(BINARY_MAGIC)
TRAILER_SIZE = 32
TRAILER_STRUCT = struct.Struct(">6xBBQQQ")

# Object type markers (high nibble)
MARKER_SIMPLE = 0x0
MARKER_INT = 0x1
MARKER_REAL = 0x2
MARKER_DATE = 0x3
MARKER_DATA = 0x4
MARKER_ASCII = 0x5
MARKER_UTF16 = 0x6
MARKER_UID = 0x8
MARKER_ARRAY = 0xA
MARKER_DICT = 0xD

# Simple object values (full marker byte)
SIMPLE_NULL = 0x00
SIMPLE_FALSE = 0x08
SIMPLE_TRUE = 0x09
SIMPLE_FILL = 0x0F

# Low nibble value announcing that a length integer object follows
EXTENDED_LENGTH = 0xF


@dataclass(frozen=True, slots=True)
class BinaryTrailer:
    """Decoded bplist00 trailer.

    Attributes:
        offset_size: Width in bytes of each offset table entry
        ref_size: Width in bytes of each object reference
        object_count: Number of objects (and offset table entries)
        root_object: Index of the top-level object
        offset_table_offset: Absolute position of the offset table
    """

    offset_size: int
    ref_size: int
    object_count: int
    root_object: int
    offset_table_offset: int


class BinaryPlistReader:
    """Reader for binary plist buffers."""

    def __init__(self, data: bytes, limits: ParseLimits | None = None) -> None:
        """Initialize reader with a complete buffer.

        Args:
            data: Complete binary plist contents
            limits: Optional parse limits (defaults to ParseLimits.default())
        """
        self._data = data
        self._limits = limits or ParseLimits.default()
        self._object_end = 0
        self._ref_size = 0
        self._offsets: list[int] = []
        # Parsed objects by index
        self._objects: dict[int, PlistValue] = {}
        # Indexes whose parse is in progress, for cycle detection
        self._active: set[int] = set()

    def parse(self) -> PlistValue:
        """Parse the buffer and return the root value.

        Raises:
            FormatError: If the buffer is malformed in any way
        """
        if self._data[:HEADER_SIZE] != BINARY_MAGIC:
            raise InvalidSignatureError(bytes(self._data[:HEADER_SIZE]))

        trailer = self._parse_trailer()
        self._ref_size = trailer.ref_size
        self._offsets = self._read_offset_table(trailer)
        self._objects = {}
        self._active = set()

        root = self._resolve(trailer.root_object, depth=0)
        logger.debug("Parsed %d of %d objects", len(self._objects), trailer.object_count)
        return root

    def _parse_trailer(self) -> BinaryTrailer:
        """Parse and validate the trailer against the buffer size."""
        size = len(self._data)
        if size < HEADER_SIZE + TRAILER_SIZE:
            raise InvalidTrailerError(
                f"Buffer of {size} bytes is too short for a binary plist trailer"
            )
        trailer_start = size - TRAILER_SIZE
        offset_size, ref_size, count, root, table_offset = TRAILER_STRUCT.unpack_from(
            self._data, trailer_start
        )
        trailer = BinaryTrailer(
            offset_size=offset_size,
            ref_size=ref_size,
            object_count=count,
            root_object=root,
            offset_table_offset=table_offset,
        )
        logger.debug("Trailer: %s", trailer)

        if not 1 <= offset_size <= 8:
            raise InvalidTrailerError(f"Invalid offset table entry width: {offset_size}")
        if not 1 <= ref_size <= 8:
            raise InvalidTrailerError(f"Invalid object reference width: {ref_size}")
        if count == 0:
            raise InvalidTrailerError("Binary plist declares no objects")
        max_count = self._limits.max_object_count
        if max_count is not None and count > max_count:
            raise InvalidTrailerError(
                f"Object count {count} exceeds limit of {max_count}"
            )
        if root >= count:
            raise InvalidTrailerError(
                f"Root object index {root} out of range (object count {count})"
            )
        if table_offset < HEADER_SIZE:
            raise InvalidTrailerError(f"Offset table starts inside header: {table_offset}")
        if table_offset + count * offset_size > trailer_start:
            raise InvalidTrailerError("Offset table extends past the trailer")

        self._object_end = table_offset
        return trailer

    def _read_offset_table(self, trailer: BinaryTrailer) -> list[int]:
        """Read the offset table, checking every entry lands in the object area."""
        width = trailer.offset_size
        start = trailer.offset_table_offset
        offsets = []
        for index in range(trailer.object_count):
            position = start + index * width
            offset = int.from_bytes(self._data[position : position + width], "big")
            if not HEADER_SIZE <= offset < self._object_end:
                raise InvalidReferenceError(
                    f"Offset {offset} of object {index} is outside the object table"
                )
            offsets.append(offset)
        return offsets

    def _read_bytes(self, offset: int, n: int) -> bytes:
        """Read n bytes at offset without crossing into the offset table."""
        if n < 0 or offset + n > self._object_end:
            raise TruncatedDataError(offset, n, max(self._object_end - offset, 0))
        return self._data[offset : offset + n]

    def _read_uint(self, offset: int, width: int) -> int:
        return int.from_bytes(self._read_bytes(offset, width), "big")

    def _read_length(self, info: int, offset: int) -> tuple[int, int]:
        """Decode an object length from the marker's low nibble.

        Returns the length and the offset of the payload that follows.
        """
        if info != EXTENDED_LENGTH:
            return info, offset
        marker = self._read_bytes(offset, 1)[0]
        if marker >> 4 != MARKER_INT:
            raise CorruptedDataError(
                f"Expected integer length marker at offset {offset}, got 0x{marker:02x}"
            )
        width = 1 << (marker & 0xF)
        if width > 8:
            raise CorruptedDataError(f"Length integer too wide at offset {offset}")
        return self._read_uint(offset + 1, width), offset + 1 + width

    def _read_refs(self, offset: int, count: int) -> list[int]:
        """Read count object references starting at offset."""
        ref_size = self._ref_size
        raw = self._read_bytes(offset, count * ref_size)
        return [
            int.from_bytes(raw[i : i + ref_size], "big")
            for i in range(0, len(raw), ref_size)
        ]

    def _resolve(self, index: int, depth: int) -> PlistValue:
        """Return the value of object index, parsing it on first use."""
        cached = self._objects.get(index)
        if cached is not None:
            return cached
        if index >= len(self._offsets):
            raise InvalidReferenceError(
                f"Object reference {index} out of range (object count {len(self._offsets)})"
            )
        if index in self._active:
            raise CircularReferenceError(index)
        if depth > self._limits.max_depth:
            raise NestingTooDeepError(self._limits.max_depth)

        self._active.add(index)
        try:
            value = self._parse_object(self._offsets[index], depth)
        finally:
            self._active.discard(index)
        self._objects[index] = value
        return value

    def _parse_object(self, offset: int, depth: int) -> PlistValue:
        """Parse the object whose marker byte is at offset."""
        marker = self._read_bytes(offset, 1)[0]
        kind = marker >> 4
        info = marker & 0xF
        offset += 1

        if kind == MARKER_SIMPLE:
            if marker == SIMPLE_FALSE:
                return PlistBoolean(False)
            if marker == SIMPLE_TRUE:
                return PlistBoolean(True)
            raise UnsupportedObjectError(marker, offset - 1)

        elif kind == MARKER_INT:
            return self._parse_int(info, offset)

        elif kind == MARKER_REAL:
            if info == 2:
                return PlistReal(struct.unpack(">f", self._read_bytes(offset, 4))[0])
            if info == 3:
                return PlistReal(struct.unpack(">d", self._read_bytes(offset, 8))[0])
            raise UnsupportedObjectError(marker, offset - 1)

        elif kind == MARKER_DATE:
            if info != 3:
                raise UnsupportedObjectError(marker, offset - 1)
            seconds = struct.unpack(">d", self._read_bytes(offset, 8))[0]
            return PlistDate(self._decode_date(seconds, offset))

        elif kind == MARKER_DATA:
            length, offset = self._read_length(info, offset)
            return PlistData(self._read_bytes(offset, length))

        elif kind == MARKER_ASCII:
            length, offset = self._read_length(info, offset)
            raw = self._read_bytes(offset, length)
            try:
                return PlistString(raw.decode("ascii"))
            except UnicodeDecodeError as e:
                raise CorruptedDataError(f"Invalid ASCII string at offset {offset}") from e

        elif kind == MARKER_UTF16:
            length, offset = self._read_length(info, offset)
            raw = self._read_bytes(offset, length * 2)
            try:
                return PlistString(raw.decode("utf-16-be"))
            except UnicodeDecodeError as e:
                raise CorruptedDataError(f"Invalid UTF-16 string at offset {offset}") from e

        elif kind == MARKER_UID:
            return PlistUid(self._read_uint(offset, info + 1))

        elif kind == MARKER_ARRAY:
            length, offset = self._read_length(info, offset)
            items = []
            for ref in self._read_refs(offset, length):
                items.append(self._resolve(ref, depth + 1))
            return PlistArray(tuple(items))

        elif kind == MARKER_DICT:
            length, offset = self._read_length(info, offset)
            refs = self._read_refs(offset, length * 2)
            entries: dict[str, PlistValue] = {}
            for key_ref, value_ref in zip(refs[:length], refs[length:]):
                key = self._resolve(key_ref, depth + 1)
                if not isinstance(key, PlistString):
                    raise CorruptedDataError(
                        f"Dictionary key object {key_ref} is a {key.kind.value}, not a string"
                    )
                entries[key.value] = self._resolve(value_ref, depth + 1)
            return PlistDict(entries)

        raise UnsupportedObjectError(marker, offset - 1)

    def _parse_int(self, info: int, offset: int) -> PlistInteger:
        """Parse an integer payload of 2**info bytes.

        1, 2 and 4 byte integers are unsigned, 8 byte integers are signed
        and 16 byte integers are unsigned magnitudes.
        """
        width = 1 << info
        if width > 16:
            raise UnsupportedObjectError((MARKER_INT << 4) | info, offset - 1)
        raw = self._read_bytes(offset, width)
        if width in (1, 2, 4):
            return PlistInteger(int.from_bytes(raw, "big"))
        if width == 8:
            return PlistInteger(int.from_bytes(raw, "big", signed=True))
        if width == 16:
            value = int.from_bytes(raw, "big")
            return PlistInteger(value, wide=True)
        raise UnsupportedObjectError((MARKER_INT << 4) | info, offset - 1)

    def _decode_date(self, seconds: float, offset: int) -> datetime:
        """Convert seconds since 2001-01-01 to an aware datetime."""
        if not math.isfinite(seconds):
            raise CorruptedDataError(f"Non-finite date at offset {offset}")
        try:
            return BINARY_EPOCH + timedelta(seconds=seconds)
        except OverflowError as e:
            raise CorruptedDataError(f"Date out of range at offset {offset}") from e


class BinaryPlistWriter:
    """Writer for binary plist buffers.

    Equal scalar values are written once and shared by reference.
    Containers are always written individually.
    """

    def __init__(self) -> None:
        self._objects: list[PlistValue] = []
        self._children: dict[int, list[int]] = {}
        self._scalars: dict[tuple, int] = {}

    def write(self, value: PlistValue) -> bytes:
        """Encode value tree to a complete bplist00 buffer."""
        self._objects = []
        self._children = {}
        self._scalars = {}
        self._flatten(value, depth=0)

        ref_size = _byte_width(len(self._objects))
        parts = [BINARY_MAGIC]
        position = HEADER_SIZE
        offsets = []
        for index, obj in enumerate(self._objects):
            offsets.append(position)
            encoded = self._encode_object(obj, self._children.get(index, []), ref_size)
            parts.append(encoded)
            position += len(encoded)

        table_offset = position
        offset_size = _byte_width(offsets[-1])
        for offset in offsets:
            parts.append(offset.to_bytes(offset_size, "big"))

        parts.append(
            TRAILER_STRUCT.pack(offset_size, ref_size, len(self._objects), 0, table_offset)
        )
        logger.debug("Wrote %d objects", len(self._objects))
        return b"".join(parts)

    def _flatten(self, value: PlistValue, depth: int) -> int:
        """Assign object indexes depth-first, returning the index of value."""
        if isinstance(value, (PlistArray, PlistDict)):
            if depth > MAX_DEPTH_LIMIT:
                raise NestingTooDeepError(MAX_DEPTH_LIMIT)
            index = len(self._objects)
            self._objects.append(value)
            refs = []
            if isinstance(value, PlistArray):
                for item in value.items:
                    refs.append(self._flatten(item, depth + 1))
            else:
                for key in value.entries:
                    refs.append(self._flatten(PlistString(key), depth + 1))
                for item in value.entries.values():
                    refs.append(self._flatten(item, depth + 1))
            self._children[index] = refs
            return index

        key = _scalar_key(value)
        index = self._scalars.get(key)
        if index is None:
            index = len(self._objects)
            self._objects.append(value)
            self._scalars[key] = index
        return index

    def _encode_object(self, value: PlistValue, refs: list[int], ref_size: int) -> bytes:
        """Encode one object; refs are the child indexes of a container."""
        match value:
            case PlistBoolean(value=flag):
                return bytes([SIMPLE_TRUE if flag else SIMPLE_FALSE])
            case PlistInteger():
                return _encode_int(value.value, value.wide)
            case PlistReal(value=number):
                return bytes([(MARKER_REAL << 4) | 3]) + struct.pack(">d", number)
            case PlistDate(value=moment):
                seconds = (moment - BINARY_EPOCH).total_seconds()
                return bytes([(MARKER_DATE << 4) | 3]) + struct.pack(">d", seconds)
            case PlistData(value=raw):
                return _encode_header(MARKER_DATA, len(raw)) + raw
            case PlistString(value=text):
                try:
                    raw = text.encode("ascii")
                    return _encode_header(MARKER_ASCII, len(raw)) + raw
                except UnicodeEncodeError:
                    raw = text.encode("utf-16-be")
                    return _encode_header(MARKER_UTF16, len(raw) // 2) + raw
            case PlistUid(value=number):
                # PlistUid keeps number within 16 bytes, the widest info nibble
                width = max(1, (number.bit_length() + 7) // 8)
                return bytes([(MARKER_UID << 4) | (width - 1)]) + number.to_bytes(width, "big")
            case PlistArray():
                return _encode_header(MARKER_ARRAY, len(value.items)) + _encode_refs(
                    refs, ref_size
                )
            case PlistDict():
                return _encode_header(MARKER_DICT, len(value.entries)) + _encode_refs(
                    refs, ref_size
                )
        raise TypeError(f"Not a plist value: {type(value).__name__}")


def _byte_width(value: int) -> int:
    """Minimum number of bytes (1, 2, 4 or 8) to store value unsigned."""
    for width in (1, 2, 4, 8):
        if value < 1 << (8 * width):
            return width
    raise ValueError(f"Value too large for a binary plist field: {value}")


def _scalar_key(value: PlistValue) -> tuple:
    """Deduplication key that keeps distinct encodings apart (e.g. 0.0 / -0.0)."""
    if isinstance(value, PlistReal):
        return (value.kind, struct.pack(">d", value.value))
    if isinstance(value, PlistInteger):
        return (value.kind, value.value, value.wide)
    if isinstance(value, PlistDate):
        return (value.kind, value.value.timestamp())
    return (value.kind, value.value)


def _encode_int(value: int, wide: bool = False) -> bytes:
    if value < 0:
        return bytes([(MARKER_INT << 4) | 3]) + struct.pack(">q", value)
    if wide or value > INT64_MAX:
        return bytes([(MARKER_INT << 4) | 4]) + value.to_bytes(16, "big")
    width = _byte_width(value)
    if width == 8:
        return bytes([(MARKER_INT << 4) | 3]) + struct.pack(">q", value)
    info = {1: 0, 2: 1, 4: 2}[width]
    return bytes([(MARKER_INT << 4) | info]) + value.to_bytes(width, "big")


def _encode_header(kind: int, length: int) -> bytes:
    """Marker byte plus an extended length integer when length >= 15."""
    if length < EXTENDED_LENGTH:
        return bytes([(kind << 4) | length])
    return bytes([(kind << 4) | EXTENDED_LENGTH]) + _encode_int(length)


def _encode_refs(refs: list[int], ref_size: int) -> bytes:
    return b"".join(ref.to_bytes(ref_size, "big") for ref in refs)


def read_binary_plist(data: bytes, limits: ParseLimits | None = None) -> PlistValue:
    """Convenience function to parse a binary plist.

    Args:
        data: Complete buffer, starting with bplist00
        limits: Optional parse limits

    Returns:
        The root value
    """
    reader = BinaryPlistReader(data, limits)
    return reader.parse()


def write_binary_plist(value: PlistValue) -> bytes:
    """Convenience function to encode a value tree as a binary plist."""
    writer = BinaryPlistWriter()
    return writer.write(value)
