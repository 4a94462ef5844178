"""Test utilities for plistcodec.

WARNING: The helpers in this module are for TESTING ONLY. They build
plist buffers byte by byte without validating anything, so they can
produce corrupt input on purpose.

Binary plists are assembled from raw object encodings::

    data = assemble_binary_plist(
        [
            obj_array([1, 2]),
            obj_ascii("a"),
            obj_int(7),
        ]
    )

Object 0 is the root unless ``root`` says otherwise. Offsets, object
count and widths are computed, and each can be overridden to produce
malformed trailers and tables.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence

from plistcodec.parsing.binary import BINARY_MAGIC, TRAILER_STRUCT

XML_PROLOG = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" '
    '"http://www.apple.com/DTDs/PropertyList-1.0.dtd">\n'
)


def xml_document(body: str) -> bytes:
    """Wrap body in a <plist version="1.0"> document with the standard prolog."""
    return (XML_PROLOG + f'<plist version="1.0">{body}</plist>\n').encode("utf-8")


def _marker(kind: int, length: int) -> bytes:
    if length < 15:
        return bytes([(kind << 4) | length])
    return bytes([(kind << 4) | 0xF]) + obj_int(length)


def obj_bool(flag: bool) -> bytes:
    return b"\x09" if flag else b"\x08"


def obj_int(value: int, width: int | None = None) -> bytes:
    """Integer object; width defaults to the smallest unsigned fit."""
    if width is None:
        width = next(w for w in (1, 2, 4, 8) if 0 <= value < 1 << (8 * w) or w == 8)
    info = {1: 0, 2: 1, 4: 2, 8: 3, 16: 4}[width]
    return bytes([0x10 | info]) + value.to_bytes(width, "big", signed=value < 0)


def obj_real(value: float, single: bool = False) -> bytes:
    if single:
        return b"\x22" + struct.pack(">f", value)
    return b"\x23" + struct.pack(">d", value)


def obj_date(seconds: float) -> bytes:
    """Date object, seconds since 2001-01-01T00:00:00Z."""
    return b"\x33" + struct.pack(">d", seconds)


def obj_data(raw: bytes) -> bytes:
    return _marker(0x4, len(raw)) + raw


def obj_ascii(text: str) -> bytes:
    raw = text.encode("ascii")
    return _marker(0x5, len(raw)) + raw


def obj_utf16(text: str) -> bytes:
    raw = text.encode("utf-16-be")
    return _marker(0x6, len(raw) // 2) + raw


def obj_uid(value: int, width: int = 1) -> bytes:
    return bytes([0x80 | (width - 1)]) + value.to_bytes(width, "big")


def obj_array(refs: Sequence[int], ref_size: int = 1) -> bytes:
    return _marker(0xA, len(refs)) + b"".join(r.to_bytes(ref_size, "big") for r in refs)


def obj_dict(
    key_refs: Sequence[int], value_refs: Sequence[int], ref_size: int = 1
) -> bytes:
    refs = list(key_refs) + list(value_refs)
    return _marker(0xD, len(key_refs)) + b"".join(r.to_bytes(ref_size, "big") for r in refs)


def assemble_binary_plist(
    objects: Sequence[bytes],
    *,
    root: int = 0,
    ref_size: int = 1,
    offset_size: int | None = None,
    offsets: Sequence[int] | None = None,
    object_count: int | None = None,
    table_offset: int | None = None,
) -> bytes:
    """Lay out objects, offset table and trailer into a bplist00 buffer.

    Args:
        objects: Raw encoded objects, in index order
        root: Root object index written to the trailer
        ref_size: Object reference width written to the trailer
        offset_size: Offset table entry width (smallest fit by default)
        offsets: Offset table entries to write instead of the real ones
        object_count: Object count to write instead of len(objects)
        table_offset: Offset table position to write instead of the real one
    """
    body = bytearray(BINARY_MAGIC)
    real_offsets = []
    for encoded in objects:
        real_offsets.append(len(body))
        body += encoded

    real_table_offset = len(body)
    entries = list(offsets) if offsets is not None else real_offsets
    if offset_size is None:
        largest = max(entries, default=0)
        offset_size = next(w for w in (1, 2, 4, 8) if largest < 1 << (8 * w))
    for entry in entries:
        body += entry.to_bytes(offset_size, "big")

    body += TRAILER_STRUCT.pack(
        offset_size,
        ref_size,
        len(objects) if object_count is None else object_count,
        root,
        real_table_offset if table_offset is None else table_offset,
    )
    return bytes(body)


__all__ = [
    "assemble_binary_plist",
    "obj_array",
    "obj_ascii",
    "obj_bool",
    "obj_data",
    "obj_date",
    "obj_dict",
    "obj_int",
    "obj_real",
    "obj_uid",
    "obj_utf16",
    "xml_document",
]
