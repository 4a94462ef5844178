"""Type-directed decoding of plist value trees.

This module projects parsed value trees onto caller-declared targets:
- Shapes describing scalar, container and record targets
- Tag resolution mapping record fields to dictionary keys
- The decoder itself, with kind and range checking
"""

from .decoder import decode, decode_value
from .shapes import (
    ANY,
    BOOL,
    BYTES,
    FLOAT32,
    FLOAT64,
    INT,
    INT8,
    INT16,
    INT32,
    INT64,
    STRING,
    TIMESTAMP,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    BoolShape,
    BytesShape,
    DynamicShape,
    FloatShape,
    IntShape,
    MapShape,
    OptionalShape,
    RecordShape,
    SequenceShape,
    Shape,
    StringShape,
    TimestampShape,
    record_fields,
    shape_of,
)
from .tags import FieldSpec, FieldTag, parse_tag, resolve_key

__all__ = [
    # Decoder
    "decode",
    "decode_value",
    # Shapes
    "ANY",
    "BOOL",
    "BYTES",
    "FLOAT32",
    "FLOAT64",
    "INT",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "STRING",
    "TIMESTAMP",
    "UINT8",
    "UINT16",
    "UINT32",
    "UINT64",
    "BoolShape",
    "BytesShape",
    "DynamicShape",
    "FloatShape",
    "IntShape",
    "MapShape",
    "OptionalShape",
    "RecordShape",
    "SequenceShape",
    "Shape",
    "StringShape",
    "TimestampShape",
    "record_fields",
    "shape_of",
    # Tags
    "FieldSpec",
    "FieldTag",
    "parse_tag",
    "resolve_key",
]
