"""plistcodec - Property list decoding for Python.

This library reads Apple property lists in both the XML dialect and the
binary bplist00 format, and decodes them into typed Python targets:
- One immutable value tree for both formats
- Dataclass records with tag-based key mapping
- Range-checked integer and float narrowing
- Typed errors, never partial results

Example:
    from dataclasses import dataclass, field
    from typing import Annotated

    import plistcodec
    from plistcodec import UINT64

    @dataclass
    class SparseBundle:
        band_size: Annotated[int, UINT64] = field(
            default=0, metadata={"plist": "band-size"}
        )

    header = plistcodec.load("Info.plist", SparseBundle)
    print(header.band_size)

    # Plain Python values
    info = plistcodec.loads(data)
"""

__version__ = "0.1.0"

from .api import Decoder, dump, dumps, load, loads, loads_value
from .config import ParseLimits
from .decoding import (
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
    MapShape,
    RecordShape,
    SequenceShape,
    Shape,
    decode,
    shape_of,
)
from .exceptions import (
    CircularReferenceError,
    CorruptedDataError,
    DecodeError,
    EmptyInputError,
    FormatError,
    InputTooLargeError,
    InvalidReferenceError,
    InvalidSignatureError,
    InvalidTrailerError,
    InvalidXmlError,
    NestingTooDeepError,
    PlistError,
    RangeError,
    ShapeError,
    TruncatedDataError,
    TypeMismatchError,
    UnsupportedObjectError,
)
from .models import (
    UID,
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
    ValueKind,
    from_python,
    to_python,
)
from .parsing import PlistFormat, detect_format, parse_plist

__all__ = [
    # Core API
    "Decoder",
    "dump",
    "dumps",
    "load",
    "loads",
    "loads_value",
    "decode",
    "detect_format",
    "parse_plist",
    "PlistFormat",
    "ParseLimits",
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
    "MapShape",
    "RecordShape",
    "SequenceShape",
    "Shape",
    "shape_of",
    # Value model
    "UID",
    "PlistArray",
    "PlistBoolean",
    "PlistData",
    "PlistDate",
    "PlistDict",
    "PlistInteger",
    "PlistReal",
    "PlistString",
    "PlistUid",
    "PlistValue",
    "ValueKind",
    "from_python",
    "to_python",
    # Exceptions
    "PlistError",
    "FormatError",
    "InvalidSignatureError",
    "InvalidTrailerError",
    "TruncatedDataError",
    "InvalidReferenceError",
    "CircularReferenceError",
    "UnsupportedObjectError",
    "CorruptedDataError",
    "InvalidXmlError",
    "NestingTooDeepError",
    "InputTooLargeError",
    "EmptyInputError",
    "DecodeError",
    "TypeMismatchError",
    "RangeError",
    "ShapeError",
]
