"""Value model for parsed property lists.

This module provides the immutable tree every parser produces and every
decoder consumes.
"""

from .values import (
    BINARY_EPOCH,
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

__all__ = [
    "BINARY_EPOCH",
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
]
