"""Custom exception hierarchy for plistcodec.

This module provides a rich exception hierarchy for better error handling
and user feedback. All exceptions inherit from PlistError.

Exception Hierarchy:
    PlistError (base)
    ├── FormatError
    │   ├── InvalidSignatureError
    │   ├── InvalidTrailerError
    │   ├── TruncatedDataError
    │   ├── InvalidReferenceError
    │   ├── CircularReferenceError
    │   ├── UnsupportedObjectError
    │   ├── CorruptedDataError
    │   ├── InvalidXmlError
    │   ├── NestingTooDeepError
    │   ├── InputTooLargeError
    │   └── EmptyInputError
    ├── DecodeError
    │   ├── TypeMismatchError
    │   └── RangeError
    └── ShapeError

Every error aborts the whole parse or decode call. No partial value is
ever returned alongside an exception.
"""

from __future__ import annotations

from collections.abc import Sequence

PathElement = str | int


def format_path(path: Sequence[PathElement]) -> str:
    """Render a key/index path as ``$.Key[3].Other``."""
    parts = ["$"]
    for element in path:
        if isinstance(element, int):
            parts.append(f"[{element}]")
        else:
            parts.append(f".{element}")
    return "".join(parts)


class PlistError(Exception):
    """Base exception for all plistcodec errors.

    All exceptions raised by plistcodec inherit from this class,
    making it easy to catch all library-specific errors.
    """


# --- Format Errors ---


class FormatError(PlistError, ValueError):
    """Malformed plist input.

    Raised when the bytes don't conform to the XML plist dialect or the
    bplist00 layout. Parsing is aborted and no partial tree is returned.
    """


class InvalidSignatureError(FormatError):
    """Binary plist doesn't start with the bplist00 magic bytes."""

    def __init__(self, magic: bytes) -> None:
        self.magic = magic
        super().__init__(f"Invalid binary plist signature: {magic!r}")


class InvalidTrailerError(FormatError):
    """Binary plist trailer is missing or inconsistent.

    Covers buffers too short to hold a trailer as well as trailers whose
    widths, counts or offsets contradict the size of the buffer.
    """


class TruncatedDataError(FormatError):
    """A field extends past the end of the available data."""

    def __init__(self, offset: int, needed: int, available: int) -> None:
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(
            f"Unexpected end of data at offset {offset}: "
            f"need {needed} bytes, {available} available"
        )


class InvalidReferenceError(FormatError):
    """Object reference or offset table entry outside its declared bounds."""


class CircularReferenceError(FormatError):
    """Object graph refers back to an object that is still being parsed."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Circular reference to object {index}")


class UnsupportedObjectError(FormatError):
    """Object marker that has no counterpart in the value model."""

    def __init__(self, marker: int, offset: int) -> None:
        self.marker = marker
        self.offset = offset
        super().__init__(f"Unsupported object marker 0x{marker:02x} at offset {offset}")


class CorruptedDataError(FormatError):
    """Object payload is structurally valid but its content is not.

    Examples are undecodable string bytes, dictionary keys that aren't
    strings and dates that can't be represented.
    """


class InvalidXmlError(FormatError):
    """Invalid or malformed XML plist document."""

    def __init__(self, message: str = "Invalid XML plist structure") -> None:
        super().__init__(message)


class NestingTooDeepError(FormatError):
    """Containers nest deeper than the configured limit."""

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        super().__init__(f"Nesting exceeds maximum depth of {max_depth}")


class InputTooLargeError(FormatError):
    """Input is larger than the configured size ceiling."""

    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(f"Input of {size} bytes exceeds limit of {max_size} bytes")


class EmptyInputError(FormatError):
    """No bytes left to decode."""

    def __init__(self) -> None:
        super().__init__("No plist data to decode")


# --- Decode Errors ---


class DecodeError(PlistError):
    """A parsed value doesn't fit the requested target shape.

    Attributes:
        path: Keys and indices leading from the root to the offending value
    """

    def __init__(self, message: str, path: Sequence[PathElement] = ()) -> None:
        self.path = tuple(path)
        super().__init__(f"{message} at {format_path(self.path)}")


class TypeMismatchError(DecodeError, TypeError):
    """Value kind doesn't match what the target shape requires."""

    def __init__(
        self, expected: str, actual: str, path: Sequence[PathElement] = ()
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Cannot decode plist {actual} into {expected}", path)


class RangeError(DecodeError, OverflowError):
    """Numeric value doesn't fit the target's width or signedness."""

    def __init__(
        self, value: int | float, expected: str, path: Sequence[PathElement] = ()
    ) -> None:
        self.value = value
        self.expected = expected
        super().__init__(f"Value {value!r} out of range for {expected}", path)


class ShapeError(PlistError, TypeError):
    """A target annotation can't be turned into a decode shape."""
