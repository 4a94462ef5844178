"""High-level API for reading and writing property lists.

This module provides the main entry points:
- Decoding a whole buffer into plain Python values or a typed target
- Decoding from files, paths and open streams
- Encoding Python values as XML or binary plists
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO

from .config import ParseLimits
from .decoding import decode
from .exceptions import EmptyInputError
from .models import PlistValue, from_python, to_python
from .parsing import PlistFormat, parse_plist, write_binary_plist, write_xml_plist

logger = logging.getLogger(__name__)


def loads_value(
    data: bytes,
    *,
    fmt: PlistFormat | None = None,
    limits: ParseLimits | None = None,
) -> PlistValue:
    """Parse a plist buffer into its value tree.

    Args:
        data: Complete XML or binary plist contents
        fmt: Force a format instead of detecting it
        limits: Optional parse limits

    Returns:
        The root PlistValue
    """
    return parse_plist(bytes(data), fmt=fmt, limits=limits)


def loads(
    data: bytes,
    target: object = None,
    *,
    fmt: PlistFormat | None = None,
    limits: ParseLimits | None = None,
) -> object:
    """Decode a plist buffer.

    Args:
        data: Complete XML or binary plist contents
        target: Type annotation or Shape to decode into. When None the
            value is returned as plain Python objects.
        fmt: Force a format instead of detecting it
        limits: Optional parse limits

    Returns:
        The decoded value

    Raises:
        FormatError: If the input is malformed
        DecodeError: If the value doesn't fit the target

    Example:
        >>> loads(b"<plist><integer>1</integer></plist>", UINT64)
        1
    """
    value = loads_value(data, fmt=fmt, limits=limits)
    if target is None:
        return to_python(value)
    return decode(value, target)


def load(
    fp: str | Path | IO[bytes],
    target: object = None,
    *,
    fmt: PlistFormat | None = None,
    limits: ParseLimits | None = None,
) -> object:
    """Decode a plist from a path or a binary file object.

    See loads() for the meaning of the other arguments.

    Raises:
        FileNotFoundError: If a path is given and doesn't exist
    """
    if isinstance(fp, (str, Path)):
        path = Path(fp)
        if not path.exists():
            raise FileNotFoundError(f"Plist file not found: {path}")
        data = path.read_bytes()
    else:
        data = fp.read()
    return loads(data, target, fmt=fmt, limits=limits)


def dumps(obj: object, *, fmt: PlistFormat = PlistFormat.XML) -> bytes:
    """Encode a Python value or value tree as a plist.

    Args:
        obj: Plain Python value (dict, list, str, ...) or a PlistValue
        fmt: Output format (XML by default)

    Returns:
        The encoded plist

    Raises:
        TypeError: If obj contains something with no plist form
        ValueError: If a UID is outside [0, 2**128)
        NestingTooDeepError: If containers nest deeper than MAX_DEPTH_LIMIT
    """
    value = from_python(obj)
    if fmt == PlistFormat.BINARY:
        return write_binary_plist(value)
    return write_xml_plist(value)


def dump(
    obj: object,
    fp: str | Path | IO[bytes],
    *,
    fmt: PlistFormat = PlistFormat.XML,
) -> None:
    """Encode obj and write it to a path or a binary file object."""
    data = dumps(obj, fmt=fmt)
    if isinstance(fp, (str, Path)):
        Path(fp).write_bytes(data)
    else:
        fp.write(data)


class Decoder:
    """Decodes plists from an open binary stream.

    Each decode() call reads the stream from its current position to the
    end and decodes what it read. The stream position is shared state, so
    an instance must be used sequentially.

    Example:
        with open("Info.plist", "rb") as f:
            info = Decoder(f).decode(dict[str, Any])
    """

    def __init__(
        self,
        stream: IO[bytes],
        *,
        fmt: PlistFormat | None = None,
        limits: ParseLimits | None = None,
    ) -> None:
        """Initialize decoder.

        Args:
            stream: Readable binary stream
            fmt: Force a format instead of detecting it
            limits: Optional parse limits
        """
        self._stream = stream
        self._fmt = fmt
        self._limits = limits

    def decode_value(self) -> PlistValue:
        """Read the rest of the stream and return its value tree.

        Raises:
            EmptyInputError: If nothing is left to read
        """
        data = self._stream.read()
        if not data:
            raise EmptyInputError()
        logger.debug("Decoder read %d bytes", len(data))
        return loads_value(data, fmt=self._fmt, limits=self._limits)

    def decode(self, target: object = None) -> object:
        """Read the rest of the stream and decode it into target.

        See loads() for the meaning of target.
        """
        value = self.decode_value()
        if target is None:
            return to_python(value)
        return decode(value, target)
