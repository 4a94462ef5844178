"""Format detection and dispatch to the matching parser."""

from __future__ import annotations

import logging
from enum import Enum

from plistcodec.config import ParseLimits
from plistcodec.exceptions import InputTooLargeError
from plistcodec.models.values import PlistValue

from .binary import BINARY_MAGIC, read_binary_plist
from .xmlplist import read_xml_plist

logger = logging.getLogger(__name__)


class PlistFormat(Enum):
    """Serialized plist formats."""

    XML = "xml"
    BINARY = "binary"


def detect_format(data: bytes) -> PlistFormat:
    """Pick the format from the leading byte signature.

    Only the exact bplist00 magic selects the binary format; anything
    else is treated as XML.
    """
    if data[: len(BINARY_MAGIC)] == BINARY_MAGIC:
        return PlistFormat.BINARY
    return PlistFormat.XML


def parse_plist(
    data: bytes,
    fmt: PlistFormat | None = None,
    limits: ParseLimits | None = None,
) -> PlistValue:
    """Parse a plist buffer into a value tree.

    Args:
        data: Complete plist contents
        fmt: Force a format instead of detecting it
        limits: Optional parse limits

    Returns:
        The root value

    Raises:
        FormatError: If the input is malformed or exceeds the limits
    """
    limits = limits or ParseLimits.default()
    if limits.max_input_size is not None and len(data) > limits.max_input_size:
        raise InputTooLargeError(len(data), limits.max_input_size)

    if fmt is None:
        fmt = detect_format(data)
    logger.debug("Parsing %d bytes as %s plist", len(data), fmt.value)

    if fmt == PlistFormat.BINARY:
        return read_binary_plist(data, limits)
    return read_xml_plist(data, limits)
