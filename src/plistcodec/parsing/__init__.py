"""Plist format parsing and building.

This module handles the serialized formats:
- Format detection from the leading signature
- Binary plist (bplist00) reading and writing
- XML plist event tokenizing, tree building and writing

Binary parsing uses Python's struct module; XML tokenizing uses defusedxml.
"""

from .binary import (
    BINARY_MAGIC,
    BinaryPlistReader,
    BinaryPlistWriter,
    BinaryTrailer,
    read_binary_plist,
    write_binary_plist,
)
from .sniffer import PlistFormat, detect_format, parse_plist
from .xmlplist import (
    EndElement,
    StartElement,
    Text,
    XmlPlistBuilder,
    XmlPlistWriter,
    iter_xml_events,
    read_xml_plist,
    write_xml_plist,
)

__all__ = [
    # Sniffer
    "PlistFormat",
    "detect_format",
    "parse_plist",
    # Binary
    "BINARY_MAGIC",
    "BinaryPlistReader",
    "BinaryPlistWriter",
    "BinaryTrailer",
    "read_binary_plist",
    "write_binary_plist",
    # XML
    "EndElement",
    "StartElement",
    "Text",
    "XmlPlistBuilder",
    "XmlPlistWriter",
    "iter_xml_events",
    "read_xml_plist",
    "write_xml_plist",
]
