"""XML property list parsing and building.

Parsing happens in two layers:
- A tokenizer turns the document into a flat stream of start-element,
  text and end-element events. It is built on defusedxml so entity
  expansion and external references are refused.
- XmlPlistBuilder consumes those events one at a time and assembles the
  value tree. It only ever looks at the innermost open element.

The element vocabulary is fixed to string, integer, real, true, false,
date, data, array, dict and key inside a single <plist> root.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from xml.etree.ElementTree import Element, ParseError, SubElement, indent, tostring

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import DefusedXMLParser

from plistcodec.config import MAX_DEPTH_LIMIT, ParseLimits
from plistcodec.exceptions import InvalidXmlError, NestingTooDeepError
from plistcodec.models.values import (
    INT64_MAX,
    INT64_MIN,
    UINT128_MAX,
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

XML_HEADER = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" '
    b'"http://www.apple.com/DTDs/PropertyList-1.0.dtd">\n'
)

# Trailing components may be omitted, as older writers did
_DATE_PATTERN = re.compile(
    r"(?P<year>\d\d\d\d)(?:-(?P<month>\d\d)(?:-(?P<day>\d\d)"
    r"(?:T(?P<hour>\d\d)(?::(?P<minute>\d\d)(?::(?P<second>\d\d))?)?)?)?)?Z",
    re.ASCII,
)
_INTEGER_PATTERN = re.compile(r"[+-]?(?:0[xX][0-9a-fA-F]+|\d+)", re.ASCII)

# Bytes handed to the tokenizer per feed() call
FEED_CHUNK_SIZE = 64 * 1024

ROOT_ELEMENT = "plist"
KEY_ELEMENT = "key"
CONTAINER_ELEMENTS = frozenset({"array", "dict"})
SCALAR_ELEMENTS = frozenset({"string", "integer", "real", "true", "false", "date", "data"})


# --- Events ---


@dataclass(frozen=True, slots=True)
class StartElement:
    name: str
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Text:
    content: str


@dataclass(frozen=True, slots=True)
class EndElement:
    name: str


XmlEvent = StartElement | Text | EndElement


class _EventCollector:
    """Parser target that records events until drained."""

    def __init__(self) -> None:
        self._events: list[XmlEvent] = []

    def start(self, tag: str, attrib: dict[str, str]) -> None:
        self._events.append(StartElement(tag, dict(attrib)))

    def end(self, tag: str) -> None:
        self._events.append(EndElement(tag))

    def data(self, data: str) -> None:
        self._events.append(Text(data))

    def close(self) -> None:
        return None

    def drain(self) -> list[XmlEvent]:
        events, self._events = self._events, []
        return events


def iter_xml_events(data: bytes) -> Iterator[XmlEvent]:
    """Tokenize an XML document into start/text/end events.

    Entity declarations and external references are rejected by the
    underlying defusedxml parser. A DOCTYPE without entities is accepted
    and ignored.

    Raises:
        InvalidXmlError: If the document is not well-formed XML
    """
    collector = _EventCollector()
    parser = DefusedXMLParser(target=collector)
    try:
        for start in range(0, len(data), FEED_CHUNK_SIZE):
            parser.feed(data[start : start + FEED_CHUNK_SIZE])
            yield from collector.drain()
        parser.close()
    except ParseError as e:
        raise InvalidXmlError(f"Malformed XML: {e}") from e
    except DefusedXmlException as e:
        raise InvalidXmlError(f"Forbidden XML construct: {e}") from e
    yield from collector.drain()


# --- Builder ---


@dataclass(slots=True)
class _Frame:
    """An open element on the builder stack."""

    name: str
    text: list[str] = field(default_factory=list)
    items: list[PlistValue] = field(default_factory=list)
    entries: dict[str, PlistValue] = field(default_factory=dict)
    pending_key: str | None = None

    @property
    def is_container(self) -> bool:
        return self.name == ROOT_ELEMENT or self.name in CONTAINER_ELEMENTS


class XmlPlistBuilder:
    """Assembles a value tree from XML events."""

    def __init__(self, limits: ParseLimits | None = None) -> None:
        self._limits = limits or ParseLimits.default()
        self._stack: list[_Frame] = []
        self._result: PlistValue | None = None
        self._finished = False

    def build(self, events: Iterable[XmlEvent]) -> PlistValue:
        """Consume events and return the single root value.

        Raises:
            InvalidXmlError: If the events don't describe a valid plist
            NestingTooDeepError: If containers nest beyond the limit
        """
        self._stack = []
        self._result = None
        self._finished = False

        for event in events:
            match event:
                case StartElement(name=name):
                    self._start(name)
                case Text(content=content):
                    self._text(content)
                case EndElement(name=name):
                    self._end(name)

        if not self._finished or self._result is None:
            raise InvalidXmlError("Unexpected end of document: <plist> not closed")
        return self._result

    def _start(self, name: str) -> None:
        if self._finished:
            raise InvalidXmlError(f"Unexpected <{name}> after </plist>")
        if not self._stack:
            if name != ROOT_ELEMENT:
                raise InvalidXmlError(f"Root element must be <plist>, got <{name}>")
            self._stack.append(_Frame(name))
            return

        parent = self._stack[-1]
        if not parent.is_container:
            raise InvalidXmlError(f"Unexpected <{name}> inside <{parent.name}>")
        if name == KEY_ELEMENT:
            if parent.name != "dict":
                raise InvalidXmlError(f"<key> outside <dict> (in <{parent.name}>)")
            if parent.pending_key is not None:
                raise InvalidXmlError(f"<key> {parent.pending_key!r} has no value")
        elif name in CONTAINER_ELEMENTS or name in SCALAR_ELEMENTS:
            if parent.name == ROOT_ELEMENT and parent.items:
                raise InvalidXmlError("<plist> contains more than one value")
        else:
            raise InvalidXmlError(f"Unknown element <{name}>")

        if name in CONTAINER_ELEMENTS and len(self._stack) > self._limits.max_depth:
            raise NestingTooDeepError(self._limits.max_depth)
        self._stack.append(_Frame(name))

    def _text(self, content: str) -> None:
        if not self._stack:
            if content.strip():
                raise InvalidXmlError("Text outside <plist>")
            return
        frame = self._stack[-1]
        if frame.is_container:
            if content.strip():
                raise InvalidXmlError(f"Unexpected text inside <{frame.name}>")
            return
        frame.text.append(content)

    def _end(self, name: str) -> None:
        if not self._stack or self._stack[-1].name != name:
            raise InvalidXmlError(f"Unbalanced closing tag </{name}>")
        frame = self._stack.pop()

        if name == ROOT_ELEMENT:
            if not frame.items:
                raise InvalidXmlError("<plist> contains no value")
            self._result = frame.items[0]
            self._finished = True
            return

        parent = self._stack[-1]
        if name == KEY_ELEMENT:
            parent.pending_key = "".join(frame.text)
            return

        value = self._build_value(frame)
        if parent.name != "dict":
            parent.items.append(value)
        elif parent.pending_key is None:
            raise InvalidXmlError(f"<{name}> in <dict> without a preceding <key>")
        else:
            parent.entries[parent.pending_key] = value
            parent.pending_key = None

    def _build_value(self, frame: _Frame) -> PlistValue:
        """Turn a closed element frame into its value."""
        text = "".join(frame.text)
        name = frame.name
        if name == "array":
            return PlistArray(tuple(frame.items))
        if name == "dict":
            if frame.pending_key is not None:
                raise InvalidXmlError(f"<key> {frame.pending_key!r} has no value")
            return PlistDict(frame.entries)
        if name == "string":
            return PlistString(text)
        if name == "integer":
            return PlistInteger(*_parse_integer(text))
        if name == "real":
            try:
                return PlistReal(float(text.strip()))
            except ValueError as e:
                raise InvalidXmlError(f"Invalid <real> value: {text!r}") from e
        if name in ("true", "false"):
            if text.strip():
                raise InvalidXmlError(f"<{name}> must be empty")
            return PlistBoolean(name == "true")
        if name == "date":
            return PlistDate(_parse_date(text))
        if name == "data":
            try:
                raw = base64.b64decode("".join(text.split()), validate=True)
            except binascii.Error as e:
                raise InvalidXmlError(f"Invalid base64 in <data>: {e}") from e
            return PlistData(raw, from_xml=True)
        raise InvalidXmlError(f"Unknown element <{name}>")


def _parse_integer(text: str) -> tuple[int, bool]:
    """Parse <integer> text, returning the value and whether it is wide."""
    text = text.strip()
    if not _INTEGER_PATTERN.fullmatch(text):
        raise InvalidXmlError(f"Invalid <integer> value: {text!r}")
    sign = -1 if text.startswith("-") else 1
    digits = text.lstrip("+-")
    if digits[:2] in ("0x", "0X"):
        value = sign * int(digits, 16)
    else:
        value = sign * int(digits)
    if value < INT64_MIN or value > UINT128_MAX:
        raise InvalidXmlError(f"<integer> value out of range: {text}")
    return value, value > INT64_MAX


def _parse_date(text: str) -> datetime:
    """Parse <date> text as an ISO 8601 UTC timestamp."""
    match = _DATE_PATTERN.fullmatch(text.strip())
    if match is None:
        raise InvalidXmlError(f"Invalid <date> value: {text!r}")
    parts = {name: int(value) for name, value in match.groupdict().items() if value}
    try:
        return datetime(
            parts["year"],
            parts.get("month", 1),
            parts.get("day", 1),
            parts.get("hour", 0),
            parts.get("minute", 0),
            parts.get("second", 0),
            tzinfo=UTC,
        )
    except ValueError as e:
        raise InvalidXmlError(f"Invalid <date> value: {text!r}") from e


# --- Writer ---


class XmlPlistWriter:
    """Writer for XML plist documents."""

    def write(self, value: PlistValue) -> bytes:
        """Encode a value tree as a complete XML plist document."""
        root = Element(ROOT_ELEMENT, version="1.0")
        self._build_value(root, value, depth=0)
        indent(root, space="\t")
        body = tostring(root, encoding="unicode")
        return XML_HEADER + body.encode("utf-8") + b"\n"

    def _build_value(self, parent: Element, value: PlistValue, depth: int) -> None:
        if isinstance(value, (PlistArray, PlistDict)) and depth > MAX_DEPTH_LIMIT:
            raise NestingTooDeepError(MAX_DEPTH_LIMIT)
        match value:
            case PlistString(value=text):
                SubElement(parent, "string").text = text
            case PlistInteger(value=number):
                SubElement(parent, "integer").text = str(number)
            case PlistReal(value=number):
                SubElement(parent, "real").text = repr(number)
            case PlistBoolean(value=flag):
                SubElement(parent, "true" if flag else "false")
            case PlistDate(value=moment):
                SubElement(parent, "date").text = _encode_date(moment)
            case PlistData(value=raw):
                SubElement(parent, "data").text = base64.b64encode(raw).decode("ascii")
            case PlistUid(value=number):
                # Keyed-archiver convention for UIDs in XML
                elem = SubElement(parent, "dict")
                SubElement(elem, "key").text = "CF$UID"
                SubElement(elem, "integer").text = str(number)
            case PlistArray(items=items):
                elem = SubElement(parent, "array")
                for item in items:
                    self._build_value(elem, item, depth + 1)
            case PlistDict(entries=entries):
                elem = SubElement(parent, "dict")
                for key, item in entries.items():
                    SubElement(elem, "key").text = key
                    self._build_value(elem, item, depth + 1)
            case _:
                raise TypeError(f"Not a plist value: {type(value).__name__}")


def _encode_date(moment: datetime) -> str:
    """Format as YYYY-MM-DDTHH:MM:SSZ, zero-padding years below 1000."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    m = moment.astimezone(UTC)
    return (
        f"{m.year:04d}-{m.month:02d}-{m.day:02d}"
        f"T{m.hour:02d}:{m.minute:02d}:{m.second:02d}Z"
    )


def read_xml_plist(data: bytes, limits: ParseLimits | None = None) -> PlistValue:
    """Convenience function to parse an XML plist document.

    Args:
        data: Complete document bytes
        limits: Optional parse limits

    Returns:
        The root value
    """
    builder = XmlPlistBuilder(limits)
    value = builder.build(iter_xml_events(data))
    logger.debug("Parsed XML plist with root %s", value.kind.value)
    return value


def write_xml_plist(value: PlistValue) -> bytes:
    """Convenience function to encode a value tree as an XML plist."""
    writer = XmlPlistWriter()
    return writer.write(value)
