"""Field tag resolution for record targets.

A record field may carry a tag in its dataclass metadata::

    @dataclass
    class Header:
        band_size: int = field(default=0, metadata={"plist": "band-size"})

The tag is ``"<key>[,option...]"``. The key is used verbatim as the
dictionary key; an empty key falls back to the field name, unmodified.
A tag of ``"-"`` excludes the field from decoding (use ``"-,"`` for a
literal ``-`` key).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .shapes import Shape

# Dataclass field metadata key holding the tag
TAG_METADATA_KEY = "plist"

SKIP_TAG = "-"


@dataclass(frozen=True, slots=True)
class FieldTag:
    """Parsed field tag.

    Attributes:
        name: Dictionary key from the tag (empty means use the field name)
        options: Options following the key (ignored when decoding)
    """

    name: str
    options: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """A record field resolved for decoding.

    Attributes:
        name: Attribute name on the record
        key: Dictionary key to look up, or None if the field is skipped
        shape: Shape the value is decoded into
        has_default: Whether the record supplies its own default
    """

    name: str
    key: str | None
    shape: Shape
    has_default: bool = False


def parse_tag(tag: str | None) -> FieldTag:
    """Split a tag string into key and options."""
    if not tag:
        return FieldTag("")
    name, _, rest = tag.partition(",")
    options = frozenset(option.strip() for option in rest.split(",") if option.strip())
    return FieldTag(name, options)


def resolve_key(field_name: str, tag: str | None) -> str | None:
    """Return the dictionary key for a field, or None if it is skipped."""
    if tag == SKIP_TAG:
        return None
    parsed = parse_tag(tag)
    return parsed.name or field_name
