"""Type-directed decoding of value trees into Python targets.

The decoder walks a value tree together with a shape. Each value kind is
accepted only by its matching shape; there is no implicit conversion
between kinds (an integer never decodes into a float target, a string
never into an integer). Narrowing to a concrete width happens here and
is range-checked.
"""

from __future__ import annotations

import base64
import struct
from collections.abc import Sequence

from plistcodec.config import MAX_DEPTH_LIMIT
from plistcodec.exceptions import (
    NestingTooDeepError,
    PathElement,
    RangeError,
    TypeMismatchError,
)
from plistcodec.models.values import (
    PlistArray,
    PlistBoolean,
    PlistData,
    PlistDate,
    PlistDict,
    PlistInteger,
    PlistReal,
    PlistString,
    PlistValue,
    to_python,
)

from .shapes import (
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
    shape_of,
)


def decode(value: PlistValue, target: object) -> object:
    """Decode a value tree into a target type annotation or shape.

    Args:
        value: Root of the value tree
        target: A Shape, or an annotation understood by shape_of()

    Returns:
        The decoded Python value

    Raises:
        TypeMismatchError: If a value's kind doesn't match its shape
        RangeError: If a number doesn't fit the target width
        ShapeError: If the target can't be turned into a shape
    """
    return decode_value(value, shape_of(target))


def decode_value(
    value: PlistValue, shape: Shape, path: Sequence[PathElement] = ()
) -> object:
    """Decode value into shape; path locates value for error messages.

    Raises:
        NestingTooDeepError: If value lies deeper than MAX_DEPTH_LIMIT
    """
    if len(path) > MAX_DEPTH_LIMIT:
        raise NestingTooDeepError(MAX_DEPTH_LIMIT)
    while isinstance(shape, OptionalShape):
        shape = shape.inner

    match shape:
        case DynamicShape():
            return to_python(value)
        case BoolShape():
            if isinstance(value, PlistBoolean):
                return value.value
        case IntShape():
            if isinstance(value, PlistInteger):
                return _narrow_int(value.value, shape, path)
        case FloatShape(bits=bits):
            if isinstance(value, PlistReal):
                return _narrow_float(value.value, bits, path)
        case StringShape():
            if isinstance(value, PlistString):
                return value.value
        case BytesShape():
            if isinstance(value, PlistData):
                if value.from_xml:
                    # XML data decodes to its base64 text, not the raw bytes
                    return base64.b64encode(value.value)
                return value.value
        case TimestampShape():
            if isinstance(value, PlistDate):
                return value.value
        case SequenceShape(element=element, factory=factory):
            if isinstance(value, PlistArray):
                items = []
                for index, item in enumerate(value.items):
                    items.append(decode_value(item, element, (*path, index)))
                return factory(items)
        case MapShape(value=value_shape):
            if isinstance(value, PlistDict):
                result = {}
                for key, item in value.entries.items():
                    result[key] = decode_value(item, value_shape, (*path, key))
                return result
        case RecordShape():
            if isinstance(value, PlistDict):
                return _decode_record(value, shape, path)

    raise TypeMismatchError(shape.describe(), value.kind.value, path)


def _narrow_int(number: int, shape: IntShape, path: Sequence[PathElement]) -> int:
    if not shape.min_value <= number <= shape.max_value:
        raise RangeError(number, shape.describe(), path)
    return number


def _narrow_float(number: float, bits: int, path: Sequence[PathElement]) -> float:
    if bits == 64:
        return number
    try:
        return struct.unpack(">f", struct.pack(">f", number))[0]
    except OverflowError as e:
        raise RangeError(number, f"float{bits}", path) from e


def _decode_record(
    value: PlistDict, shape: RecordShape, path: Sequence[PathElement]
) -> object:
    """Fill a record from a dictionary.

    Missing keys keep the record's default (or the field shape's zero
    value); keys without a matching field are ignored.
    """
    kwargs = {}
    for spec in shape.fields:
        item = value.get(spec.key) if spec.key is not None else None
        if item is not None:
            kwargs[spec.name] = decode_value(item, spec.shape, (*path, spec.key))
        elif not spec.has_default:
            kwargs[spec.name] = spec.shape.zero()
    return shape.factory(**kwargs)
