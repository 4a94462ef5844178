"""Tests for the plist value model."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from plistcodec import (
    UID,
    NestingTooDeepError,
    PlistArray,
    PlistBoolean,
    PlistData,
    PlistDate,
    PlistDict,
    PlistInteger,
    PlistReal,
    PlistString,
    PlistUid,
    ValueKind,
    from_python,
    to_python,
)
from plistcodec.config import MAX_DEPTH_LIMIT


class TestValueKinds:
    """Tests for variant kinds and structural equality."""

    def test_each_variant_has_its_kind(self) -> None:
        """Test that kind identifies the variant."""
        assert PlistString("a").kind == ValueKind.STRING
        assert PlistInteger(1).kind == ValueKind.INTEGER
        assert PlistReal(1.0).kind == ValueKind.REAL
        assert PlistBoolean(True).kind == ValueKind.BOOLEAN
        assert PlistDate(datetime(2001, 1, 1, tzinfo=UTC)).kind == ValueKind.DATE
        assert PlistData(b"").kind == ValueKind.DATA
        assert PlistUid(3).kind == ValueKind.UID
        assert PlistArray().kind == ValueKind.ARRAY
        assert PlistDict().kind == ValueKind.DICTIONARY

    def test_structural_equality(self) -> None:
        """Test that equal trees compare equal."""
        a = PlistDict({"k": PlistArray((PlistString("x"), PlistInteger(2)))})
        b = PlistDict({"k": PlistArray((PlistString("x"), PlistInteger(2)))})
        assert a == b

    def test_kinds_never_compare_equal(self) -> None:
        """Test that different variants with the same payload differ."""
        assert PlistInteger(1) != PlistBoolean(True)
        assert PlistUid(1) != PlistInteger(1)

    def test_data_origin_ignored_by_equality(self) -> None:
        """Test that the XML origin flag doesn't affect equality."""
        assert PlistData(b"abc", from_xml=True) == PlistData(b"abc")

    def test_integer_width_ignored_by_equality(self) -> None:
        """Test that the wide flag doesn't affect equality."""
        assert PlistInteger(5, wide=True) == PlistInteger(5)

    def test_values_are_immutable(self) -> None:
        """Test that values can't be reassigned."""
        value = PlistString("a")
        with pytest.raises(AttributeError):
            value.value = "b"  # type: ignore[misc]


class TestPlistDict:
    """Tests for dictionary access."""

    def test_mapping_access(self) -> None:
        """Test read-only mapping helpers."""
        d = PlistDict({"a": PlistInteger(1), "b": PlistInteger(2)})
        assert len(d) == 2
        assert "a" in d
        assert d["b"] == PlistInteger(2)
        assert d.get("missing") is None
        assert list(d) == ["a", "b"]
        assert list(d.keys()) == ["a", "b"]

    def test_from_pairs_last_write_wins(self) -> None:
        """Test that duplicate keys keep the last value."""
        d = PlistDict.from_pairs(
            [("a", PlistInteger(1)), ("b", PlistInteger(2)), ("a", PlistInteger(3))]
        )
        assert d["a"] == PlistInteger(3)
        assert len(d) == 2

    def test_preserves_insertion_order(self) -> None:
        """Test that keys keep insertion order."""
        d = PlistDict.from_pairs([(k, PlistString(k)) for k in "zyx"])
        assert list(d.keys()) == ["z", "y", "x"]


class TestToPython:
    """Tests for the plain-Python view of a tree."""

    def test_nested_tree(self) -> None:
        """Test conversion of a nested tree."""
        when = datetime(2015, 9, 5, 21, 55, 30, tzinfo=UTC)
        tree = PlistDict(
            {
                "name": PlistString("foo"),
                "items": PlistArray((PlistInteger(1), PlistReal(2.5), PlistBoolean(False))),
                "when": PlistDate(when),
                "blob": PlistData(b"\x00\x01"),
            }
        )
        assert to_python(tree) == {
            "name": "foo",
            "items": [1, 2.5, False],
            "when": when,
            "blob": b"\x00\x01",
        }

    def test_uid_becomes_uid_int(self) -> None:
        """Test that UIDs keep their identity as UID."""
        result = to_python(PlistUid(7))
        assert isinstance(result, UID)
        assert result == 7
        assert repr(result) == "UID(7)"

    def test_nesting_to_limit(self) -> None:
        """Test trees as deep as MAX_DEPTH_LIMIT convert, deeper ones don't."""
        tree = PlistArray()
        for _ in range(MAX_DEPTH_LIMIT):
            tree = PlistArray((tree,))
        assert isinstance(to_python(tree), list)
        with pytest.raises(NestingTooDeepError):
            to_python(PlistDict({"k": tree}))


class TestFromPython:
    """Tests for building trees from plain Python values."""

    def test_scalars(self) -> None:
        """Test scalar conversion."""
        assert from_python("s") == PlistString("s")
        assert from_python(True) == PlistBoolean(True)
        assert from_python(3) == PlistInteger(3)
        assert from_python(1.5) == PlistReal(1.5)
        assert from_python(b"x") == PlistData(b"x")
        assert from_python(bytearray(b"y")) == PlistData(b"y")
        assert from_python(UID(4)) == PlistUid(4)

    def test_containers(self) -> None:
        """Test list, tuple and dict conversion."""
        tree = from_python({"a": [1, ("b",)]})
        assert tree == PlistDict(
            {"a": PlistArray((PlistInteger(1), PlistArray((PlistString("b"),))))}
        )

    def test_large_unsigned_is_wide(self) -> None:
        """Test that values above int64 are marked wide."""
        value = from_python(2**64)
        assert isinstance(value, PlistInteger)
        assert value.wide

    def test_integer_out_of_range(self) -> None:
        """Test that integers beyond 128 bits are rejected."""
        with pytest.raises(OverflowError):
            from_python(2**130)
        with pytest.raises(OverflowError):
            from_python(-(2**63) - 1)

    def test_naive_datetime_is_utc(self) -> None:
        """Test that naive datetimes are taken as UTC."""
        value = from_python(datetime(2020, 1, 1, 12, 0, 0))
        assert value == PlistDate(datetime(2020, 1, 1, 12, 0, 0, tzinfo=UTC))

    def test_aware_datetime_normalized_to_utc(self) -> None:
        """Test that other timezones are converted to UTC."""
        plus_two = timezone(timedelta(hours=2))
        value = from_python(datetime(2020, 1, 1, 14, 0, 0, tzinfo=plus_two))
        assert isinstance(value, PlistDate)
        assert value.value == datetime(2020, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert value.value.tzinfo == UTC

    def test_unsupported_type(self) -> None:
        """Test that types without a plist form are rejected."""
        with pytest.raises(TypeError, match="set"):
            from_python({1, 2})
        with pytest.raises(TypeError):
            from_python(None)

    def test_non_string_key(self) -> None:
        """Test that dictionary keys must be strings."""
        with pytest.raises(TypeError, match="keys must be strings"):
            from_python({1: "a"})

    def test_plist_values_pass_through(self) -> None:
        """Test that existing values are returned unchanged."""
        value = PlistString("x")
        assert from_python(value) is value

    def test_uid_range(self) -> None:
        """Test that UIDs outside [0, 2**128) are rejected."""
        with pytest.raises(ValueError, match="UID out of range"):
            PlistUid(-1)
        with pytest.raises(ValueError, match="UID out of range"):
            PlistUid(1 << 128)
        with pytest.raises(ValueError):
            from_python(UID(1 << 130))
        assert PlistUid((1 << 128) - 1).value == (1 << 128) - 1

    def test_nesting_beyond_limit(self) -> None:
        """Test that deeply nested lists are rejected."""
        obj: list = []
        for _ in range(MAX_DEPTH_LIMIT + 1):
            obj = [obj]
        with pytest.raises(NestingTooDeepError):
            from_python(obj)
        assert isinstance(from_python(obj[0]), PlistArray)
