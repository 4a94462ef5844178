"""Resource limits applied while parsing plist input.

Parsing is a pure in-memory transform with no timeout primitive, so the
only way to bound the work done on adversarial input is to cap it up
front. ParseLimits collects those caps.
"""

from __future__ import annotations

from dataclasses import dataclass

# Deepest container nesting any limit may allow. Parsing, conversion and
# decoding recurse at most two interpreter frames per level, which keeps a
# tree this deep well inside the default recursion limit of 1000.
MAX_DEPTH_LIMIT = 256

# Default maximum container nesting for both formats
DEFAULT_MAX_DEPTH = MAX_DEPTH_LIMIT

# Ceilings used by ParseLimits.strict()
STRICT_MAX_INPUT_SIZE = 16 * 1024 * 1024  # 16 MiB
STRICT_MAX_DEPTH = 128
STRICT_MAX_OBJECT_COUNT = 1_000_000


@dataclass(frozen=True, slots=True)
class ParseLimits:
    """Limits enforced by the binary reader and the XML adapter.

    Attributes:
        max_input_size: Largest accepted input in bytes (None = unlimited)
        max_depth: Maximum nesting of arrays and dictionaries, at most
            MAX_DEPTH_LIMIT
        max_object_count: Largest object count accepted from a binary
            trailer (None = unlimited)
    """

    max_input_size: int | None = None
    max_depth: int = DEFAULT_MAX_DEPTH
    max_object_count: int | None = None

    def __post_init__(self) -> None:
        """Validate limit values."""
        if self.max_input_size is not None and self.max_input_size <= 0:
            raise ValueError("max_input_size must be positive")
        if not 1 <= self.max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(f"max_depth must be between 1 and {MAX_DEPTH_LIMIT}")
        if self.max_object_count is not None and self.max_object_count < 1:
            raise ValueError("max_object_count must be at least 1")

    @classmethod
    def default(cls) -> ParseLimits:
        """Limits used when the caller doesn't pass any.

        Only nesting depth is bounded.
        """
        return cls()

    @classmethod
    def strict(cls) -> ParseLimits:
        """Conservative limits for untrusted input."""
        return cls(
            max_input_size=STRICT_MAX_INPUT_SIZE,
            max_depth=STRICT_MAX_DEPTH,
            max_object_count=STRICT_MAX_OBJECT_COUNT,
        )
