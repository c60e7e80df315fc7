"""Character-class filters applied to hashed values."""

from enum import Enum
from typing import Optional, Union

_LETTERS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz")
_DIGITS = frozenset("0123456789")


class FilterKind(Enum):
    """Character classes a masked value may be reduced to."""

    ALPHA = "alpha"
    NUMERIC = "numeric"
    ALPHANUMERIC = "alphanumeric"
    NONE = "none"

    @classmethod
    def parse(cls, value: Optional[Union[str, "FilterKind"]]) -> "FilterKind":
        """Resolve a filter name (case-insensitive); empty means NONE."""
        if isinstance(value, FilterKind):
            return value
        if value is None or not str(value).strip():
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            valid = [k.value for k in cls]
            raise ValueError(f"Invalid filter '{value}'. Valid filters: {valid}") from e


_ALLOWED = {
    FilterKind.ALPHA: _LETTERS,
    FilterKind.NUMERIC: _DIGITS,
    FilterKind.ALPHANUMERIC: _LETTERS | _DIGITS,
}


def apply_filter(value: str, kind: FilterKind) -> str:
    """Keep only the characters of ``value`` that belong to ``kind``.

    Only ASCII letters and digits are considered; relative order is kept.
    ``FilterKind.NONE`` returns the input unchanged.
    """
    allowed = _ALLOWED.get(kind)
    if allowed is None:
        return value
    return "".join(ch for ch in value if ch in allowed)
