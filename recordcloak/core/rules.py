"""Field rules and the prefix-keyed rule table."""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Optional, Union

from .exceptions import RuleValidationError
from .filters import FilterKind


@dataclass(frozen=True)
class FieldRule:
    """
    One masking instruction for a region of a line.

    Attributes:
        start: Zero-based offset of the first character of the field
        length: Number of characters in the field
        truncate: Maximum number of hash characters written into the field
        filter: Character class the hash is reduced to before truncation

    Examples:
        >>> # Mask a 7-character name with at most 5 hash letters
        >>> rule = FieldRule(start=2, length=7, truncate=5, filter=FilterKind.ALPHA)
        >>> rule.end
        9
    """

    start: int
    length: int
    truncate: int
    filter: FilterKind = FilterKind.NONE

    def __post_init__(self) -> None:
        """Validate rule values after initialization."""
        for name in ("start", "length", "truncate"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise RuleValidationError(
                    f"{name} must be an integer",
                    field_name=name,
                    expected_type="int",
                    actual_value=value,
                )

        if self.start < 0:
            raise RuleValidationError(
                "start must be a non-negative integer",
                field_name="start",
                actual_value=self.start,
            )
        if self.length < 1:
            raise RuleValidationError(
                "length must be a positive integer",
                field_name="length",
                actual_value=self.length,
            )
        if self.truncate < 0:
            raise RuleValidationError(
                "truncate must be a non-negative integer",
                field_name="truncate",
                actual_value=self.truncate,
            )

        if not isinstance(self.filter, FilterKind):
            try:
                object.__setattr__(self, "filter", FilterKind.parse(self.filter))
            except ValueError as e:
                raise RuleValidationError(
                    str(e), field_name="filter", actual_value=self.filter
                ) from e

    @property
    def end(self) -> int:
        """Exclusive end offset of the field."""
        return self.start + self.length

    def to_dict(self) -> dict[str, Any]:
        """Convert the rule to a plain dictionary."""
        return {
            "start": self.start,
            "length": self.length,
            "truncate": self.truncate,
            "filter": self.filter.value,
        }


class RuleTable:
    """
    Immutable mapping from line prefix to an ordered sequence of field rules.

    The table is built once before processing and shared read-only by all
    workers. Lookups are exact string matches; a missing prefix is not an
    error and callers pass such lines through unchanged.
    """

    def __init__(
        self,
        rules: Optional[Mapping[str, Sequence[FieldRule]]] = None,
        name: Optional[str] = None,
    ) -> None:
        frozen: dict[str, tuple[FieldRule, ...]] = {}
        for prefix, field_rules in (rules or {}).items():
            if not isinstance(prefix, str) or not prefix:
                raise RuleValidationError(
                    "Rule prefixes must be non-empty strings",
                    field_name="prefix",
                    actual_value=prefix,
                )
            for rule in field_rules:
                if not isinstance(rule, FieldRule):
                    raise RuleValidationError(
                        f"Rules for prefix '{prefix}' must be FieldRule instances",
                        field_name="rules",
                        expected_type="FieldRule",
                        actual_value=type(rule).__name__,
                    )
            frozen[prefix] = tuple(field_rules)

        self._rules = MappingProxyType(frozen)
        self.name = name

    def lookup(self, prefix: str) -> Optional[tuple[FieldRule, ...]]:
        """Return the rules registered for ``prefix``, or None."""
        return self._rules.get(prefix)

    @property
    def prefixes(self) -> tuple[str, ...]:
        """Registered prefixes in definition order."""
        return tuple(self._rules)

    def prefix_widths(self) -> set[int]:
        """Distinct prefix lengths present in the table."""
        return {len(prefix) for prefix in self._rules}

    def field_count(self) -> int:
        """Total number of field rules across all prefixes."""
        return sum(len(rules) for rules in self._rules.values())

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Convert the table to plain data, suitable for YAML/JSON dumps."""
        return {
            prefix: [rule.to_dict() for rule in rules]
            for prefix, rules in self._rules.items()
        }

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"RuleTable(prefixes={len(self)}, fields={self.field_count()})"


def build_rule_table(
    rules: Mapping[str, Sequence[Union[FieldRule, Mapping[str, Any]]]],
    name: Optional[str] = None,
) -> RuleTable:
    """Build a RuleTable from FieldRule instances or plain keyword mappings."""
    converted: dict[str, list[FieldRule]] = {}
    for prefix, entries in rules.items():
        converted[prefix] = [
            entry if isinstance(entry, FieldRule) else FieldRule(**entry)
            for entry in entries
        ]
    return RuleTable(converted, name=name)
