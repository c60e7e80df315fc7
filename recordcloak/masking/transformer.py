"""Per-line field transformation.

A line's prefix selects its field rules. Each rule's region is hashed and
written back in place, padded or cut to the region's width, so the line
never changes length. Rules run in table order and later rules see the
writes of earlier ones.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from ..core.config import GlobalConfig, LineErrorPolicy
from ..core.exceptions import FieldRangeError
from ..core.hashing import compute_masked_field
from ..core.rules import FieldRule, RuleTable

logger = logging.getLogger(__name__)


class LineStatus(Enum):
    """Outcome of transforming one line."""

    MASKED = "masked"
    UNMATCHED = "unmatched"  # prefix has no rules
    SHORT = "short"  # line shorter than the prefix width
    FAILED = "failed"  # per-line error, line passed through


@dataclass(frozen=True)
class LineResult:
    """Transformed text plus what happened to it."""

    text: str
    status: LineStatus
    skipped_fields: int = 0
    errors: tuple[FieldRangeError, ...] = ()


def pad_to_width(value: str, width: int) -> str:
    """Right-pad with spaces, or cut, so the result is exactly ``width`` long."""
    return value[:width].ljust(width)


def _range_error(rule: FieldRule, line_length: int, prefix: str) -> FieldRangeError:
    return FieldRangeError(
        f"Field [{rule.start}:{rule.end}) exceeds line length {line_length}",
        start=rule.start,
        length=rule.length,
        line_length=line_length,
        prefix=prefix,
    )


def transform_line(line: str, table: RuleTable, config: GlobalConfig) -> LineResult:
    """
    Mask one line and report the outcome.

    Args:
        line: Line content without its terminator
        table: Rule table shared by the run
        config: Run configuration shared by the run

    Returns:
        LineResult whose text has the same length as ``line``

    Raises:
        FieldRangeError: If a rule reaches past the end of the line and the
            run policy is not ``skip_field``
    """
    width = config.prefix_width
    if len(line) < width:
        return LineResult(text=line, status=LineStatus.SHORT)

    prefix = line[:width]
    rules = table.lookup(prefix)
    if rules is None:
        return LineResult(text=line, status=LineStatus.UNMATCHED)

    buffer = list(line)
    skipped: list[FieldRangeError] = []

    for rule in rules:
        if rule.end > len(buffer):
            error = _range_error(rule, len(buffer), prefix)
            if config.on_range_error is LineErrorPolicy.SKIP_FIELD:
                skipped.append(error)
                continue
            raise error

        raw = "".join(buffer[rule.start:rule.end])
        masked = compute_masked_field(
            raw,
            config.salt,
            config.algorithm,
            rule.filter,
            rule.truncate,
            config.encoding,
        )
        buffer[rule.start:rule.end] = pad_to_width(masked, rule.length)

    return LineResult(
        text="".join(buffer),
        status=LineStatus.MASKED,
        skipped_fields=len(skipped),
        errors=tuple(skipped),
    )


def transform(line: str, table: RuleTable, config: GlobalConfig) -> str:
    """Mask one line and return only the transformed text."""
    return transform_line(line, table, config).text


class LineTransformer:
    """Binds a rule table and configuration for repeated line transforms.

    Instances hold only read-only shared state, so one transformer can be
    used from any number of worker threads.
    """

    def __init__(self, table: RuleTable, config: GlobalConfig) -> None:
        self.table = table
        self.config = config

        widths = table.prefix_widths()
        unreachable = sorted(w for w in widths if w != config.prefix_width)
        if unreachable:
            logger.warning(
                f"Rule prefixes of length {unreachable} can never match "
                f"prefix width {config.prefix_width}"
            )

    def transform(self, line: str) -> str:
        return transform(line, self.table, self.config)

    def transform_line(self, line: str) -> LineResult:
        return transform_line(line, self.table, self.config)

    __call__ = transform
