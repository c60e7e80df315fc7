"""Run-wide configuration.

``GlobalConfig`` is built once before a run, validated on construction and
shared read-only by every worker. Values can come from explicit arguments
(the CLI) or from ``RECORDCLOAK_*`` environment variables.
"""

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union

from .exceptions import ConfigurationError
from .hashing import HashAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_PREFIX_WIDTH = 2
DEFAULT_MAX_WORKERS = 8
DEFAULT_CHUNK_SIZE = 500

# Unicode and legacy single-byte encodings, keyed by accepted spelling
SUPPORTED_ENCODINGS = {
    "utf-8": "utf-8",
    "utf8": "utf-8",
    "latin-1": "latin-1",
    "latin1": "latin-1",
    "iso-8859-1": "latin-1",
}


class InputMode(Enum):
    """How input records are framed."""

    FIXED = "fixed"
    DELIMITED = "delimited"


class LineErrorPolicy(Enum):
    """What happens when a field rule reaches past the end of a line."""

    PASS_THROUGH = "pass_through"  # emit the line unchanged, count it
    SKIP_FIELD = "skip_field"  # leave that field untouched, mask the rest
    ABORT = "abort"  # stop the run, write nothing

    @classmethod
    def parse(cls, value: Union[str, "LineErrorPolicy"]) -> "LineErrorPolicy":
        if isinstance(value, LineErrorPolicy):
            return value
        normalized = str(value).strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError as e:
            valid = [p.value for p in cls]
            raise ValueError(
                f"Invalid line error policy '{value}'. Valid: {valid}"
            ) from e


def normalize_encoding(encoding: str) -> str:
    """Map an accepted encoding spelling to its canonical codec name."""
    key = str(encoding).strip().lower().replace("_", "-")
    if key not in SUPPORTED_ENCODINGS:
        raise ConfigurationError(
            f"Unsupported encoding '{encoding}'. Use utf-8 or latin-1",
            setting="encoding",
            actual_value=encoding,
        )
    return SUPPORTED_ENCODINGS[key]


@dataclass(frozen=True)
class GlobalConfig:
    """Immutable per-run settings.

    Attributes:
        salt: String appended to every raw field value before hashing
        algorithm: Digest algorithm applied to every field
        encoding: Text encoding for reading, hashing and writing
        dry_run: Transform everything but write nothing
        input_mode: Fixed-width lines or delimited (CSV) records
        prefix_width: Number of leading characters used for rule lookup
        max_workers: Upper bound on concurrently running transformations
        chunk_size: Lines handed to a worker at a time
        on_range_error: Policy for fields reaching past the end of a line
        delimiter: Column delimiter in delimited mode
    """

    salt: str = ""
    algorithm: HashAlgorithm = HashAlgorithm.MD5
    encoding: str = "utf-8"
    dry_run: bool = False
    input_mode: InputMode = InputMode.FIXED
    prefix_width: int = DEFAULT_PREFIX_WIDTH
    max_workers: int = DEFAULT_MAX_WORKERS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    on_range_error: LineErrorPolicy = LineErrorPolicy.PASS_THROUGH
    delimiter: str = ","

    def __post_init__(self) -> None:
        """Validate and normalize settings after initialization."""
        if not isinstance(self.salt, str):
            raise ConfigurationError(
                "salt must be a string", setting="salt", expected_type="str"
            )

        try:
            object.__setattr__(self, "algorithm", HashAlgorithm.parse(self.algorithm))
            object.__setattr__(
                self, "on_range_error", LineErrorPolicy.parse(self.on_range_error)
            )
            if not isinstance(self.input_mode, InputMode):
                object.__setattr__(
                    self, "input_mode", InputMode(str(self.input_mode).strip().lower())
                )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        object.__setattr__(self, "encoding", normalize_encoding(self.encoding))

        for name, minimum in (("prefix_width", 1), ("max_workers", 1), ("chunk_size", 1)):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                raise ConfigurationError(
                    f"{name} must be an integer >= {minimum}, got {value!r}",
                    setting=name,
                    actual_value=value,
                )

        if not isinstance(self.delimiter, str) or len(self.delimiter) != 1:
            raise ConfigurationError(
                "delimiter must be a single character",
                setting="delimiter",
                actual_value=self.delimiter,
            )

    @property
    def is_delimited(self) -> bool:
        return self.input_mode is InputMode.DELIMITED

    def with_overrides(self, **overrides: Any) -> "GlobalConfig":
        """Return a copy with ``overrides`` applied (None values are ignored)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_environment(cls, **overrides: Any) -> "GlobalConfig":
        """Build a configuration from environment variables.

        Environment parsing is tolerant: invalid values log a warning and
        fall back to defaults. Explicit ``overrides`` (None means unset)
        take precedence and are validated strictly.

        Environment Variables:
            RECORDCLOAK_SALT: Salt string
            RECORDCLOAK_ALGORITHM: md5|sha1|sha256|sha512
            RECORDCLOAK_ENCODING: utf-8|latin-1
            RECORDCLOAK_PREFIX_WIDTH: Positive integer
            RECORDCLOAK_MAX_WORKERS: Positive integer
            RECORDCLOAK_CHUNK_SIZE: Positive integer
            RECORDCLOAK_ON_RANGE_ERROR: pass_through|skip_field|abort
            RECORDCLOAK_DRY_RUN: true|false
            RECORDCLOAK_MODE: fixed|delimited
        """
        settings: dict[str, Any] = {
            "salt": os.getenv("RECORDCLOAK_SALT", ""),
            "dry_run": cls._get_env_bool("RECORDCLOAK_DRY_RUN", False),
            "prefix_width": cls._get_env_int("RECORDCLOAK_PREFIX_WIDTH", DEFAULT_PREFIX_WIDTH),
            "max_workers": cls._get_env_int("RECORDCLOAK_MAX_WORKERS", DEFAULT_MAX_WORKERS),
            "chunk_size": cls._get_env_int("RECORDCLOAK_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        }

        algorithm = os.getenv("RECORDCLOAK_ALGORITHM")
        if algorithm:
            try:
                settings["algorithm"] = HashAlgorithm.parse(algorithm)
            except ValueError:
                logger.warning(f"Invalid RECORDCLOAK_ALGORITHM={algorithm}, using md5")

        encoding = os.getenv("RECORDCLOAK_ENCODING")
        if encoding:
            try:
                settings["encoding"] = normalize_encoding(encoding)
            except ConfigurationError:
                logger.warning(f"Invalid RECORDCLOAK_ENCODING={encoding}, using utf-8")

        policy = os.getenv("RECORDCLOAK_ON_RANGE_ERROR")
        if policy:
            try:
                settings["on_range_error"] = LineErrorPolicy.parse(policy)
            except ValueError:
                logger.warning(
                    f"Invalid RECORDCLOAK_ON_RANGE_ERROR={policy}, using pass_through"
                )

        mode = os.getenv("RECORDCLOAK_MODE")
        if mode:
            try:
                settings["input_mode"] = InputMode(mode.strip().lower())
            except ValueError:
                logger.warning(f"Invalid RECORDCLOAK_MODE={mode}, using fixed")

        settings.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**settings)
        logger.debug(f"Resolved configuration: {config.to_dict()}")
        return config

    @staticmethod
    def _get_env_bool(key: str, default: bool) -> bool:
        """Only 'true'/'false' (case insensitive) are recognized."""
        value = os.getenv(key)
        if value is None:
            return default

        cleaned_value = value.strip().lower()
        if cleaned_value == "true":
            return True
        elif cleaned_value == "false":
            return False
        else:
            return default

    @staticmethod
    def _get_env_int(key: str, default: int) -> int:
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value.strip())
        except ValueError:
            logger.warning(
                f"Environment variable {key}={value} is not a valid integer, "
                f"using default {default}"
            )
            return default
        if parsed <= 0:
            logger.warning(
                f"Environment variable {key}={value} must be positive, using default {default}"
            )
            return default
        return parsed

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary; the salt value is withheld."""
        return {
            "salted": bool(self.salt),
            "algorithm": self.algorithm.value,
            "encoding": self.encoding,
            "dry_run": self.dry_run,
            "input_mode": self.input_mode.value,
            "prefix_width": self.prefix_width,
            "max_workers": self.max_workers,
            "chunk_size": self.chunk_size,
            "on_range_error": self.on_range_error.value,
            "delimiter": self.delimiter,
        }

    def __repr__(self) -> str:
        return (
            f"GlobalConfig(algorithm={self.algorithm.value!r}, "
            f"encoding={self.encoding!r}, mode={self.input_mode.value!r}, "
            f"prefix_width={self.prefix_width}, max_workers={self.max_workers}, "
            f"dry_run={self.dry_run})"
        )
