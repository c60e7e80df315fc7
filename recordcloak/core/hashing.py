"""Salted hashing of raw field values."""

import hashlib
from enum import Enum
from typing import Any, Union

from .filters import FilterKind, apply_filter


class HashAlgorithm(Enum):
    """Digest algorithms a run may select."""

    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"

    @classmethod
    def parse(cls, value: Union[str, "HashAlgorithm"]) -> "HashAlgorithm":
        """Resolve an algorithm name such as ``"SHA-256"`` or ``"md5"``."""
        if isinstance(value, HashAlgorithm):
            return value
        normalized = str(value).strip().lower().replace("-", "").replace("_", "")
        try:
            return cls(normalized)
        except ValueError as e:
            valid = [a.value for a in cls]
            raise ValueError(
                f"Hash algorithm must be one of: {valid}, got '{value}'"
            ) from e

    def new(self) -> Any:
        """Return a fresh hashlib object for this algorithm."""
        if self is HashAlgorithm.MD5:
            return hashlib.md5()
        if self is HashAlgorithm.SHA1:
            return hashlib.sha1()
        if self is HashAlgorithm.SHA256:
            return hashlib.sha256()
        return hashlib.sha512()


def _encode(value: str, encoding: str) -> bytes:
    try:
        return value.encode(encoding)
    except UnicodeEncodeError:
        return value.encode("utf-8")


def digest_hex(value: str, algorithm: HashAlgorithm, encoding: str = "utf-8") -> str:
    """Uppercase hex digest of ``value`` encoded with ``encoding``."""
    hash_obj = algorithm.new()
    hash_obj.update(_encode(value, encoding))
    return hash_obj.hexdigest().upper()


def compute_masked_field(
    raw: str,
    salt: str,
    algorithm: HashAlgorithm,
    filter_kind: FilterKind,
    truncate: int,
    encoding: str = "utf-8",
) -> str:
    """Hash a raw field value into its masked replacement.

    The salt is appended to the raw value (``raw + salt``), the result is
    hashed, rendered as uppercase hex, reduced to ``filter_kind`` and cut
    to its first ``truncate`` characters.

    Args:
        raw: Field content extracted from the line
        salt: Run-wide salt, may be empty
        algorithm: Digest algorithm for the run
        filter_kind: Character class kept after hex rendering
        truncate: Maximum number of characters returned
        encoding: Text encoding used to turn ``raw + salt`` into bytes

    Returns:
        A string of at most ``truncate`` characters

    Raises:
        ValueError: If ``truncate`` is negative
    """
    if truncate < 0:
        raise ValueError(f"truncate must be non-negative, got {truncate}")

    hex_digest = digest_hex(raw + salt, algorithm, encoding)
    filtered = apply_filter(hex_digest, filter_kind)
    return filtered[: min(truncate, len(filtered))]
