"""Shared fixtures for RecordCloak tests."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from recordcloak.core import FieldRule, FilterKind, GlobalConfig, RuleTable

RULES_YAML = """\
name: accounts
rules:
  "01":
    - {start: 2, length: 7, truncate: 5, filter: alpha}
  "02":
    - {start: 2, length: 5, truncate: 5, filter: numeric}
"""

ENV_VARS = (
    "RECORDCLOAK_SALT",
    "RECORDCLOAK_ALGORITHM",
    "RECORDCLOAK_ENCODING",
    "RECORDCLOAK_PREFIX_WIDTH",
    "RECORDCLOAK_MAX_WORKERS",
    "RECORDCLOAK_CHUNK_SIZE",
    "RECORDCLOAK_ON_RANGE_ERROR",
    "RECORDCLOAK_DRY_RUN",
    "RECORDCLOAK_MODE",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep RECORDCLOAK_* settings from the outer shell out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """Undo handler changes made by configure_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def name_rule() -> FieldRule:
    """Seven-character name field masked to at most five letters."""
    return FieldRule(start=2, length=7, truncate=5, filter=FilterKind.ALPHA)


@pytest.fixture
def rule_table(name_rule: FieldRule) -> RuleTable:
    """Table with a single prefix, "01", masking one name field."""
    return RuleTable({"01": [name_rule]})


@pytest.fixture
def salted_config() -> GlobalConfig:
    """MD5 configuration with salt "x"."""
    return GlobalConfig(salt="x")


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    """Rules file with prefixes "01" and "02"."""
    path = tmp_path / "rules.yaml"
    path.write_text(RULES_YAML, encoding="utf-8")
    return path


@pytest.fixture
def input_file(tmp_path: Path) -> Path:
    """Small fixed-width input covering matched and unmatched prefixes."""
    path = tmp_path / "accounts.dat"
    path.write_text(
        "01JohnDoe|tail\n"
        "99unchanged line\n"
        "0212345-rest\n"
        "0\n",
        encoding="utf-8",
    )
    return path
