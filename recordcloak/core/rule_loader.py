"""Rules file loading with schema validation."""

import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
)

from .exceptions import RulesError, RuleValidationError, create_rules_error
from .filters import FilterKind
from .rules import FieldRule, RuleTable

logger = logging.getLogger(__name__)


class FieldRuleConfig(BaseModel):
    """Pydantic model for a single field descriptor."""

    model_config = ConfigDict(extra="forbid")

    start: StrictInt = Field(
        ..., ge=0, validation_alias=AliasChoices("start", "Start"),
        description="Zero-based field offset",
    )
    length: StrictInt = Field(
        ..., gt=0, validation_alias=AliasChoices("length", "Length"),
        description="Field width in characters",
    )
    truncate: StrictInt = Field(
        ..., ge=0, validation_alias=AliasChoices("truncate", "Truncate"),
        description="Maximum hash characters written",
    )
    filter: Optional[str] = Field(
        None, validation_alias=AliasChoices("filter", "Filter"),
        description="alpha, numeric, alphanumeric or none",
    )

    @field_validator("filter")
    @classmethod
    def validate_filter(cls, v: Any) -> Any:
        """Validate filter name if provided."""
        if v is not None:
            FilterKind.parse(v)
        return v

    def to_field_rule(self) -> FieldRule:
        return FieldRule(
            start=self.start,
            length=self.length,
            truncate=self.truncate,
            filter=FilterKind.parse(self.filter),
        )


class RulesFileSchema(BaseModel):
    """Pydantic model for a rules document."""

    model_config = ConfigDict(extra="forbid")

    version: Optional[str] = Field("1.0", description="Rules schema version")
    name: Optional[str] = Field(None, description="Rule set name")
    description: Optional[str] = Field(None, description="Rule set description")
    rules: dict[str, list[FieldRuleConfig]] = Field(
        ..., description="Prefix to ordered field descriptors"
    )

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> Any:
        """Validate version format; unquoted YAML numbers such as 1.0 are accepted."""
        if v is None:
            return v
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str) or not re.match(r"^\d+\.\d+(\.\d+)?$", v):
            raise ValueError(f"Version must follow format 'x.y' or 'x.y.z', got '{v}'")
        return v

    @field_validator("rules")
    @classmethod
    def validate_prefixes(cls, v: Any) -> Any:
        """Reject empty prefixes."""
        for prefix in v:
            if not prefix:
                raise ValueError("Rule prefixes must be non-empty strings")
        return v


class RuleLoader:
    """
    Loads rule tables from YAML or JSON documents.

    Two layouts are accepted: a bare mapping of prefix to field descriptors,
    or a document with ``version``/``name``/``description`` metadata and the
    mapping under ``rules``. Malformed documents fail immediately with
    ``RulesError`` so that no line is processed against a broken table.
    """

    def __init__(self, base_path: Optional[Path] = None):
        """
        Initialize rule loader.

        Args:
            base_path: Base directory for resolving relative rule paths
        """
        self.base_path = base_path or Path.cwd()

    def load(self, rules_path: Union[str, Path]) -> RuleTable:
        """
        Load a rule table from file.

        Args:
            rules_path: Path to a YAML or JSON rules file

        Returns:
            Validated, immutable RuleTable

        Raises:
            RulesError: If the file is missing, unreadable or malformed
        """
        rules_path = Path(rules_path)
        if not rules_path.is_absolute():
            rules_path = self.base_path / rules_path

        if not rules_path.is_file():
            raise create_rules_error(
                f"Rules file not found: {rules_path}", rules_file=str(rules_path)
            )

        try:
            with open(rules_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise create_rules_error(
                f"Invalid YAML/JSON in {rules_path}: {e}",
                rules_file=str(rules_path),
                original_error=e,
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise create_rules_error(
                f"Cannot read rules file {rules_path}: {e}",
                rules_file=str(rules_path),
                original_error=e,
            ) from e

        table = self.load_data(data, source=str(rules_path))
        logger.info(
            f"Loaded {len(table)} prefixes ({table.field_count()} field rules) "
            f"from {rules_path}"
        )
        return table

    def load_text(self, text: str, source: Optional[str] = None) -> RuleTable:
        """Load a rule table from YAML or JSON text."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise create_rules_error(
                f"Invalid YAML/JSON rules: {e}", rules_file=source, original_error=e
            ) from e
        return self.load_data(data, source=source)

    def load_data(self, data: Any, source: Optional[str] = None) -> RuleTable:
        """
        Build a rule table from already-parsed data.

        Raises:
            RulesError: If the structure does not match the rules schema
        """
        if data is None:
            raise create_rules_error("Rules document is empty", rules_file=source)
        if not isinstance(data, dict):
            raise create_rules_error(
                f"Rules document must be a mapping, got {type(data).__name__}",
                rules_file=source,
            )

        document = data if self._is_wrapped(data) else {"rules": data}
        self._check_prefix_keys(document.get("rules"), source)

        try:
            schema = RulesFileSchema(**document)
        except ValidationError as e:
            raise create_rules_error(
                f"Rules validation failed: {e}", rules_file=source, original_error=e
            ) from e

        try:
            return RuleTable(
                {
                    prefix: [entry.to_field_rule() for entry in entries]
                    for prefix, entries in schema.rules.items()
                },
                name=schema.name,
            )
        except RuleValidationError as e:
            raise create_rules_error(
                f"Invalid field rule: {e.message}", rules_file=source, original_error=e
            ) from e

    @staticmethod
    def _is_wrapped(data: dict[Any, Any]) -> bool:
        return isinstance(data.get("rules"), dict)

    @staticmethod
    def _check_prefix_keys(rules: Any, source: Optional[str]) -> None:
        if not isinstance(rules, dict):
            return
        for key in rules:
            if not isinstance(key, str):
                error = RulesError(
                    f"Prefix {key!r} was parsed as {type(key).__name__}, not text",
                    rules_file=source,
                    prefix=str(key),
                )
                error.add_recovery_suggestion(
                    "Quote numeric prefixes in YAML, e.g. '01': [...]"
                )
                raise error


def load_rules(rules_path: Union[str, Path]) -> RuleTable:
    """Load a rule table from ``rules_path`` with the default loader."""
    return RuleLoader().load(rules_path)
