"""Core types for RecordCloak: filters, hashing, rules and configuration."""

from .config import GlobalConfig, InputMode, LineErrorPolicy, normalize_encoding
from .error_handling import ErrorCollector, ErrorRecord
from .exceptions import (
    ConfigurationError,
    FieldRangeError,
    InputError,
    LineProcessingError,
    OutputError,
    RecordCloakError,
    RulesError,
    RuleValidationError,
    ValidationError,
)
from .filters import FilterKind, apply_filter
from .hashing import HashAlgorithm, compute_masked_field, digest_hex
from .rule_loader import RuleLoader, load_rules
from .rules import FieldRule, RuleTable, build_rule_table

__all__ = [
    # Configuration
    "GlobalConfig",
    "InputMode",
    "LineErrorPolicy",
    "normalize_encoding",
    # Errors
    "ConfigurationError",
    "ErrorCollector",
    "ErrorRecord",
    "FieldRangeError",
    "InputError",
    "LineProcessingError",
    "OutputError",
    "RecordCloakError",
    "RulesError",
    "RuleValidationError",
    "ValidationError",
    # Filtering and hashing
    "FilterKind",
    "HashAlgorithm",
    "apply_filter",
    "compute_masked_field",
    "digest_hex",
    # Rules
    "FieldRule",
    "RuleLoader",
    "RuleTable",
    "build_rule_table",
    "load_rules",
]
