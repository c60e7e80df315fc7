"""RecordCloak: deterministic hash masking for fixed-width record files.

Each line's leading prefix selects a set of field rules. Every field the
rules name is replaced by a salted, filtered and truncated hash of its
content, padded back to the field's width, so masked files keep their
layout and the same input always masks to the same output.
"""

__version__ = "0.1.0"

from .core import (
    ConfigurationError,
    ErrorCollector,
    FieldRangeError,
    FieldRule,
    FilterKind,
    GlobalConfig,
    HashAlgorithm,
    InputError,
    InputMode,
    LineErrorPolicy,
    LineProcessingError,
    OutputError,
    RecordCloakError,
    RuleLoader,
    RulesError,
    RuleTable,
    RuleValidationError,
    apply_filter,
    build_rule_table,
    compute_masked_field,
    load_rules,
)
from .masking import LineResult, LineStatus, LineTransformer, transform, transform_line
from .pipeline import MaskingPipeline, PipelineResult, PipelineState, mask_file

__all__ = [
    "__version__",
    # Pipeline
    "MaskingPipeline",
    "PipelineResult",
    "PipelineState",
    "mask_file",
    # Line masking
    "LineResult",
    "LineStatus",
    "LineTransformer",
    "transform",
    "transform_line",
    # Rules
    "FieldRule",
    "RuleLoader",
    "RuleTable",
    "build_rule_table",
    "load_rules",
    # Hashing
    "FilterKind",
    "HashAlgorithm",
    "apply_filter",
    "compute_masked_field",
    # Configuration
    "GlobalConfig",
    "InputMode",
    "LineErrorPolicy",
    # Errors
    "ConfigurationError",
    "ErrorCollector",
    "FieldRangeError",
    "InputError",
    "LineProcessingError",
    "OutputError",
    "RecordCloakError",
    "RulesError",
    "RuleValidationError",
]
