"""RecordCloak exception hierarchy.

Startup failures (rules, input, configuration) are fatal and abort a run
before any line is touched. Per-line failures (``FieldRangeError``) are
caught by the pipeline and aggregated into the run summary.
"""

from typing import Any, Dict, List, Optional


class RecordCloakError(Exception):
    """Base exception for all RecordCloak errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional error context and metadata
        recovery_suggestions: List of suggested recovery actions
        component: Component where the error originated
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        component: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._default_error_code()
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.component = component or self._infer_component()

    def _default_error_code(self) -> str:
        """Generate default error code based on exception class name."""
        return self.__class__.__name__.upper().replace("ERROR", "_ERROR")

    def _infer_component(self) -> str:
        """Infer component name from exception class."""
        name = self.__class__.__name__.lower()
        if "rule" in name:
            return "rules"
        elif "configuration" in name:
            return "config"
        elif "range" in name or "line" in name:
            return "masking"
        elif "input" in name or "output" in name:
            return "io"
        else:
            return "core"

    def add_context(self, key: str, value: Any) -> None:
        """Add additional context to the error."""
        self.context[key] = value

    def add_recovery_suggestion(self, suggestion: str) -> None:
        """Add a recovery suggestion to help users resolve the error."""
        if suggestion not in self.recovery_suggestions:
            self.recovery_suggestions.append(suggestion)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to structured dictionary for logging/reporting."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "context": self.context,
            "recovery_suggestions": self.recovery_suggestions,
        }


class ValidationError(RecordCloakError):
    """Raised when a value fails validation."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        expected_type: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context("field_name", field_name)
        if expected_type:
            self.add_context("expected_type", expected_type)
        if actual_value is not None:
            self.add_context("actual_value", str(actual_value))


class ConfigurationError(ValidationError):
    """Raised when run configuration is invalid or incomplete."""

    def __init__(
        self,
        message: str,
        setting: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if setting:
            self.add_context("setting", setting)


class RuleValidationError(ValidationError):
    """Raised when a single field rule carries invalid values."""


class RulesError(RecordCloakError):
    """Raised when the rules source is missing or structurally invalid."""

    def __init__(
        self,
        message: str,
        rules_file: Optional[str] = None,
        prefix: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if rules_file:
            self.add_context("rules_file", rules_file)
        if prefix is not None:
            self.add_context("prefix", prefix)


class InputError(RecordCloakError):
    """Raised when the input source cannot be read or decoded."""

    def __init__(self, message: str, input_path: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if input_path:
            self.add_context("input_path", input_path)


class OutputError(RecordCloakError):
    """Raised when the masked output cannot be written."""

    def __init__(self, message: str, output_path: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if output_path:
            self.add_context("output_path", output_path)


class FieldRangeError(RecordCloakError):
    """Raised when a field rule reaches past the end of the line."""

    def __init__(
        self,
        message: str,
        start: int,
        length: int,
        line_length: int,
        prefix: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.start = start
        self.length = length
        self.line_length = line_length
        self.add_context("start", start)
        self.add_context("length", length)
        self.add_context("line_length", line_length)
        if prefix is not None:
            self.add_context("prefix", prefix)


class LineProcessingError(RecordCloakError):
    """Raised when a per-line failure aborts the whole run."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.line_number = line_number
        if line_number is not None:
            self.add_context("line_number", line_number)


def create_rules_error(
    message: str,
    rules_file: Optional[str] = None,
    original_error: Optional[Exception] = None,
) -> RulesError:
    """Create a rules error with standard recovery guidance."""
    error = RulesError(message=message, rules_file=rules_file)

    if original_error:
        error.add_context("original_error", str(original_error))
        error.add_context("original_error_type", type(original_error).__name__)

    error.add_recovery_suggestion("Check that the rules file exists and is readable")
    error.add_recovery_suggestion(
        "Each prefix must map to a list of {start, length, truncate, filter} entries"
    )
    return error
