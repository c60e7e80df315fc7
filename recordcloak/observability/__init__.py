"""Logging setup for RecordCloak runs."""

from .logging import add_run_id, configure_logging, get_logger, run_context, run_id

__all__ = ["add_run_id", "configure_logging", "get_logger", "run_context", "run_id"]
