"""Logging and audit helpers."""
from .audit_log import ChangeRecord, ChangeTracker, get_recent_changes, setup_audit_logging
from .logging_config import perf_logger, setup_logging, timed, timed_section

__all__ = [
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "setup_audit_logging",
    "ChangeRecord",
    "ChangeTracker",
    "get_recent_changes",
]
