"""Audit logging for remote changes.

Every step the update sequencer applies is written as one JSON line:
- Timestamped entries naming the resource kind and ID
- The parameters sent with the step
- Success or the failure text
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

audit_logger = logging.getLogger("nebula_converge.audit")

DEFAULT_AUDIT_DIR = "~/.nebula-converge"


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.nebula-converge/
    """
    if log_dir is None:
        log_dir = os.path.expanduser(DEFAULT_AUDIT_DIR)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = os.path.join(log_dir, "audit.log")

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False


@dataclass
class ChangeRecord:
    """Record of one remote change."""
    timestamp: str
    kind: str
    resource_id: Optional[int]
    operation: str  # description, rename, chmod, ...
    success: bool
    parameters: dict
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        return cls(**json.loads(json_str))


class ChangeTracker:
    """Log changes made to a single remote object."""

    def __init__(self, kind: str, resource_id: Optional[int]):
        self.kind = kind
        self.resource_id = resource_id

    def log_change(
        self,
        operation: str,
        parameters: dict[str, Any],
        success: bool,
        error: Optional[str] = None,
    ) -> ChangeRecord:
        """Write a change to the audit log and return it."""
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            kind=self.kind,
            resource_id=self.resource_id,
            operation=operation,
            success=success,
            parameters=parameters,
            error=error[:1000] if error else None,  # Truncate long remote text
        )
        audit_logger.info(record.to_json())
        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    kind: Optional[str] = None,
    resource_id: Optional[int] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.nebula-converge/audit.log
        kind: Filter by resource kind
        resource_id: Filter by resource ID
        operation: Filter by operation
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.join(os.path.expanduser(DEFAULT_AUDIT_DIR), "audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if kind and record.kind != kind:
                continue
            if resource_id is not None and record.resource_id != resource_id:
                continue
            if operation and record.operation != operation:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
