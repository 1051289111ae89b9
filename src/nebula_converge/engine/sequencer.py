"""Ordered partial-update sequencer.

An update is split into named steps, each one remote sub-operation. Steps
always run in the same order no matter how the diff was produced. After
each step succeeds its name is added to the applied set and reported to
``on_commit``, so a caller can persist progress; a later run with the same
applied set skips what already went through.
"""
import logging
from typing import Callable, Iterable, Optional

from ..errors import PartialUpdateFailure, ReconcileError
from ..utils.audit_log import ChangeTracker
from .schema import UpdateResult, UpdateStep

logger = logging.getLogger(__name__)

DESCRIPTION = "description"
RENAME = "rename"
ADDRESS_RANGE = "address_range"
SECURITY_GROUPS = "security_groups"
OWNERSHIP = "ownership"
PERMISSIONS = "permissions"
COMMIT = "commit"

ORDER = (
    DESCRIPTION,
    RENAME,
    ADDRESS_RANGE,
    SECURITY_GROUPS,
    OWNERSHIP,
    PERMISSIONS,
    COMMIT,
)


class UpdateSequencer:
    """Apply update steps in a fixed order, recording each success."""

    def __init__(
        self,
        kind: str,
        resource_id: Optional[int],
        applied: Optional[Iterable[str]] = None,
        on_commit: Optional[Callable[[str], None]] = None,
    ):
        self.kind = kind
        self.resource_id = resource_id
        self.applied: set[str] = set(applied or ())
        self.on_commit = on_commit

    @staticmethod
    def position(name: str) -> int:
        try:
            return ORDER.index(name)
        except ValueError:
            raise ValueError(f"Unknown update step: {name}")

    def run(self, steps: Iterable[UpdateStep]) -> UpdateResult:
        """Apply ``steps`` in sequence order.

        Raises:
            PartialUpdateFailure: a step failed; steps before it stay applied.
        """
        plan = sorted(steps, key=lambda step: self.position(step.name))
        tracker = ChangeTracker(self.kind, self.resource_id)
        result = UpdateResult()

        for step in plan:
            if step.name in self.applied:
                logger.debug(f"{self.kind} {self.resource_id}: step {step.name} already applied")
                result.skipped.append(step.name)
                continue

            logger.info(f"{self.kind} {self.resource_id}: applying {step.name}")
            try:
                step.apply()
            except ReconcileError as e:
                tracker.log_change(step.name, step.parameters, success=False, error=str(e))
                raise PartialUpdateFailure(
                    f"update stopped at step {step.name!r}: {e}",
                    self.kind, self.resource_id,
                    step=step.name, applied=result.applied, cause=e,
                ) from e

            tracker.log_change(step.name, step.parameters, success=True)
            self.applied.add(step.name)
            result.applied.append(step.name)
            if self.on_commit is not None:
                self.on_commit(step.name)

        return result
