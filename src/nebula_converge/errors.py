"""Error taxonomy for reconciliation against the OpenNebula API.

Every failure surfaced to a caller carries the resource kind, its identity
(numeric ID or name) and the proximate remote text, so a failed run can be
diagnosed without re-running it with debug logging.
"""
from typing import Optional, Union

Identity = Union[int, str, None]


class ReconcileError(Exception):
    """Base class for all reconciliation failures."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        identity: Identity = None,
    ):
        self.message = message
        self.kind = kind
        self.identity = identity
        super().__init__(self._format())

    def _format(self) -> str:
        if self.kind is None and self.identity is None:
            return self.message
        return f"{self.kind or 'resource'} {self.identity if self.identity is not None else '?'}: {self.message}"


class ValidationError(ReconcileError):
    """Malformed input detected before any remote call."""
    pass


class NotFound(ReconcileError):
    """A reference did not resolve to a remote object."""
    pass


class RemoteCallError(ReconcileError):
    """Transport or protocol failure from a remote call."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        identity: Identity = None,
        method: Optional[str] = None,
    ):
        self.method = method
        super().__init__(message, kind, identity)


class StateTimeout(ReconcileError):
    """Polling exceeded its deadline before reaching a terminal state."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        identity: Identity = None,
        last_state: Optional[str] = None,
    ):
        self.last_state = last_state
        super().__init__(message, kind, identity)


class StateError(ReconcileError):
    """The resource entered a terminal failure state."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        identity: Identity = None,
        state: Optional[str] = None,
    ):
        self.state = state
        super().__init__(message, kind, identity)


class PartialUpdateFailure(ReconcileError):
    """An update stopped partway; earlier steps remain applied."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        identity: Identity = None,
        step: Optional[str] = None,
        applied: Optional[list[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.step = step
        self.applied = list(applied or [])
        self.cause = cause
        super().__init__(message, kind, identity)
