"""Wait-for-terminal-state engine.

A resource-specific ``refresh`` callable re-reads the remote object and
classifies it. The poller keeps calling it until the classification reaches
the target, turns into an error, or the deadline passes. Polling blocks the
calling thread between attempts.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Collection, Optional, Union

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from ..errors import StateError, StateTimeout
from ..utils.logging_config import timed_section

logger = logging.getLogger(__name__)


@dataclass
class Observation:
    """A classified snapshot of a remote object."""
    snapshot: Any
    state: str
    error: Optional[str] = None  # diagnostic for terminal failure states


@dataclass
class PollConfig:
    """Timing of wait loops, in seconds."""
    poll_interval: float = 5
    initial_delay: float = 10
    min_poll_interval: float = 3
    timeout: float = 600

    @property
    def interval(self) -> float:
        return max(self.poll_interval, self.min_poll_interval)


Refresh = Callable[[], Observation]


class StatePoller:
    """Reusable state machine for asynchronously completing operations."""

    def __init__(
        self,
        config: Optional[PollConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or PollConfig()
        self.sleep = sleep

    def wait(
        self,
        refresh: Refresh,
        target: str,
        pending: Optional[Collection[str]] = None,
        kind: Optional[str] = None,
        identity: Union[int, str, None] = None,
    ) -> Any:
        """Poll until ``target`` is observed and return that snapshot.

        Args:
            refresh: Re-reads and classifies the resource
            target: Classification that ends the wait successfully
            pending: If given, the only classifications allowed to keep waiting
            kind: Resource kind, for error context
            identity: Resource ID or name, for error context

        Raises:
            StateError: the resource entered an error classification
            StateTimeout: ``timeout`` elapsed before reaching ``target``
        """
        config = self.config

        def attempt() -> Observation:
            observation = refresh()
            logger.debug(
                f"{kind or 'resource'} {identity} is in state {observation.state!r}"
            )
            if observation.error is not None:
                raise StateError(observation.error, kind, identity, state=observation.state)
            if (
                observation.state != target
                and pending is not None
                and observation.state not in pending
            ):
                raise StateError(
                    f"unexpected state {observation.state!r}, wanted {target!r}",
                    kind, identity, state=observation.state,
                )
            return observation

        if config.initial_delay > 0:
            self.sleep(config.initial_delay)

        retrying = Retrying(
            stop=stop_after_delay(max(config.timeout - config.initial_delay, 0)),
            wait=wait_fixed(config.interval),
            retry=retry_if_result(lambda observation: observation.state != target),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            sleep=self.sleep,
        )

        with timed_section("wait_for_state", identity=identity, kind=kind, target=target):
            try:
                observation = retrying(attempt)
            except RetryError as e:
                last = e.last_attempt.result()
                raise StateTimeout(
                    f"timed out after {config.timeout}s waiting for state {target!r} "
                    f"(last state {last.state!r})",
                    kind, identity, last_state=last.state,
                ) from None

        return observation.snapshot
