"""Tests for the state poller."""
import pytest

from nebula_converge.engine.poller import Observation, PollConfig, StatePoller
from nebula_converge.errors import NotFound, StateError, StateTimeout


def scripted(*observations):
    """Refresh callable returning observations in order, counting calls."""
    queue = list(observations)

    def refresh():
        refresh.calls += 1
        return queue.pop(0) if len(queue) > 1 else queue[0]

    refresh.calls = 0
    return refresh


class TestWait:
    """Waiting for a target classification."""

    def test_reaches_target(self, poller):
        """pending, pending, target returns the target snapshot after 3 refreshes."""
        refresh = scripted(
            Observation("s1", "pending"),
            Observation("s2", "pending"),
            Observation("s3", "ready"),
        )

        assert poller.wait(refresh, "ready") == "s3"
        assert refresh.calls == 3

    def test_immediate_target(self, poller):
        refresh = scripted(Observation("s", "ready"))

        assert poller.wait(refresh, "ready") == "s"
        assert refresh.calls == 1

    def test_error_classification(self, poller):
        """An observation with a diagnostic stops the wait."""
        refresh = scripted(
            Observation("s1", "pending"),
            Observation("s2", "error", "disk copy failed"),
        )

        with pytest.raises(StateError) as exc:
            poller.wait(refresh, "ready", kind="image", identity=7)

        assert "disk copy failed" in str(exc.value)
        assert exc.value.state == "error"
        assert exc.value.identity == 7

    def test_unexpected_state(self, poller):
        """With an explicit pending set, other states are failures."""
        refresh = scripted(Observation("s", "locked"))

        with pytest.raises(StateError, match="unexpected state"):
            poller.wait(refresh, "ready", pending={"pending"})

    def test_refresh_exceptions_not_retried(self, poller):
        """A failing refresh propagates on the first attempt."""
        calls = []

        def refresh():
            calls.append(1)
            raise NotFound("gone", "vm", 3)

        with pytest.raises(NotFound):
            poller.wait(refresh, "running")
        assert len(calls) == 1

    def test_timeout(self, sleeps):
        """A never-terminal sequence raises StateTimeout with the last state."""
        config = PollConfig(poll_interval=0, initial_delay=0, min_poll_interval=0, timeout=0)
        poller = StatePoller(config, sleep=sleeps.append)

        with pytest.raises(StateTimeout) as exc:
            poller.wait(scripted(Observation("s", "pending")), "ready", kind="vnet", identity=30)

        assert exc.value.last_state == "pending"
        assert exc.value.identity == 30


class TestTiming:
    """Delays requested from the injected sleep."""

    def test_initial_delay_and_interval(self, sleeps):
        """Initial delay first, then the interval floored by the minimum."""
        config = PollConfig(poll_interval=1, initial_delay=10, min_poll_interval=3, timeout=600)
        poller = StatePoller(config, sleep=sleeps.append)

        poller.wait(scripted(Observation("a", "pending"), Observation("b", "ready")), "ready")

        assert sleeps == [10, 3]

    def test_defaults(self):
        config = PollConfig()

        assert config.initial_delay == 10
        assert config.min_poll_interval == 3
        assert config.timeout == 600
