"""Shared fixtures: no test touches the network or sleeps."""
import pytest

from fakes import FakeSession
from nebula_converge.engine.poller import PollConfig, StatePoller


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def sleeps():
    """Durations the poller asked to sleep for."""
    return []


@pytest.fixture
def poller(sleeps):
    config = PollConfig(poll_interval=0, initial_delay=0, min_poll_interval=0, timeout=60)
    return StatePoller(config, sleep=sleeps.append)


@pytest.fixture(autouse=True)
def audit_to_tmp(tmp_path):
    """Keep audit records out of the home directory."""
    from nebula_converge.utils.audit_log import setup_audit_logging

    setup_audit_logging(str(tmp_path / "audit"))
    yield
