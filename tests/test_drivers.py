"""Tests for the driver registry and read-only drivers."""
import pytest

import fakes
from nebula_converge.config.settings import EndpointConfig
from nebula_converge.drivers import (
    GroupDriver,
    ImageDriver,
    UserDriver,
    VNetDriver,
    create_driver,
)
from nebula_converge.engine.schema import (
    GroupRecord,
    ImageRecord,
    ResourceKind,
    UserRecord,
    VNetRecord,
)
from nebula_converge.errors import ValidationError


class TestCreateDriver:
    """Driver factory."""

    def test_by_name(self, session, poller):
        assert isinstance(create_driver("image", session, poller), ImageDriver)

    def test_by_kind(self, session, poller):
        driver = create_driver(ResourceKind.VNET, session, poller)

        assert isinstance(driver, VNetDriver)
        assert driver.poller is poller

    def test_unknown_kind(self, session):
        with pytest.raises(ValueError, match="Unknown resource kind"):
            create_driver("router", session)

    def test_poll_settings_from_session(self, session):
        """Without an explicit poller the session's endpoint settings apply."""
        session.config = EndpointConfig(endpoint="http://one:2633/RPC2", username="u", timeout=30)

        driver = create_driver("vm", session)

        assert driver.poller.config.timeout == 30


class TestUserGroup:
    """Read-only lookups."""

    def test_user_by_name(self, session, poller):
        user = fakes.snapshot(5, "alice", GNAME="users", GID=100)
        session.respond("userpool.info", fakes.pool("USER", user))

        record = UserDriver(session, poller).read(UserRecord(name="alice"))

        assert session.args_of("userpool.info") == [()]
        assert record.id == 5
        assert record.uid == 5
        assert record.gid == 100

    def test_user_by_id(self, session, poller):
        session.respond("user.info", fakes.snapshot(5, "alice"))

        UserDriver(session, poller).read(UserRecord(name="alice", id=5))

        assert session.args_of("user.info") == [(5, False)]

    def test_group_missing(self, session, poller):
        session.respond("grouppool.info", fakes.pool("GROUP"))

        record = GroupDriver(session, poller).read(GroupRecord(name="devs"))

        assert record.id is None

    def test_group_by_name(self, session, poller):
        session.respond("grouppool.info", fakes.pool("GROUP", fakes.snapshot(100, "devs")))

        record = GroupDriver(session, poller).read(GroupRecord(name="devs"))

        assert record.gid == 100
        assert record.gname == "devs"

    def test_read_only(self, session, poller):
        driver = UserDriver(session, poller)

        with pytest.raises(NotImplementedError):
            driver.create(UserRecord(name="alice"))
        with pytest.raises(NotImplementedError):
            driver.delete(UserRecord(name="alice", id=5))
        with pytest.raises(NotImplementedError):
            driver.update(UserRecord(name="alice", id=5), UserRecord(name="bob"))


class TestRecordType:
    """Each driver only accepts its own record type."""

    def test_read_rejects_other_kind(self, session, poller):
        with pytest.raises(ValidationError, match="expected ImageRecord, got VNetRecord"):
            ImageDriver(session, poller).read(VNetRecord(name="private", id=30))

        assert session.calls == []

    def test_update_rejects_other_kind(self, session, poller):
        with pytest.raises(ValidationError):
            VNetDriver(session, poller).update(VNetRecord(name="a", id=30), ImageRecord(name="b"))

        assert session.calls == []
