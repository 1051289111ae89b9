"""Tests for the virtual network driver."""
from types import SimpleNamespace

import pytest

import fakes
from nebula_converge.drivers import VNetDriver
from nebula_converge.engine.schema import VNetRecord
from nebula_converge.errors import NotFound, StateError, ValidationError


@pytest.fixture
def driver(session, poller):
    return VNetDriver(session, poller)


class TestCreate:
    """Fresh allocation with address range and held leases."""

    def test_allocate_with_holds(self, driver, session):
        session.script("vn.allocate", 30)
        session.respond("vn.info", fakes.vnet())
        record = VNetRecord(
            name="private", description="lab", bridge="br0",
            ip_start="10.0.0.5", ip_size=16, hold_size=3, permissions="640",
        )

        driver.create(record)

        assert session.methods() == [
            "vn.allocate", "vn.info", "vn.chmod", "vn.add_ar",
            "vn.hold", "vn.hold", "vn.hold", "vn.info",
        ]
        assert session.args_of("vn.allocate") == [
            ('NAME="private"\nDESCRIPTION="lab"\nBRIDGE="br0"', -1),
        ]
        assert session.args_of("vn.add_ar") == [(30, "AR=[TYPE=IP4,IP=10.0.0.5,SIZE=16]")]
        assert session.args_of("vn.hold") == [
            (30, "LEASES=[IP=10.0.0.5]"),
            (30, "LEASES=[IP=10.0.0.6]"),
            (30, "LEASES=[IP=10.0.0.7]"),
        ]

    def test_range_size_defaults_to_one(self, driver, session):
        session.script("vn.allocate", 30)
        session.respond("vn.info", fakes.vnet())

        driver.create(VNetRecord(name="private", bridge="br0", ip_start="10.0.0.5"))

        assert session.args_of("vn.add_ar") == [(30, "AR=[TYPE=IP4,IP=10.0.0.5,SIZE=1]")]

    def test_lease_overflow_before_any_call(self, driver, session):
        with pytest.raises(ValidationError):
            driver.create(VNetRecord(name="private", bridge="br0", ip_start="10.0.0.254", hold_size=3))

        assert session.calls == []

    def test_error_state(self, driver, session):
        session.script("vn.allocate", 30)
        session.respond("vn.info", fakes.vnet(state=5))

        with pytest.raises(StateError):
            driver.create(VNetRecord(name="private", bridge="br0"))

    def test_server_without_state(self, driver, session):
        """Networks without a STATE attribute are ready immediately."""
        session.script("vn.allocate", 30)
        session.respond("vn.info", fakes.vnet(state=None))

        record = driver.create(VNetRecord(name="private", bridge="br0"))

        assert record.id == 30


class TestReservation:
    def test_reserve(self, driver, session):
        """Reserve, then attach security groups with a merge update."""
        session.script("vn.reserve", 31)
        session.respond("vn.info", fakes.vnet(id=31, name="resv", PARENT_NETWORK_ID="30"))
        record = VNetRecord(name="resv", reservation_vnet=30, reservation_size=4, security_groups=[0, 40])

        result = driver.create(record)

        assert session.args_of("vn.reserve") == [(30, 'SIZE=4\nNAME="resv"')]
        assert session.args_of("vn.update") == [(31, 'SECURITY_GROUPS="0,40"', 1)]
        assert "vn.allocate" not in session.methods()
        assert result.reservation_vnet == 30

    @pytest.mark.parametrize("fresh", [
        {"bridge": "br0"},
        {"ip_start": "10.0.0.5"},
        {"ip_size": 16},
        {"hold_size": 2},
    ])
    def test_reservation_excludes_fresh_allocation(self, driver, session, fresh):
        """Reservation and fresh allocation cannot be mixed."""
        record = VNetRecord(name="resv", reservation_vnet=30, reservation_size=4, **fresh)

        with pytest.raises(ValidationError, match="reservation conflicts with"):
            driver.create(record)

        assert session.calls == []

    @pytest.mark.parametrize("vnet_id,size", [(0, 4), (30, 0), (-1, 2)])
    def test_reservation_values_must_be_positive(self, driver, session, vnet_id, size):
        with pytest.raises(ValidationError):
            driver.create(VNetRecord(name="resv", reservation_vnet=vnet_id, reservation_size=size))

        assert session.calls == []


class TestRead:
    def test_projects_fields(self, driver, session):
        session.respond("vn.info", fakes.vnet(
            TEMPLATE={"DESCRIPTION": "lab", "SECURITY_GROUPS": "0,101"},
            AR_POOL=SimpleNamespace(AR=[SimpleNamespace(AR_ID="0", IP="10.0.0.5", SIZE="16")]),
        ))

        record = driver.read(VNetRecord(name="private", id=30))

        assert session.args_of("vn.info") == [(30, False)]
        assert record.security_groups == [0, 101]
        assert record.description == "lab"
        assert record.bridge == "br0"
        assert record.reservation_vnet is None
        assert record.ip_start == "10.0.0.5"
        assert record.ip_size == 16

    def test_pool_scan(self, driver, session):
        session.respond("vn.info", NotFound("gone"))
        session.respond("vnpool.info", fakes.pool("VNET", fakes.vnet(id=33, name="private")))

        record = driver.read(VNetRecord(name="private", id=30))

        assert record.id == 33
        assert session.args_of("vnpool.info") == [(-2, -1, -1)]


class TestUpdate:
    def test_ordered_steps(self, driver, session):
        old = VNetRecord(
            name="private", id=30, description="a", bridge="br0",
            ip_start="10.0.0.1", ip_size=16, security_groups=[0], permissions="640",
        )
        new = VNetRecord(
            name="lab", description="b", bridge="br0",
            ip_start="10.0.0.1", ip_size=32, security_groups=[0, 40], permissions="600",
        )

        result = driver.update(old, new)

        assert session.methods() == ["vn.update", "vn.rename", "vn.update_ar", "vn.update", "vn.chmod"]
        assert session.args_of("vn.update_ar") == [(30, "AR=[AR_ID=0,TYPE=IP4,IP=10.0.0.1,SIZE=32]")]
        assert session.args_of("vn.update") == [
            (30, 'DESCRIPTION="b"', 1),
            (30, 'SECURITY_GROUPS="0,40"', 1),
        ]
        assert result.applied == ["description", "rename", "address_range", "security_groups", "permissions"]

    def test_start_address_change_is_ignored(self, driver, session):
        old = VNetRecord(name="private", id=30, ip_start="10.0.0.1", ip_size=16)
        new = VNetRecord(name="private", ip_start="10.0.1.1", ip_size=16)

        driver.update(old, new)

        assert session.calls == []


class TestDelete:
    def test_releases_holds_in_order(self, driver, session):
        """The same leases are released before the network is deleted."""
        session.script("vn.info", fakes.vnet(), NotFound("gone"))
        record = VNetRecord(name="private", id=30, ip_start="10.0.0.5", ip_size=16, hold_size=3)

        driver.delete(record)

        assert session.args_of("vn.release") == [
            (30, "LEASES=[IP=10.0.0.5]"),
            (30, "LEASES=[IP=10.0.0.6]"),
            (30, "LEASES=[IP=10.0.0.7]"),
        ]
        assert session.methods() == [
            "vn.info", "vn.release", "vn.release", "vn.release", "vn.delete", "vn.info",
        ]
        assert session.args_of("vn.delete") == [(30, False)]
