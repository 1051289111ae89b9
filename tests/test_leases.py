"""Tests for the IPv4 lease walk."""
import pytest

from nebula_converge.engine.leases import lease_addresses, lease_walk_errors
from nebula_converge.errors import ValidationError


class TestLeaseWalk:
    def test_walks_last_octet(self):
        assert lease_addresses("10.0.0.5", 3) == ["10.0.0.5", "10.0.0.6", "10.0.0.7"]

    def test_zero_holds(self):
        assert lease_addresses("10.0.0.5", 0) == []

    def test_up_to_255(self):
        """The walk may end exactly on octet 255."""
        assert lease_addresses("10.0.0.253", 3)[-1] == "10.0.0.255"

    def test_overflow_fails_fast(self):
        """Passing octet 255 would carry into the third octet."""
        with pytest.raises(ValidationError, match="last octet"):
            lease_addresses("10.0.0.254", 3)

    def test_invalid_start(self):
        assert lease_walk_errors("10.0.0", 1)
        assert lease_walk_errors("fe80::1", 1)

    def test_negative_count(self):
        assert lease_walk_errors("10.0.0.1", -1)
