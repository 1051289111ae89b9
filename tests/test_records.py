"""Tests for record parsing and validation."""
import pytest

from nebula_converge.engine.parser import ParseError, RecordParser
from nebula_converge.engine.schema import (
    NIC,
    Disk,
    ImageRecord,
    ResourceKind,
    SecurityGroupRecord,
    SecurityRule,
    VMRecord,
    VNetRecord,
)
from nebula_converge.engine.template import build
from nebula_converge.engine.validator import RecordValidator
from nebula_converge.errors import ValidationError


class TestRecordParser:
    """Dict input to typed records."""

    def test_parse_image(self):
        record = RecordParser().parse("image", {
            "name": "base",
            "datastore_id": "1",
            "persistent": "yes",
            "permissions": 640,
        })

        assert isinstance(record, ImageRecord)
        assert record.datastore_id == 1
        assert record.persistent is True
        assert record.permissions == "640"

    def test_parse_vm_blocks(self):
        """Singular block names map onto list fields."""
        record = RecordParser().parse("vm", {
            "name": "web",
            "cpu": 1,
            "vcpu": 2,
            "memory": 512,
            "context": {"NETWORK": "YES"},
            "disk": [{"image_id": "7"}],
            "nic": [{"network_id": 30, "security_groups": "0,40"}],
            "graphics": {"listen": "0.0.0.0", "type": "VNC"},
        })

        assert isinstance(record, VMRecord)
        assert record.cpu == 1.0
        assert record.disks == [Disk(image_id=7)]
        assert record.nics == [NIC(network_id=30, security_groups=[0, 40])]
        assert record.graphics.type == "VNC"

    def test_parse_secgroup_rules(self):
        record = RecordParser().parse("secgroup", {
            "name": "web",
            "rule": [{"protocol": "tcp", "rule_type": "inbound", "range": 80}],
        })

        assert record.rules == [SecurityRule(protocol="TCP", rule_type="INBOUND", range="80")]

    def test_unknown_kind(self):
        with pytest.raises(ParseError, match="Unknown resource kind"):
            RecordParser().parse("router", {"name": "r"})

    def test_unknown_field(self):
        with pytest.raises(ParseError, match="Unknown field"):
            RecordParser().parse("image", {"name": "base", "colour": "blue"})

    def test_bad_integer(self):
        with pytest.raises(ParseError):
            RecordParser().parse("vnet", {"name": "net", "ip_size": "many"})

    def test_empty_blocks_keep_defaults(self):
        """Keys left empty in YAML parse to empty lists, not None."""
        vm = RecordParser().parse("vm", {
            "name": "web", "cpu": 1, "vcpu": 1, "memory": 512,
            "disk": None, "nic": None, "context": None,
        })

        assert vm.disks == []
        assert vm.nics == []
        assert vm.context == {}
        assert RecordValidator().validate(vm).valid
        assert build(ResourceKind.VM, vm).startswith("<TEMPLATE>")

    def test_empty_rules_and_network_fields(self):
        secgroup = RecordParser().parse("secgroup", {"name": "web", "rule": None, "commit": None})
        vnet = RecordParser().parse("vnet", {
            "name": "net", "bridge": "br0", "hold_size": None, "security_groups": None,
        })

        assert secgroup.rules == []
        assert secgroup.commit is True
        assert vnet.hold_size == 0
        assert vnet.security_groups == []
        assert RecordValidator().validate(secgroup).valid
        assert RecordValidator().validate(vnet).valid

    def test_nic_without_security_groups(self):
        record = RecordParser().parse("vm", {
            "name": "web", "nic": [{"network_id": 30, "security_groups": None}],
        })

        assert record.nics == [NIC(network_id=30)]

    def test_block_missing_required(self):
        """A NIC without network_id cannot be built."""
        with pytest.raises(ParseError):
            RecordParser().parse("vm", {"name": "web", "nic": [{"model": "virtio"}]})


class TestRecordValidator:
    """Pre-flight checks."""

    def test_valid_image(self):
        result = RecordValidator().validate(ImageRecord(name="base", datastore_id=1, path="/tmp/a"))

        assert result.valid
        assert result.errors == []

    def test_bad_permissions(self):
        result = RecordValidator().validate(ImageRecord(name="base", datastore_id=1, permissions="999"))

        assert not result.valid

    def test_image_conflicts(self):
        result = RecordValidator().validate(ImageRecord(
            name="base", datastore_id=1, path="/tmp/a", clone_from_image="7", type="FLOPPY",
        ))

        assert any("conflicts" in e for e in result.errors)
        assert any("image type" in e for e in result.errors)

    def test_vm_template_conflict(self):
        result = RecordValidator().validate(VMRecord(
            name="web", cpu=1, vcpu=1, memory=64, template_id=3, nics=[NIC(network_id=1)],
        ))

        assert any("template_id conflicts with nic" in e for e in result.errors)

    def test_vm_device_limits(self):
        result = RecordValidator().validate(VMRecord(
            name="web", cpu=1, vcpu=1, memory=64,
            disks=[Disk(image_id=i) for i in range(9)],
        ))

        assert any("disks" in e for e in result.errors)

    def test_vm_requires_sizing(self):
        result = RecordValidator().validate(VMRecord(name="web", template_id=3))

        assert len(result.errors) == 3

    def test_vnet_mode_exclusive(self):
        result = RecordValidator().validate(VNetRecord(
            name="net", bridge="br0", reservation_vnet=30, reservation_size=2,
        ))

        assert any("conflict with bridge" in e for e in result.errors)

    def test_vnet_reservation_values(self):
        result = RecordValidator().validate(VNetRecord(name="net", reservation_vnet=0, reservation_size=0))

        assert len(result.errors) == 2

    def test_vnet_lease_overflow(self):
        result = RecordValidator().validate(VNetRecord(
            name="net", bridge="br0", ip_start="10.0.0.250", ip_size=10, hold_size=10,
        ))

        assert not result.valid

    def test_secgroup_rules(self):
        result = RecordValidator().validate(SecurityGroupRecord(
            name="web", rules=[SecurityRule(protocol="SCTP", rule_type="SIDEWAYS")],
        ))

        assert len(result.errors) == 2

    def test_warnings_do_not_invalidate(self):
        result = RecordValidator().validate(SecurityGroupRecord(name="empty"))

        assert result.valid
        assert result.warnings

    def test_ensure_valid_raises(self):
        with pytest.raises(ValidationError, match="datastore_id"):
            RecordValidator().ensure_valid(ImageRecord(name="base"))
