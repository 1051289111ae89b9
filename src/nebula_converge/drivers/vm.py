"""Virtual machine driver."""
import logging
from typing import Any, Optional

from ..engine import permissions, template
from ..engine.poller import Observation
from ..engine.schema import NIC, PoolScope, ResourceKind, VMRecord
from ..utils.logging_config import timed
from .base import ResourceDriver, as_list, optional_int

logger = logging.getLogger(__name__)

RUNNING = "running"
DONE = "done"
BOOT_FAILURE = "boot_failure"
PENDING = "pending"

STATE_ACTIVE = 3
STATE_DONE = 6
LCM_RUNNING = 3
LCM_BOOT_FAILURE = 36

DEFAULT_ERROR = "No error was found"


def parse_nic(nic: Any) -> NIC:
    """Project one ``TEMPLATE/NIC`` entry."""
    groups = nic.get("SECURITY_GROUPS") or ""
    return NIC(
        network_id=optional_int(nic.get("NETWORK_ID")),
        model=nic.get("MODEL") or None,
        ip=nic.get("IP") or None,
        mac=nic.get("MAC") or None,
        nic_id=optional_int(nic.get("NIC_ID")),
        security_groups=[int(g) for g in str(groups).split(",") if g.strip()],
    )


class VMDriver(ResourceDriver):
    """VMs boot from a registered template or a full inline definition."""

    kind = ResourceKind.VM
    record_type = VMRecord
    api = "vm"
    pool_entry = "VM"
    pool_scope = PoolScope.MINE
    info_decrypt = False
    tracks_name = False

    def build_template(self, record: VMRecord) -> str:
        return template.build(self.kind, record)

    def classify(self, snapshot: Any) -> Observation:
        state = int(snapshot.STATE)
        lcm_state = int(getattr(snapshot, "LCM_STATE", 0) or 0)
        if state == STATE_ACTIVE and lcm_state == LCM_RUNNING:
            return Observation(snapshot, RUNNING)
        if state == STATE_DONE:
            return Observation(snapshot, DONE)
        if state == STATE_ACTIVE and lcm_state == LCM_BOOT_FAILURE:
            user_template = getattr(snapshot, "USER_TEMPLATE", None) or {}
            message = user_template.get("ERROR") or DEFAULT_ERROR
            return Observation(
                snapshot, BOOT_FAILURE,
                f"VM ID {snapshot.ID} entered fail state, error message: {message}",
            )
        return Observation(snapshot, PENDING)

    def observe(self, resource_id: int) -> Observation:
        # A VM vanishing mid-wait is a failure, not a state
        return self.classify(self.info(resource_id))

    def lookup_name(self, record: VMRecord) -> Optional[str]:
        return record.name or record.instance

    def project(self, snapshot: Any, record: VMRecord) -> None:
        record.instance = snapshot.NAME
        record.state = optional_int(getattr(snapshot, "STATE", None))
        record.lcm_state = optional_int(getattr(snapshot, "LCM_STATE", None))

        tmpl = getattr(snapshot, "TEMPLATE", None) or {}
        nics = [parse_nic(nic) for nic in as_list(tmpl.get("NIC"))]
        if nics:
            record.nics = nics
            record.ip = nics[0].ip

    def exists(self, record: VMRecord) -> bool:
        # A terminated VM lingers in state DONE
        self.read(record)
        return record.exists and record.state != STATE_DONE

    def needs_recreate(self, record: VMRecord) -> bool:
        """True when the VM failed to boot and has to be replaced."""
        return record.lcm_state == LCM_BOOT_FAILURE

    @timed("vm.create")
    def create(self, record: VMRecord) -> VMRecord:
        if record.permissions:
            permissions.encode(record.permissions)

        if record.template_id is not None:
            resource_id = self.session.call(
                "template.instantiate",
                record.template_id, record.name, False, "", False,
                kind=self.kind.value, identity=record.name,
            )
        else:
            resource_id = self.call(
                "allocate", self.build_template(record), False, identity=record.name,
            )
        record.id = int(resource_id)
        logger.info(f"Created VM {record.name} as {record.id}")

        self.wait(record.id, RUNNING)
        self.apply_access(record)
        return self.read(record)

    @timed("vm.delete")
    def delete(self, record: VMRecord) -> None:
        self.read(record)
        if not record.exists:
            return

        self.call("action", "terminate-hard", record.id, identity=record.id)
        logger.info(f"Terminating VM {record.id}")
        self.wait(record.id, DONE)
