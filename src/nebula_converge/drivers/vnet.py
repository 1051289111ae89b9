"""Virtual network driver.

A network is either allocated fresh on a bridge, with one IPv4 address
range and optionally some held leases, or reserved out of an existing
network.
"""
import logging
from typing import Any

from ..engine import permissions, template
from ..engine.leases import lease_addresses
from ..engine.poller import Observation
from ..engine.schema import FieldChange, ResourceKind, UpdateStep, VNetRecord
from ..engine.sequencer import ADDRESS_RANGE, DESCRIPTION, SECURITY_GROUPS
from ..engine.template import UpdateMode
from ..errors import ValidationError
from ..utils.logging_config import timed
from .base import NOT_FOUND, ResourceDriver, as_list, optional_int

logger = logging.getLogger(__name__)

READY = "ready"
ERROR = "error"
PENDING = "pending"

STATE_READY = 1
ERROR_STATES = (5, 6)  # ERROR, UPDATE_FAILURE

CLUSTER_DEFAULT = -1


class VNetDriver(ResourceDriver):
    kind = ResourceKind.VNET
    record_type = VNetRecord
    api = "vn"
    pool_entry = "VNET"
    updatable = (
        "description", "name", "ip_start", "ip_size", "security_groups",
        "uid", "gid", "permissions",
    )

    def build_template(self, record: VNetRecord) -> str:
        return template.build(self.kind, record)

    def classify(self, snapshot: Any) -> Observation:
        state = optional_int(getattr(snapshot, "STATE", None))
        if state is None or state == STATE_READY:
            return Observation(snapshot, READY)
        if state in ERROR_STATES:
            return Observation(snapshot, ERROR, f"vnet {snapshot.ID} entered error state {state}")
        return Observation(snapshot, PENDING)

    def project(self, snapshot: Any, record: VNetRecord) -> None:
        tmpl = getattr(snapshot, "TEMPLATE", None) or {}
        record.description = tmpl.get("DESCRIPTION", record.description)
        record.bridge = getattr(snapshot, "BRIDGE", None) or record.bridge
        record.state = optional_int(getattr(snapshot, "STATE", None))

        parent = optional_int(getattr(snapshot, "PARENT_NETWORK_ID", None))
        record.reservation_vnet = parent if parent is not None and parent >= 0 else None

        groups = tmpl.get("SECURITY_GROUPS") or ""
        record.security_groups = [int(g) for g in str(groups).split(",") if g.strip()]

        ar_pool = getattr(snapshot, "AR_POOL", None)
        ranges = as_list(getattr(ar_pool, "AR", None))
        if ranges and not record.is_reservation:
            record.ip_start = getattr(ranges[0], "IP", None) or record.ip_start
            record.ip_size = optional_int(getattr(ranges[0], "SIZE", None)) or record.ip_size

    def _set_security_groups(self, resource_id: int, group_ids: list[int]) -> None:
        self.call(
            "update", resource_id,
            template.security_groups_fragment(group_ids), int(UpdateMode.MERGE),
            identity=resource_id,
        )

    @timed("vnet.create")
    def create(self, record: VNetRecord) -> VNetRecord:
        if record.permissions:
            permissions.encode(record.permissions)
        if record.is_reservation:
            return self._reserve(record)

        leases: list[str] = []
        if record.hold_size:
            if not record.ip_start:
                raise ValidationError("hold_size requires ip_start", self.kind.value, record.name)
            leases = lease_addresses(record.ip_start, record.hold_size)

        record.id = int(self.call(
            "allocate", self.build_template(record), CLUSTER_DEFAULT, identity=record.name,
        ))
        logger.info(f"Allocated vnet {record.name} as {record.id}")
        self.wait(record.id, READY)
        self.apply_access(record)

        if record.ip_start:
            self.call(
                "add_ar", record.id,
                template.address_range(record.ip_start, record.ip_size or 1),
                identity=record.id,
            )
        for ip in leases:
            self.call("hold", record.id, template.lease(ip), identity=record.id)
        if leases:
            logger.info(f"Held {len(leases)} lease(s) on vnet {record.id} from {leases[0]}")

        return self.read(record)

    def _reserve(self, record: VNetRecord) -> VNetRecord:
        if record.allocation_fields:
            raise ValidationError(
                f"reservation conflicts with {', '.join(record.allocation_fields)}",
                self.kind.value, record.name,
            )
        if not record.reservation_vnet or record.reservation_vnet <= 0:
            raise ValidationError(
                "reservation VNET ID must be greater than 0", self.kind.value, record.name
            )
        if not record.reservation_size or record.reservation_size <= 0:
            raise ValidationError(
                "reservation size must be greater than 0", self.kind.value, record.name
            )

        record.id = int(self.call(
            "reserve", record.reservation_vnet,
            template.reservation(record.reservation_size, record.name),
            identity=record.name,
        ))
        logger.info(
            f"Reserved {record.reservation_size} address(es) from vnet "
            f"{record.reservation_vnet} as {record.id}"
        )
        self.wait(record.id, READY)
        if record.security_groups:
            self._set_security_groups(record.id, record.security_groups)
        self.apply_access(record)
        return self.read(record)

    def plan_update(
        self,
        old: VNetRecord,
        new: VNetRecord,
        changes: dict[str, FieldChange],
    ) -> list[UpdateStep]:
        resource_id = old.id
        steps = []

        if "description" in changes:
            fragment = template.description_fragment(new.description)
            steps.append(UpdateStep(
                DESCRIPTION,
                lambda: self.call("update", resource_id, fragment, int(UpdateMode.MERGE), identity=resource_id),
                {"description": new.description},
            ))

        if "ip_start" in changes:
            logger.warning(f"Changing the start address of vnet {resource_id} is not supported")

        if "ip_size" in changes and new.ip_start and new.ip_size:
            block = template.address_range(new.ip_start, new.ip_size, ar_id=0)
            steps.append(UpdateStep(
                ADDRESS_RANGE,
                lambda: self.call("update_ar", resource_id, block, identity=resource_id),
                {"ip_start": new.ip_start, "ip_size": new.ip_size},
            ))

        if "security_groups" in changes:
            group_ids = list(new.security_groups)
            steps.append(UpdateStep(
                SECURITY_GROUPS,
                lambda: self._set_security_groups(resource_id, group_ids),
                {"security_groups": group_ids},
            ))

        return steps

    @timed("vnet.delete")
    def delete(self, record: VNetRecord) -> None:
        self.read(record)
        if not record.exists:
            return

        if record.hold_size and record.ip_start:
            for ip in lease_addresses(record.ip_start, record.hold_size):
                self.call("release", record.id, template.lease(ip), identity=record.id)
            logger.info(f"Released {record.hold_size} lease(s) on vnet {record.id}")

        self.call("delete", record.id, False, identity=record.id)
        logger.info(f"Deleted vnet {record.id}")
        self.wait(record.id, NOT_FOUND)
