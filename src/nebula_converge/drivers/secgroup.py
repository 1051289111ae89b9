"""Security group driver."""
import logging
from typing import Any

from ..engine import permissions, template
from ..engine.poller import Observation
from ..engine.schema import (
    FieldChange,
    ResourceKind,
    SecurityGroupRecord,
    SecurityRule,
    UpdateStep,
)
from ..engine.sequencer import COMMIT, DESCRIPTION
from ..engine.template import UpdateMode
from ..utils.logging_config import timed
from .base import NOT_FOUND, ResourceDriver, as_list

logger = logging.getLogger(__name__)

READY = "ready"


def parse_rule(rule: Any) -> SecurityRule:
    """Project one ``TEMPLATE/RULE`` entry."""
    def text(key: str):
        value = rule.get(key)
        return None if value in (None, "") else str(value)

    return SecurityRule(
        protocol=text("PROTOCOL") or "ALL",
        rule_type=text("RULE_TYPE") or "INBOUND",
        ip=text("IP"),
        size=text("SIZE"),
        range=text("RANGE"),
        icmp_type=text("ICMP_TYPE"),
        network_id=text("NETWORK_ID"),
    )


class SecurityGroupDriver(ResourceDriver):
    kind = ResourceKind.SECGROUP
    record_type = SecurityGroupRecord
    api = "secgroup"
    pool_entry = "SECURITY_GROUP"
    info_decrypt = False
    updatable = ("description", "rules", "name", "uid", "gid", "permissions")

    def build_template(self, record: SecurityGroupRecord) -> str:
        return template.build(self.kind, record)

    def classify(self, snapshot: Any) -> Observation:
        # Security groups have no lifecycle; existing means usable
        return Observation(snapshot, READY)

    def project(self, snapshot: Any, record: SecurityGroupRecord) -> None:
        tmpl = getattr(snapshot, "TEMPLATE", None) or {}
        record.description = tmpl.get("DESCRIPTION", record.description)
        record.rules = [parse_rule(rule) for rule in as_list(tmpl.get("RULE"))]

    @timed("secgroup.create")
    def create(self, record: SecurityGroupRecord) -> SecurityGroupRecord:
        if record.permissions:
            permissions.encode(record.permissions)

        record.id = int(self.call("allocate", self.build_template(record), identity=record.name))
        logger.info(f"Allocated security group {record.name} as {record.id}")

        self.wait(record.id, READY)
        self.apply_access(record)
        return self.read(record)

    def plan_update(
        self,
        old: SecurityGroupRecord,
        new: SecurityGroupRecord,
        changes: dict[str, FieldChange],
    ) -> list[UpdateStep]:
        resource_id = old.id
        steps = []

        if "description" in changes or "rules" in changes:
            # The rule set is only replaceable as a whole
            body = self.build_template(new)
            steps.append(UpdateStep(
                DESCRIPTION,
                lambda: self.call("update", resource_id, body, int(UpdateMode.REPLACE), identity=resource_id),
                {"description": new.description, "rules": len(new.rules)},
            ))

        if "rules" in changes and new.commit:
            steps.append(UpdateStep(
                COMMIT,
                lambda: self.call("commit", resource_id, False, identity=resource_id),
                {"outdated_only": True},
            ))

        return steps

    @timed("secgroup.delete")
    def delete(self, record: SecurityGroupRecord) -> None:
        self.read(record)
        if not record.exists:
            return

        self.call("delete", record.id, identity=record.id)
        logger.info(f"Deleted security group {record.id}")
        self.wait(record.id, NOT_FOUND)
