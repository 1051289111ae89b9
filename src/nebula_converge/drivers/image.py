"""Disk image driver."""
import logging
from typing import Any

from ..engine import permissions, template
from ..engine.poller import Observation
from ..engine.schema import (
    IMAGE_TYPES,
    FieldChange,
    ImageRecord,
    PoolScope,
    ResourceKind,
    UpdateStep,
)
from ..engine.sequencer import DESCRIPTION
from ..engine.template import UpdateMode
from ..utils.logging_config import timed
from .base import NOT_FOUND, ResourceDriver, optional_int

logger = logging.getLogger(__name__)

READY = "ready"
ERROR = "error"
PENDING = "pending"

STATE_READY = 1
STATE_ERROR = 5


class ImageDriver(ResourceDriver):
    """Images are allocated from a template or cloned from another image."""

    kind = ResourceKind.IMAGE
    record_type = ImageRecord
    api = "image"
    pool_entry = "IMAGE"
    updatable = ("description", "name", "uid", "gid", "permissions")

    def build_template(self, record: ImageRecord) -> str:
        return template.build(self.kind, record)

    def classify(self, snapshot: Any) -> Observation:
        state = int(snapshot.STATE)
        if state == STATE_READY:
            return Observation(snapshot, READY)
        if state == STATE_ERROR:
            return Observation(snapshot, ERROR, f"image {snapshot.ID} entered error state")
        return Observation(snapshot, PENDING)

    def project(self, snapshot: Any, record: ImageRecord) -> None:
        tmpl = getattr(snapshot, "TEMPLATE", None) or {}
        record.description = tmpl.get("DESCRIPTION", record.description)
        record.persistent = bool(int(getattr(snapshot, "PERSISTENT", 0) or 0))
        record.path = getattr(snapshot, "PATH", None) or record.path
        record.size = optional_int(getattr(snapshot, "SIZE", None))
        image_type = optional_int(getattr(snapshot, "TYPE", None))
        if image_type in IMAGE_TYPES:
            record.type = IMAGE_TYPES[image_type]
        record.dev_prefix = tmpl.get("DEV_PREFIX", record.dev_prefix)
        record.driver = tmpl.get("DRIVER", record.driver)
        record.state = optional_int(getattr(snapshot, "STATE", None))

    @timed("image.create")
    def create(self, record: ImageRecord) -> ImageRecord:
        if record.permissions:
            permissions.encode(record.permissions)

        if record.clone_from_image:
            return self._clone(record)

        record.id = int(self.call(
            "allocate", self.build_template(record), record.datastore_id,
            identity=record.name,
        ))
        logger.info(f"Allocated image {record.name} as {record.id}")

        self.wait(record.id, READY, pending=(PENDING,))
        self.apply_access(record)
        return self.read(record)

    def _clone(self, record: ImageRecord) -> ImageRecord:
        # Source must be visible to the caller; NotFound propagates
        source_id = self.resolve(record.clone_from_image, PoolScope.MINE)
        record.id = int(self.call(
            "clone", source_id, record.name, record.datastore_id,
            identity=record.name,
        ))
        logger.info(f"Cloned image {source_id} to {record.name} as {record.id}")

        self.wait(record.id, READY, pending=(PENDING,))
        self.apply_access(record)
        self.call("persistent", record.id, bool(record.persistent), identity=record.id)
        return self.read(record)

    def plan_update(
        self,
        old: ImageRecord,
        new: ImageRecord,
        changes: dict[str, FieldChange],
    ) -> list[UpdateStep]:
        steps = []
        if "description" in changes:
            fragment = template.description_fragment(new.description)
            steps.append(UpdateStep(
                DESCRIPTION,
                lambda: self.call("update", old.id, fragment, int(UpdateMode.MERGE), identity=old.id),
                {"description": new.description},
            ))
        return steps

    @timed("image.delete")
    def delete(self, record: ImageRecord) -> None:
        self.read(record)
        if not record.exists:
            return

        self.call("delete", record.id, False, identity=record.id)
        logger.info(f"Deleted image {record.id}")
        self.wait(record.id, NOT_FOUND)
