"""Read-only user and group lookups."""
from typing import Any

from ..engine.poller import Observation
from ..engine.schema import GroupRecord, Resource, ResourceKind, UserRecord
from .base import ResourceDriver

READY = "ready"


class UserDriver(ResourceDriver):
    """Users are looked up, never managed."""

    kind = ResourceKind.USER
    record_type = UserRecord
    api = "user"
    pool_entry = "USER"
    pool_scope = None

    def build_template(self, record: Resource) -> str:
        raise NotImplementedError("users are read-only")

    def classify(self, snapshot: Any) -> Observation:
        return Observation(snapshot, READY)

    def project(self, snapshot: Any, record: Resource) -> None:
        # UID/GID of a user live on the record itself
        record.uid = int(snapshot.ID)

    def create(self, record: Resource) -> Resource:
        raise NotImplementedError("users are read-only")

    def delete(self, record: Resource) -> None:
        raise NotImplementedError("users are read-only")

    def update(self, old: Resource, new: Resource, applied=None, on_commit=None):
        raise NotImplementedError("users are read-only")


class GroupDriver(ResourceDriver):
    """Groups are looked up, never managed."""

    kind = ResourceKind.GROUP
    record_type = GroupRecord
    api = "group"
    pool_entry = "GROUP"
    pool_scope = None

    def build_template(self, record: Resource) -> str:
        raise NotImplementedError("groups are read-only")

    def classify(self, snapshot: Any) -> Observation:
        return Observation(snapshot, READY)

    def project(self, snapshot: Any, record: Resource) -> None:
        record.gid = int(snapshot.ID)
        record.gname = snapshot.NAME

    def create(self, record: Resource) -> Resource:
        raise NotImplementedError("groups are read-only")

    def delete(self, record: Resource) -> None:
        raise NotImplementedError("groups are read-only")

    def update(self, old: Resource, new: Resource, applied=None, on_commit=None):
        raise NotImplementedError("groups are read-only")
