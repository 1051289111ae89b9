"""Base driver abstraction for OpenNebula resources."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Iterable, Optional, Union

from ..engine import permissions
from ..engine.diff import diff_records
from ..engine.poller import Observation, StatePoller
from ..engine.resolver import find_by_name, resolve
from ..engine.schema import (
    FieldChange,
    PoolScope,
    Resource,
    ResourceKind,
    UpdateResult,
    UpdateStep,
)
from ..engine.sequencer import OWNERSHIP, PERMISSIONS, RENAME, UpdateSequencer
from ..errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

NOT_FOUND = "notfound"


def as_list(value: Any) -> list:
    """pyone returns a single object or a list for repeated elements."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ResourceDriver(ABC):
    """Create, read, update and delete one kind of remote object.

    Subclasses provide the kind-specific template, state classification and
    projection of remote fields; everything else is shared.
    """

    kind: ClassVar[ResourceKind]
    record_type: ClassVar[type[Resource]]
    api: ClassVar[str]  # method namespace, e.g. "vn" for one.vn.*
    pool_entry: ClassVar[str]  # attribute of the pool holding the entries
    pool_scope: ClassVar[Optional[PoolScope]] = PoolScope.ALL
    info_decrypt: ClassVar[bool] = True  # info takes a trailing decrypt flag
    updatable: ClassVar[tuple[str, ...]] = ("name", "uid", "gid", "permissions")
    tracks_name: ClassVar[bool] = True  # read overwrites the record name

    def __init__(self, session: Any, poll: Optional[StatePoller] = None):
        self.session = session
        if poll is None:
            config = getattr(session, "config", None)
            poll = StatePoller(config.poll_config() if config is not None else None)
        self.poller = poll

    # Remote calls

    def call(self, method: str, *args: Any, identity: Union[int, str, None] = None) -> Any:
        """Call ``one.<api>.<method>``."""
        return self.session.call(
            f"{self.api}.{method}", *args, kind=self.kind.value, identity=identity
        )

    def info(self, resource_id: int) -> Any:
        args = (resource_id, False) if self.info_decrypt else (resource_id,)
        return self.call("info", *args, identity=resource_id)

    def pool(self, scope: Optional[PoolScope] = None) -> list:
        """Entries of the visible pool."""
        scope = scope if scope is not None else self.pool_scope
        args = () if scope is None else (int(scope), -1, -1)
        result = self.session.call(f"{self.api}pool.info", *args, kind=self.kind.value)
        return as_list(getattr(result, self.pool_entry, None))

    def resolve(self, ref: Union[int, str], scope: Optional[PoolScope] = None) -> int:
        """Canonical ID of a reference by ID or name."""
        return resolve(ref, lambda: self.pool(scope), self.kind.value)

    def chmod(self, resource_id: int, perm: str) -> None:
        bits = permissions.encode(perm)
        self.call("chmod", resource_id, *bits.chmod_args(), identity=resource_id)
        logger.info(f"Set permissions of {self.kind.value} {resource_id} to {perm}")

    def chown(self, resource_id: int, uid: Optional[int], gid: Optional[int]) -> None:
        self.call(
            "chown",
            resource_id,
            -1 if uid is None else uid,
            -1 if gid is None else gid,
            identity=resource_id,
        )
        logger.info(f"Changed ownership of {self.kind.value} {resource_id} to {uid}:{gid}")

    def apply_access(self, record: Resource) -> None:
        """Ownership then permissions, where declared."""
        if record.uid is not None or record.gid is not None:
            self.chown(record.id, record.uid, record.gid)
        if record.permissions:
            self.chmod(record.id, record.permissions)

    # State polling

    def observe(self, resource_id: int) -> Observation:
        """Re-read and classify; a vanished object is ``notfound``."""
        try:
            snapshot = self.info(resource_id)
        except NotFound:
            return Observation(None, NOT_FOUND)
        return self.classify(snapshot)

    def wait(self, resource_id: int, target: str, pending: Optional[Iterable[str]] = None) -> Any:
        return self.poller.wait(
            lambda: self.observe(resource_id),
            target,
            pending=pending,
            kind=self.kind.value,
            identity=resource_id,
        )

    # Kind-specific behaviour

    @abstractmethod
    def build_template(self, record: Resource) -> str:
        """Serialize a desired record for allocation."""
        pass

    @abstractmethod
    def classify(self, snapshot: Any) -> Observation:
        """Classify a remote snapshot into a poller state."""
        pass

    @abstractmethod
    def project(self, snapshot: Any, record: Resource) -> None:
        """Copy kind-specific remote fields into ``record``."""
        pass

    @abstractmethod
    def create(self, record: Resource) -> Resource:
        """Create the remote object and wait until it is usable."""
        pass

    @abstractmethod
    def delete(self, record: Resource) -> None:
        """Delete the remote object and wait until deletion is observable."""
        pass

    def plan_update(
        self,
        old: Resource,
        new: Resource,
        changes: dict[str, FieldChange],
    ) -> list[UpdateStep]:
        """Steps for the kind-specific fields; base covers rename and access."""
        return []

    # Shared CRUD

    def fetch(self, record: Resource) -> Optional[Any]:
        """Remote snapshot by ID, falling back to a name lookup."""
        name = self.lookup_name(record)
        if record.id is not None:
            try:
                return self.info(record.id)
            except NotFound:
                logger.info(f"{self.kind.value} {record.id} not found by ID, trying name {name!r}")

        if not name:
            return None
        return find_by_name(name, self.pool())

    def check_record(self, record: Resource) -> None:
        if not isinstance(record, self.record_type):
            raise ValidationError(
                f"expected {self.record_type.__name__}, got {type(record).__name__}",
                self.kind.value, getattr(record, "identity", None),
            )

    def lookup_name(self, record: Resource) -> Optional[str]:
        return record.name

    def read(self, record: Resource) -> Resource:
        """Refresh ``record`` from the remote side.

        A record that resolves to nothing has its identity cleared; the
        caller treats it as absent.
        """
        self.check_record(record)
        snapshot = self.fetch(record)
        if snapshot is None:
            logger.warning(f"{self.kind.value} {record.identity} not found, clearing identity")
            record.clear_identity()
            return record

        record.id = int(snapshot.ID)
        if self.tracks_name:
            record.name = snapshot.NAME
        record.uid = optional_int(getattr(snapshot, "UID", None))
        record.gid = optional_int(getattr(snapshot, "GID", None))
        record.uname = getattr(snapshot, "UNAME", None)
        record.gname = getattr(snapshot, "GNAME", None)
        remote_permissions = getattr(snapshot, "PERMISSIONS", None)
        if remote_permissions is not None:
            record.permissions = permissions.permission_string(remote_permissions)
        self.project(snapshot, record)
        return record

    def exists(self, record: Resource) -> bool:
        return self.read(record).exists

    def update(
        self,
        old: Resource,
        new: Resource,
        applied: Optional[Iterable[str]] = None,
        on_commit: Optional[Callable[[str], None]] = None,
    ) -> UpdateResult:
        """Bring the remote object from ``old`` to ``new``.

        Args:
            old: Last known state, carrying the remote ID
            new: Desired state
            applied: Steps already applied by an earlier, interrupted run
            on_commit: Called with each step name once it is applied

        Raises:
            PartialUpdateFailure: a step failed; earlier steps stay applied.
        """
        self.check_record(old)
        self.check_record(new)
        new.id = old.id
        changes = diff_records(old, new, self.updatable)
        if not changes:
            logger.debug(f"{self.kind.value} {old.identity}: no changes")
            return UpdateResult()
        if "permissions" in changes and new.permissions:
            permissions.encode(new.permissions)

        steps = self.plan_update(old, new, changes)
        resource_id = old.id

        if "name" in changes:
            steps.append(UpdateStep(
                RENAME,
                lambda: self.call("rename", resource_id, new.name, identity=resource_id),
                {"name": new.name},
            ))
        if "uid" in changes or "gid" in changes:
            steps.append(UpdateStep(
                OWNERSHIP,
                lambda: self.chown(resource_id, new.uid, new.gid),
                {"uid": new.uid, "gid": new.gid},
            ))
        if "permissions" in changes and new.permissions:
            steps.append(UpdateStep(
                PERMISSIONS,
                lambda: self.chmod(resource_id, new.permissions),
                {"permissions": new.permissions},
            ))

        sequencer = UpdateSequencer(self.kind.value, resource_id, applied, on_commit)
        return sequencer.run(steps)
