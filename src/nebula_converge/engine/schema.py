"""Schema definitions for the reconciliation engine.

Defines the desired-configuration records for every resource kind and the
result types produced by validation, diffing and updates.
"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, ClassVar, Optional, Union


class ResourceKind(str, Enum):
    """Kinds of remote objects handled by the drivers."""
    IMAGE = "image"
    VM = "vm"
    VNET = "vnet"
    SECGROUP = "secgroup"
    USER = "user"
    GROUP = "group"


class PoolScope(IntEnum):
    """Ownership filter of ``*pool.info`` calls."""
    MINE_AND_GROUP = -1
    ALL = -2
    MINE = -3


IMAGE_TYPES = {
    0: "OS",
    1: "CDROM",
    2: "DATABLOCK",
    3: "KERNEL",
    4: "RAMDISK",
    5: "CONTEXT",
}

RULE_PROTOCOLS = ("ALL", "TCP", "UDP", "ICMP", "IPSEC")
RULE_TYPES = ("INBOUND", "OUTBOUND")


# --- Resource records ---

@dataclass
class Resource:
    """Fields shared by every resource kind."""
    name: str = ""
    id: Optional[int] = None
    permissions: Optional[str] = None  # "640" style, owner-group-other
    uid: Optional[int] = None
    gid: Optional[int] = None
    uname: Optional[str] = None
    gname: Optional[str] = None

    kind: ClassVar[ResourceKind]

    @property
    def identity(self) -> Union[int, str]:
        """Numeric ID when known, otherwise the name."""
        return self.id if self.id is not None else self.name

    @property
    def exists(self) -> bool:
        return self.id is not None

    def clear_identity(self) -> None:
        """Forget the remote ID; the remote object is left untouched."""
        self.id = None


@dataclass
class ImageRecord(Resource):
    """Desired state of a disk image."""
    description: Optional[str] = None
    datastore_id: Optional[int] = None
    persistent: bool = False
    clone_from_image: Optional[str] = None  # ID or name
    path: Optional[str] = None
    type: Optional[str] = None  # OS, CDROM, DATABLOCK, KERNEL, RAMDISK, CONTEXT
    size: Optional[int] = None  # MB
    dev_prefix: Optional[str] = None
    target: Optional[str] = None
    driver: Optional[str] = None
    md5: Optional[str] = None
    sha1: Optional[str] = None
    state: Optional[int] = None

    kind: ClassVar[ResourceKind] = ResourceKind.IMAGE


@dataclass
class NIC:
    """Network adapter of a VM."""
    network_id: int
    model: Optional[str] = None
    ip: Optional[str] = None
    security_groups: list[int] = field(default_factory=list)
    mac: Optional[str] = None
    nic_id: Optional[int] = None


@dataclass
class Disk:
    """Disk attached to a VM."""
    image_id: int
    size: Optional[int] = None
    target: Optional[str] = None
    driver: Optional[str] = None


@dataclass
class Graphics:
    listen: str
    type: str


@dataclass
class OSConfig:
    arch: str
    boot: str


@dataclass
class RawConfig:
    type: str
    data: str


@dataclass
class VMRecord(Resource):
    """Desired state of a virtual machine."""
    template_id: Optional[int] = None
    cpu: Optional[float] = None
    vcpu: Optional[int] = None
    memory: Optional[int] = None  # MB
    context: dict[str, str] = field(default_factory=dict)
    disks: list[Disk] = field(default_factory=list)
    nics: list[NIC] = field(default_factory=list)
    graphics: Optional[Graphics] = None
    os: Optional[OSConfig] = None
    raw: Optional[RawConfig] = None
    # Computed
    instance: Optional[str] = None
    state: Optional[int] = None
    lcm_state: Optional[int] = None
    ip: Optional[str] = None

    kind: ClassVar[ResourceKind] = ResourceKind.VM


@dataclass
class VNetRecord(Resource):
    """Desired state of a virtual network or a reservation."""
    description: Optional[str] = None
    bridge: Optional[str] = None
    ip_start: Optional[str] = None
    ip_size: Optional[int] = None
    hold_size: int = 0
    reservation_vnet: Optional[int] = None
    reservation_size: Optional[int] = None
    security_groups: list[int] = field(default_factory=list)
    state: Optional[int] = None

    kind: ClassVar[ResourceKind] = ResourceKind.VNET

    @property
    def is_reservation(self) -> bool:
        return self.reservation_vnet is not None or self.reservation_size is not None

    @property
    def allocation_fields(self) -> list[str]:
        """Declared fields that only apply to a fresh allocation."""
        return [
            label for label, value in (
                ("bridge", self.bridge),
                ("ip_start", self.ip_start),
                ("ip_size", self.ip_size),
                ("hold_size", self.hold_size or None),
            ) if value is not None
        ]


@dataclass
class SecurityRule:
    """A single security group rule."""
    protocol: str
    rule_type: str  # INBOUND / OUTBOUND
    ip: Optional[str] = None
    size: Optional[str] = None
    range: Optional[str] = None  # "22,80,1000:2000"
    icmp_type: Optional[str] = None
    network_id: Optional[str] = None


@dataclass
class SecurityGroupRecord(Resource):
    """Desired state of a security group."""
    description: Optional[str] = None
    rules: list[SecurityRule] = field(default_factory=list)
    commit: bool = True  # push rule changes to referencing VMs

    kind: ClassVar[ResourceKind] = ResourceKind.SECGROUP


@dataclass
class UserRecord(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.USER


@dataclass
class GroupRecord(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.GROUP


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of record validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Diff Results ---

@dataclass
class FieldChange:
    """A single field that differs between stored and desired state."""
    field: str
    old: Any = None
    new: Any = None


# --- Update plan and results ---

@dataclass
class UpdateStep:
    """One remote sub-operation of an update."""
    name: str
    apply: Callable[[], Any]
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class UpdateResult:
    """Outcome of a sequenced update."""
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return not self.applied and not self.skipped

    def to_dict(self) -> dict:
        return {"applied": list(self.applied), "skipped": list(self.skipped)}
