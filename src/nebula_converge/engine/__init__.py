"""Reconciliation engine.

Driver-independent pieces used by every resource driver:
- permission codec and template builder
- identity resolution against remote pools
- wait-for-terminal-state polling
- diffing and the ordered update sequencer
- address-range lease walk

Usage:
    from nebula_converge.engine import RecordParser, RecordValidator

    record = RecordParser().parse("image", {"name": "base", "datastore_id": 1})
    RecordValidator().ensure_valid(record)
"""

from .schema import (
    ResourceKind,
    PoolScope,
    Resource,
    ImageRecord,
    VMRecord,
    NIC,
    Disk,
    Graphics,
    OSConfig,
    RawConfig,
    VNetRecord,
    SecurityRule,
    SecurityGroupRecord,
    UserRecord,
    GroupRecord,
    ValidationResult,
    FieldChange,
    UpdateStep,
    UpdateResult,
)
from .permissions import PermissionBits, encode, decode, permission_string
from .template import UpdateMode, build, encode_string_map, decode_string_map
from .resolver import resolve, find_by_name, parse_id
from .poller import Observation, PollConfig, StatePoller
from .diff import diff_records, summarize_diff
from .sequencer import UpdateSequencer, ORDER
from .leases import lease_addresses
from .parser import RecordParser, ParseError
from .validator import RecordValidator

__all__ = [
    # Schema classes
    "ResourceKind",
    "PoolScope",
    "Resource",
    "ImageRecord",
    "VMRecord",
    "NIC",
    "Disk",
    "Graphics",
    "OSConfig",
    "RawConfig",
    "VNetRecord",
    "SecurityRule",
    "SecurityGroupRecord",
    "UserRecord",
    "GroupRecord",
    "ValidationResult",
    "FieldChange",
    "UpdateStep",
    "UpdateResult",
    # Codecs
    "PermissionBits",
    "encode",
    "decode",
    "permission_string",
    "UpdateMode",
    "build",
    "encode_string_map",
    "decode_string_map",
    # Resolution and polling
    "resolve",
    "find_by_name",
    "parse_id",
    "Observation",
    "PollConfig",
    "StatePoller",
    # Updates
    "diff_records",
    "summarize_diff",
    "UpdateSequencer",
    "ORDER",
    "lease_addresses",
    # Input handling
    "RecordParser",
    "ParseError",
    "RecordValidator",
]
