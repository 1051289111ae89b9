"""Parser for desired records.

Converts dict/YAML input to strongly-typed records, one per resource kind.
"""
from dataclasses import fields
from typing import Any, Optional, Union

from .schema import (
    NIC,
    Disk,
    GroupRecord,
    Graphics,
    ImageRecord,
    OSConfig,
    RawConfig,
    Resource,
    ResourceKind,
    SecurityGroupRecord,
    SecurityRule,
    UserRecord,
    VMRecord,
    VNetRecord,
)


class ParseError(Exception):
    """Error parsing a desired record."""
    pass


RECORD_TYPES: dict[ResourceKind, type[Resource]] = {
    ResourceKind.IMAGE: ImageRecord,
    ResourceKind.VM: VMRecord,
    ResourceKind.VNET: VNetRecord,
    ResourceKind.SECGROUP: SecurityGroupRecord,
    ResourceKind.USER: UserRecord,
    ResourceKind.GROUP: GroupRecord,
}

# Singular block names used in configuration files
ALIASES = {
    "disk": "disks",
    "nic": "nics",
    "rule": "rules",
}

INT_FIELDS = {
    "id", "uid", "gid", "datastore_id", "size", "template_id", "vcpu",
    "memory", "ip_size", "hold_size", "reservation_vnet", "reservation_size",
}


class RecordParser:
    """Parse desired records from dict/YAML format."""

    def parse(self, kind: Union[str, ResourceKind], config: Optional[dict[str, Any]]) -> Resource:
        """
        Parse a configuration dict into a record of the given kind.

        Args:
            kind: Resource kind ("image", "vm", "vnet", "secgroup", "user", "group")
            config: Dict of record fields; nested blocks as dicts or lists of dicts

        Returns:
            The typed record

        Raises:
            ParseError: If the kind is unknown or the config is malformed
        """
        try:
            kind = ResourceKind(kind)
        except ValueError:
            raise ParseError(
                f"Unknown resource kind: {kind}. "
                f"Available: {', '.join(k.value for k in ResourceKind)}"
            )
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ParseError(f"Expected a mapping for {kind.value}, got {type(config).__name__}")

        record_type = RECORD_TYPES[kind]
        known = {f.name for f in fields(record_type)}
        values: dict[str, Any] = {}

        for key, value in config.items():
            name = ALIASES.get(key, key)
            if name not in known:
                raise ParseError(f"Unknown field for {kind.value}: {key}")
            # Empty YAML keys (`nic:`) keep the field default
            if value is None:
                continue
            values[name] = self._parse_field(kind, name, value)

        try:
            return record_type(**values)
        except TypeError as e:
            raise ParseError(f"Invalid {kind.value} definition: {e}")

    def _parse_field(self, kind: ResourceKind, name: str, value: Any) -> Any:
        if name in INT_FIELDS:
            return _to_int(name, value)
        if name == "permissions":
            return str(value)
        if name == "cpu":
            try:
                return float(value)
            except (ValueError, TypeError):
                raise ParseError(f"Invalid cpu: {value}")
        if name == "persistent" or name == "commit":
            return _to_bool(name, value)
        if name == "security_groups":
            return [_to_int(name, v) for v in _as_list(value)]
        if name == "context":
            if not isinstance(value, dict):
                raise ParseError("context must be a mapping")
            return {str(k): str(v) for k, v in value.items()}
        if name == "disks":
            return [self._parse_disk(item) for item in _as_list(value)]
        if name == "nics":
            return [self._parse_nic(item) for item in _as_list(value)]
        if name == "rules":
            return [self._parse_rule(item) for item in _as_list(value)]
        if name == "graphics":
            return _block(Graphics, name, value)
        if name == "os":
            return _block(OSConfig, name, value)
        if name == "raw":
            return _block(RawConfig, name, value)
        return value

    def _parse_disk(self, config: Any) -> Disk:
        disk = _block(Disk, "disk", config)
        disk.image_id = _to_int("image_id", disk.image_id)
        if disk.size is not None:
            disk.size = _to_int("size", disk.size)
        return disk

    def _parse_nic(self, config: Any) -> NIC:
        nic = _block(NIC, "nic", config)
        nic.network_id = _to_int("network_id", nic.network_id)
        groups = _as_list(nic.security_groups or [])
        nic.security_groups = [_to_int("security_groups", v) for v in groups]
        return nic

    def _parse_rule(self, config: Any) -> SecurityRule:
        rule = _block(SecurityRule, "rule", config)
        rule.protocol = str(rule.protocol).upper()
        rule.rule_type = str(rule.rule_type).upper()
        for attr in ("ip", "size", "range", "icmp_type", "network_id"):
            value = getattr(rule, attr)
            if value is not None:
                setattr(rule, attr, str(value))
        return rule


def _block(cls: type, name: str, config: Any) -> Any:
    if not isinstance(config, dict):
        raise ParseError(f"{name} must be a mapping, got {type(config).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(config) - known
    if unknown:
        raise ParseError(f"Unknown field(s) in {name}: {', '.join(sorted(unknown))}")
    try:
        return cls(**config)
    except TypeError as e:
        raise ParseError(f"Invalid {name}: {e}")


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [value]


def _to_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ParseError(f"Invalid {name}: {value}")
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ParseError(f"Invalid {name}: {value}")


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("yes", "true", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("no", "false", "0"):
        return False
    raise ParseError(f"Invalid {name}: {value}")
