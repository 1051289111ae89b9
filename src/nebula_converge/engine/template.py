"""Template builder for the OpenNebula wire format.

OpenNebula accepts two template shapes:

- attribute text, one ``KEY="VALUE"`` per line, with vector attributes
  written as ``NAME=[K=V,K=V]`` (network calls and update fragments);
- structured markup, one root element per resource kind and one child
  element per sub-entity (allocate calls for images, VMs, security groups).

Only fields that are present are emitted. Absent optional fields are left
out rather than sent empty, except for the few placeholders the API needs
(image ``PERSISTENT``, NIC ``NETWORK_ID``, disk ``IMAGE_ID``).
"""
import logging
from enum import IntEnum
from typing import Any, Iterable, Mapping, Optional, Union
from xml.etree import ElementTree

from .schema import (
    ImageRecord,
    ResourceKind,
    SecurityGroupRecord,
    VMRecord,
    VNetRecord,
)

logger = logging.getLogger(__name__)


class UpdateMode(IntEnum):
    """Third argument of ``*.update`` calls."""
    REPLACE = 0
    MERGE = 1


# --- Scalars ---

def format_value(value: Any) -> str:
    """Render a scalar the way the API expects it."""
    if isinstance(value, bool):
        return "YES" if value else "NO"
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, (list, tuple)):
        return ",".join(format_value(v) for v in value)
    return str(value)


def quote(value: Any) -> str:
    text = format_value(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


# --- Attribute text ---

def attribute_block(attributes: Mapping[str, Any]) -> str:
    """Newline separated ``KEY="VALUE"`` lines, skipping absent values."""
    return "\n".join(
        f"{key}={quote(value)}"
        for key, value in attributes.items()
        if value is not None
    )


def vector_attribute(name: str, attributes: Mapping[str, Any]) -> str:
    """A single ``NAME=[K=V,...]`` vector attribute."""
    pairs = ",".join(
        f"{key}={format_value(value)}"
        for key, value in attributes.items()
        if value is not None
    )
    return f"{name}=[{pairs}]"


def address_range(ip_start: str, size: int, ar_id: Optional[int] = None) -> str:
    """IPv4 address range block for ``vn.add_ar`` / ``vn.update_ar``."""
    return vector_attribute("AR", {
        "AR_ID": ar_id,
        "TYPE": "IP4",
        "IP": ip_start,
        "SIZE": size,
    })


def lease(ip: str) -> str:
    """Single-address fragment for ``vn.hold`` / ``vn.release``."""
    return vector_attribute("LEASES", {"IP": ip})


def reservation(size: int, name: str) -> str:
    """Fragment for ``vn.reserve``; the API only takes plain attributes here."""
    return f"SIZE={size}\nNAME={quote(name)}"


# --- String maps (CONTEXT, USER_TEMPLATE) ---

def encode_string_map(tag: str, mapping: Mapping[str, Any]) -> Optional[ElementTree.Element]:
    """Serialize a string map as one child element per key.

    Returns None for an empty map so the parent element is omitted.
    """
    if not mapping:
        return None
    element = ElementTree.Element(tag)
    for key, value in mapping.items():
        child = ElementTree.SubElement(element, str(key))
        child.text = format_value(value)
    return element


def decode_string_map(source: Union[None, str, Mapping, ElementTree.Element]) -> dict[str, str]:
    """Parse a string map back from markup.

    Accepts the markup text, a parsed element, or a mapping as returned by
    pyone for ``TEMPLATE``/``USER_TEMPLATE`` (nested values are skipped).
    """
    if source is None:
        return {}
    if isinstance(source, Mapping):
        return {
            str(k): "" if v is None else str(v)
            for k, v in source.items()
            if not isinstance(v, (Mapping, list))
        }
    if isinstance(source, str):
        if not source.strip():
            return {}
        source = ElementTree.fromstring(source)
    return {child.tag: child.text or "" for child in source}


# --- Structured markup ---

def _append(parent: ElementTree.Element, tag: str, value: Any) -> None:
    if value is None or (isinstance(value, list) and not value):
        return
    if isinstance(value, ElementTree.Element):
        parent.append(value)
    elif isinstance(value, Mapping):
        if not value:
            return
        child = ElementTree.SubElement(parent, tag)
        for key, item in value.items():
            _append(child, key, item)
    elif isinstance(value, list) and value and isinstance(value[0], Mapping):
        for item in value:
            _append(parent, tag, item)
    else:
        child = ElementTree.SubElement(parent, tag)
        child.text = format_value(value)


def markup(root: str, fields: Mapping[str, Any]) -> str:
    """Serialize nested fields under a root element."""
    element = ElementTree.Element(root)
    for tag, value in fields.items():
        _append(element, tag, value)
    return ElementTree.tostring(element, encoding="unicode")


# --- Per-kind templates ---

def image_template(image: ImageRecord) -> str:
    return markup("IMAGE", {
        "NAME": image.name,
        "DESCRIPTION": image.description,
        "SIZE": image.size,
        "PATH": image.path,
        "PERSISTENT": bool(image.persistent),
        "TYPE": image.type,
        "DEV_PREFIX": image.dev_prefix,
        "TARGET": image.target,
        "DRIVER": image.driver,
        "MD5": image.md5,
        "SHA1": image.sha1,
    })


def vm_template(vm: VMRecord) -> str:
    nics = [
        {
            "IP": nic.ip,
            "MODEL": nic.model,
            "NETWORK_ID": nic.network_id,
            "SECURITY_GROUPS": nic.security_groups or None,
        }
        for nic in vm.nics
    ]
    disks = [
        {
            "IMAGE_ID": disk.image_id,
            "SIZE": disk.size,
            "TARGET": disk.target,
            "DRIVER": disk.driver,
        }
        for disk in vm.disks
    ]
    fields: dict[str, Any] = {
        "NAME": vm.name or None,
        "VCPU": vm.vcpu,
        "CPU": vm.cpu,
        "MEMORY": vm.memory,
        "CONTEXT": encode_string_map("CONTEXT", vm.context),
        "NIC": nics,
        "DISK": disks,
    }
    if vm.graphics:
        fields["GRAPHICS"] = {"LISTEN": vm.graphics.listen, "TYPE": vm.graphics.type}
    if vm.os:
        fields["OS"] = {"ARCH": vm.os.arch, "BOOT": vm.os.boot}
    if vm.raw:
        fields["RAW"] = {"TYPE": vm.raw.type, "DATA": vm.raw.data}
    return markup("TEMPLATE", fields)


def secgroup_template(group: SecurityGroupRecord) -> str:
    rules = [
        {
            "PROTOCOL": rule.protocol,
            "RANGE": rule.range,
            "RULE_TYPE": rule.rule_type,
            "IP": rule.ip,
            "SIZE": rule.size,
            "NETWORK_ID": rule.network_id,
            "ICMP_TYPE": rule.icmp_type,
        }
        for rule in group.rules
    ]
    return markup("SECURITY_GROUP", {
        "NAME": group.name,
        "DESCRIPTION": group.description,
        "RULE": rules,
    })


def vnet_template(vnet: VNetRecord) -> str:
    return attribute_block({
        "NAME": vnet.name,
        "DESCRIPTION": vnet.description,
        "BRIDGE": vnet.bridge,
        "SECURITY_GROUPS": vnet.security_groups or None,
    })


def security_groups_fragment(group_ids: Iterable[int]) -> str:
    """``SECURITY_GROUPS="1,2"``; an empty list clears the attribute."""
    return attribute_block({"SECURITY_GROUPS": list(group_ids)})


def description_fragment(description: Optional[str]) -> str:
    return attribute_block({"DESCRIPTION": description or ""})


BUILDERS = {
    ResourceKind.IMAGE: image_template,
    ResourceKind.VM: vm_template,
    ResourceKind.SECGROUP: secgroup_template,
    ResourceKind.VNET: vnet_template,
}


def build(kind: ResourceKind, record: Any) -> str:
    """Serialize a desired record into its allocate template."""
    try:
        builder = BUILDERS[ResourceKind(kind)]
    except (KeyError, ValueError):
        raise ValueError(f"No template builder for resource kind: {kind}")
    text = builder(record)
    logger.debug(f"{ResourceKind(kind).value} template: {text}")
    return text
