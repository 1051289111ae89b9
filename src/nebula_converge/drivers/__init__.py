"""Resource drivers for the OpenNebula object kinds."""
from typing import Any, Optional, Union

from ..engine.poller import StatePoller
from ..engine.schema import ResourceKind
from .base import ResourceDriver
from .image import ImageDriver
from .secgroup import SecurityGroupDriver
from .usergroup import GroupDriver, UserDriver
from .vm import VMDriver
from .vnet import VNetDriver

__all__ = [
    "ResourceDriver",
    "ImageDriver",
    "SecurityGroupDriver",
    "VMDriver",
    "VNetDriver",
    "UserDriver",
    "GroupDriver",
    "create_driver",
]

# Driver registry
DRIVER_TYPES = {
    ResourceKind.IMAGE: ImageDriver,
    ResourceKind.SECGROUP: SecurityGroupDriver,
    ResourceKind.VM: VMDriver,
    ResourceKind.VNET: VNetDriver,
    ResourceKind.USER: UserDriver,
    ResourceKind.GROUP: GroupDriver,
}


def create_driver(
    kind: Union[str, ResourceKind],
    session: Any,
    poll: Optional[StatePoller] = None,
) -> ResourceDriver:
    """Factory function to create driver instances."""
    try:
        driver_class = DRIVER_TYPES[ResourceKind(kind)]
    except ValueError:
        raise ValueError(f"Unknown resource kind: {kind}")
    return driver_class(session, poll)
