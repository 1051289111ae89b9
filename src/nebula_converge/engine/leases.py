"""IPv4 lease walk for address-range holds.

Leases are held one address at a time starting from the range start and
incrementing the last octet. The walk never carries into the third octet.
"""
import ipaddress

from ..errors import ValidationError


def lease_walk_errors(ip_start: str, count: int) -> list[str]:
    """Problems with walking ``count`` leases from ``ip_start`` (empty if fine)."""
    if count < 0:
        return [f"hold size must not be negative, got {count}"]
    if count == 0:
        return []
    try:
        start = ipaddress.IPv4Address(ip_start)
    except (ipaddress.AddressValueError, ValueError):
        return [f"{ip_start!r} is not an IPv4 address"]

    last_octet = start.packed[3]
    if last_octet + count - 1 > 255:
        return [
            f"holding {count} leases from {ip_start} runs past the last octet "
            f"(ends at .{last_octet + count - 1})"
        ]
    return []


def lease_addresses(ip_start: str, count: int) -> list[str]:
    """Addresses held for a range, in hold order.

    Raises:
        ValidationError: the walk would pass octet 255 or the start is invalid.
    """
    errors = lease_walk_errors(ip_start, count)
    if errors:
        raise ValidationError("; ".join(errors))
    if count == 0:
        return []
    start = ipaddress.IPv4Address(ip_start)
    return [str(start + offset) for offset in range(count)]
