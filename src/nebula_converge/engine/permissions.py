"""Permission codec.

OpenNebula stores permissions as nine flags (use/manage/admin for owner,
group and other). Users declare them in Unix-like octal notation, one digit
per subject: "640" means owner use+manage, group use, other nothing.
"""
from dataclasses import dataclass
from typing import Any

from ..errors import ValidationError

USE = 4
MANAGE = 2
ADMIN = 1

SUBJECTS = ("OWNER", "GROUP", "OTHER")
FLAGS = (("U", USE), ("M", MANAGE), ("A", ADMIN))


@dataclass(frozen=True)
class PermissionBits:
    """Remote permission structure."""
    owner_u: int = 0
    owner_m: int = 0
    owner_a: int = 0
    group_u: int = 0
    group_m: int = 0
    group_a: int = 0
    other_u: int = 0
    other_m: int = 0
    other_a: int = 0

    def chmod_args(self) -> tuple[int, ...]:
        """Positional arguments of a ``*.chmod`` call, after the object ID."""
        return (
            self.owner_u, self.owner_m, self.owner_a,
            self.group_u, self.group_m, self.group_a,
            self.other_u, self.other_m, self.other_a,
        )

    @classmethod
    def from_remote(cls, permissions: Any) -> "PermissionBits":
        """Build from a pyone ``PERMISSIONS`` binding (or anything with OWNER_U...)."""
        values = {}
        for subject in SUBJECTS:
            for flag, _ in FLAGS:
                values[f"{subject.lower()}_{flag.lower()}"] = int(
                    getattr(permissions, f"{subject}_{flag}", 0) or 0
                )
        return cls(**values)


def validate(perm: str) -> list[str]:
    """Return the list of problems with a permission string (empty if valid)."""
    errors = []
    if not isinstance(perm, str) or len(perm) != 3:
        errors.append(
            f"permissions {perm!r} must specify 3 permission sets: owner-group-other"
        )
    if isinstance(perm, str) and any(c < "0" or c > "7" for c in perm):
        errors.append(
            f"each character in permissions {perm!r} should be a Unix-like "
            "permission set from 0 to 7"
        )
    return errors


def encode(perm: str) -> PermissionBits:
    """Translate "ogo" octal notation into permission bits.

    Raises:
        ValidationError: unless ``perm`` is exactly three digits 0-7.
    """
    errors = validate(perm)
    if errors:
        raise ValidationError("; ".join(errors))

    values = {}
    for subject, digit in zip(SUBJECTS, perm):
        n = int(digit)
        for flag, mask in FLAGS:
            values[f"{subject.lower()}_{flag.lower()}"] = 1 if n & mask else 0
    return PermissionBits(**values)


def decode(bits: PermissionBits) -> str:
    """Inverse of :func:`encode`; always three digits."""
    digits = []
    for subject in SUBJECTS:
        n = 0
        for flag, mask in FLAGS:
            if getattr(bits, f"{subject.lower()}_{flag.lower()}"):
                n |= mask
        digits.append(str(n))
    return "".join(digits)


def permission_string(permissions: Any) -> str:
    """Octal notation of a remote ``PERMISSIONS`` structure."""
    return decode(PermissionBits.from_remote(permissions))
