"""Pre-flight validation for desired records.

Catches malformed input before any remote call is made.
"""
from typing import Any

from ..errors import ValidationError
from . import permissions
from .leases import lease_walk_errors
from .schema import (
    IMAGE_TYPES,
    RULE_PROTOCOLS,
    RULE_TYPES,
    ImageRecord,
    Resource,
    SecurityGroupRecord,
    ValidationResult,
    VMRecord,
    VNetRecord,
)

MAX_VM_DISKS = 8
MAX_VM_NICS = 8


class RecordValidator:
    """Validate desired records for logical errors before execution."""

    def validate(self, record: Resource) -> ValidationResult:
        """
        Validate a desired record.

        Performs pre-flight checks:
        - Name and permission string format
        - Image type and source conflicts
        - VM template / inline definition conflicts and device counts
        - VNet mode exclusivity, reservation values and lease walk bounds
        - Security rule protocol and direction

        Args:
            record: The record to validate

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        if not record.name:
            errors.append("Missing required field: name")

        if record.permissions is not None:
            errors.extend(permissions.validate(record.permissions))

        if isinstance(record, ImageRecord):
            self._validate_image(record, errors, warnings)
        elif isinstance(record, VMRecord):
            self._validate_vm(record, errors, warnings)
        elif isinstance(record, VNetRecord):
            self._validate_vnet(record, errors, warnings)
        elif isinstance(record, SecurityGroupRecord):
            self._validate_secgroup(record, errors, warnings)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def ensure_valid(self, record: Resource) -> ValidationResult:
        """Validate and raise if the record has errors.

        Raises:
            ValidationError: with every problem found, joined.
        """
        result = self.validate(record)
        if not result.valid:
            raise ValidationError(
                "; ".join(result.errors), record.kind.value, record.identity
            )
        return result

    def _validate_image(
        self,
        image: ImageRecord,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        if image.datastore_id is None:
            errors.append("Missing required field: datastore_id")

        if image.clone_from_image is not None and image.path is not None:
            errors.append("clone_from_image conflicts with path")

        if image.type is not None and image.type not in IMAGE_TYPES.values():
            errors.append(
                f"Invalid image type {image.type!r}: must be one of "
                f"{', '.join(IMAGE_TYPES.values())}"
            )

        if image.clone_from_image is None and image.path is None and image.size is None:
            warnings.append(f"Image {image.name} has no path, size or clone source")

    def _validate_vm(
        self,
        vm: VMRecord,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        for attr in ("cpu", "vcpu", "memory"):
            if getattr(vm, attr) is None:
                errors.append(f"Missing required field: {attr}")

        if vm.template_id is not None:
            inline = [
                label for label, present in (
                    ("disk", vm.disks),
                    ("graphics", vm.graphics),
                    ("nic", vm.nics),
                    ("context", vm.context),
                    ("os", vm.os),
                ) if present
            ]
            if inline:
                errors.append(f"template_id conflicts with {', '.join(inline)}")

        if len(vm.disks) > MAX_VM_DISKS:
            errors.append(f"At most {MAX_VM_DISKS} disks are allowed, got {len(vm.disks)}")
        if len(vm.nics) > MAX_VM_NICS:
            errors.append(f"At most {MAX_VM_NICS} NICs are allowed, got {len(vm.nics)}")

        if vm.template_id is None and not vm.nics:
            warnings.append(f"VM {vm.name} has no network interfaces")

    def _validate_vnet(
        self,
        vnet: VNetRecord,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        fresh = vnet.allocation_fields

        if vnet.is_reservation:
            if fresh:
                errors.append(
                    f"reservation_vnet and reservation_size conflict with {', '.join(fresh)}"
                )
            if not _positive(vnet.reservation_vnet):
                errors.append("reservation_vnet must be greater than 0")
            if not _positive(vnet.reservation_size):
                errors.append("reservation_size must be greater than 0")
            return

        if vnet.bridge is None:
            warnings.append(f"VNet {vnet.name} has no bridge")

        if vnet.ip_size is not None and vnet.ip_size <= 0:
            errors.append("ip_size must be greater than 0")

        if vnet.hold_size:
            if vnet.ip_start is None:
                errors.append("hold_size requires ip_start")
            else:
                errors.extend(lease_walk_errors(vnet.ip_start, vnet.hold_size))

    def _validate_secgroup(
        self,
        group: SecurityGroupRecord,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        if not group.rules:
            warnings.append(f"Security group {group.name} has no rules")

        for index, rule in enumerate(group.rules):
            if rule.protocol not in RULE_PROTOCOLS:
                errors.append(
                    f"Rule {index}: invalid protocol {rule.protocol!r}, must be one of "
                    f"{', '.join(RULE_PROTOCOLS)}"
                )
            if rule.rule_type not in RULE_TYPES:
                errors.append(
                    f"Rule {index}: invalid rule type {rule.rule_type!r}, must be one of "
                    f"{', '.join(RULE_TYPES)}"
                )


def _positive(value: Any) -> bool:
    return value is not None and value > 0
