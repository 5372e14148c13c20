"""Form-style validation for claims and role definitions.

Unlike the codec, these helpers never raise: they return a list of
ValidationIssue so role-management screens can show every problem at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from ..exceptions import ClaimValidationError
from .claims import decode_claim
from .constants import OrganizationalLevel
from .models import Role

ROLE_NAME_MIN_LENGTH = 3
ROLE_NAME_MAX_LENGTH = 100
ROLE_DESCRIPTION_MIN_LENGTH = 10
ROLE_DESCRIPTION_MAX_LENGTH = 500


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str
    code: str


def validate_claim(claim: Any, field: str = "permission") -> list[ValidationIssue]:
    """Validate a claim string. Empty list means valid.

    Example::

        validate_claim("member:view:all")  # []
        validate_claim("member:view")      # [ValidationIssue(code="INVALID_FORMAT", ...)]
    """
    if not claim:
        return [ValidationIssue(field, "Permission claim is required", "REQUIRED")]
    try:
        decode_claim(claim)
    except ClaimValidationError as e:
        return [ValidationIssue(field, e.message, "INVALID_FORMAT")]
    return []


def _length_issue(field: str, label: str, value: str, min_length: int, max_length: int) -> list[ValidationIssue]:
    if len(value) < min_length:
        return [ValidationIssue(field, f"{label} must be at least {min_length} characters", "MIN_LENGTH")]
    if len(value) > max_length:
        return [ValidationIssue(field, f"{label} must not exceed {max_length} characters", "MAX_LENGTH")]
    return []


def validate_role(role: Union[Role, Mapping[str, Any]]) -> list[ValidationIssue]:
    """Validate a role definition before it is saved.

    Accepts a Role or a plain mapping (e.g. a submitted form) with keys
    ``name``, ``description``, ``level`` and ``permissions``.

    Rules:
    - name: required, 3..100 characters
    - description: required, 10..500 characters
    - level: required, a known OrganizationalLevel
    - permissions: each entry a valid claim (issue field ``permissions.<i>``)
    """
    if isinstance(role, Role):
        data: Mapping[str, Any] = {
            "name": role.name,
            "description": role.description,
            "level": role.level,
            "permissions": sorted(str(p) for p in role.permissions),
        }
    else:
        data = role

    issues: list[ValidationIssue] = []

    name = (data.get("name") or "").strip()
    if not name:
        issues.append(ValidationIssue("name", "Role name is required", "REQUIRED"))
    else:
        issues.extend(_length_issue("name", "Role name", name, ROLE_NAME_MIN_LENGTH, ROLE_NAME_MAX_LENGTH))

    description = (data.get("description") or "").strip()
    if not description:
        issues.append(ValidationIssue("description", "Role description is required", "REQUIRED"))
    else:
        issues.extend(
            _length_issue(
                "description",
                "Description",
                description,
                ROLE_DESCRIPTION_MIN_LENGTH,
                ROLE_DESCRIPTION_MAX_LENGTH,
            )
        )

    level = data.get("level")
    if not level:
        issues.append(ValidationIssue("level", "Role level is required", "REQUIRED"))
    else:
        try:
            OrganizationalLevel(level)
        except ValueError:
            issues.append(ValidationIssue("level", f"Unknown role level: {level}", "INVALID_VALUE"))

    for index, permission in enumerate(data.get("permissions") or ()):
        issues.extend(validate_claim(str(permission) if permission else permission, f"permissions.{index}"))

    return issues


__all__ = [
    "ROLE_DESCRIPTION_MAX_LENGTH",
    "ROLE_DESCRIPTION_MIN_LENGTH",
    "ROLE_NAME_MAX_LENGTH",
    "ROLE_NAME_MIN_LENGTH",
    "ValidationIssue",
    "validate_claim",
    "validate_role",
]
