"""Closed vocabularies and static metadata for permission claims.

Provides:
- ``ResourceType`` / ``ActionType`` / ``ScopeType`` — the three claim parts.
- ``RiskLevel`` / ``ActionCategory`` / ``ResourceCategory`` — metadata enums.
- ``RESOURCE_DEFINITIONS`` / ``ACTION_DEFINITIONS`` / ``SCOPE_DEFINITIONS`` —
  lookup tables built once at import time and never mutated.
- ``ORGANIZATIONAL_LEVELS`` — role level → authority rank.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class ResourceType(str, Enum):
    """Things a permission can be granted on."""

    EMPLOYEE = "employee"  # Staff members
    MEMBER = "member"  # Member organizations (districts)
    SERVICE = "service"  # Provided services (internet, phone, ...)
    APPLICATION = "application"  # Software applications
    USER = "user"  # End-user accounts within members
    CONTACT = "contact"  # Contact directory
    FILE = "file"  # Document storage
    WEBSITE = "website"  # Website content
    ANNOUNCEMENT = "announcement"
    FEEDBACK = "feedback"  # Support tickets
    BILLING = "billing"
    REPORT = "report"
    TRAINING = "training"
    EQUIPMENT = "equipment"


class ActionType(str, Enum):
    """Operations on a resource.

    ``view``/``create``/``update``/``delete`` are the basic CRUD set;
    everything else is an advanced action.
    """

    # Basic
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    # Advanced
    APPROVE = "approve"
    REJECT = "reject"
    ASSIGN = "assign"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    IMPERSONATE = "impersonate"
    CONFIGURE = "configure"
    PROVISION = "provision"
    SUSPEND = "suspend"
    RESTORE = "restore"
    AUDIT = "audit"

    @property
    def is_basic(self) -> bool:
        return self in BASIC_ACTIONS


BASIC_ACTIONS = frozenset({ActionType.VIEW, ActionType.CREATE, ActionType.UPDATE, ActionType.DELETE})
ADVANCED_ACTIONS = frozenset(set(ActionType) - BASIC_ACTIONS)


class ScopeType(str, Enum):
    """How far a grant reaches. Ordered by breadth, see SCOPE_DEFINITIONS."""

    NONE = "none"
    OWNED = "owned"
    ASSIGNED = "assigned"
    DISTRICT = "district"
    DEPARTMENT = "department"
    REGION = "region"
    ALL = "all"


class RiskLevel(str, Enum):
    """Security risk band. ``rank`` gives the total order."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def from_rank(cls, rank: int) -> RiskLevel:
        for level, value in _RISK_RANK.items():
            if value == rank:
                return level
        raise ValueError(f"No risk level with rank {rank}")


_RISK_RANK = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class ActionCategory(str, Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"
    SPECIAL = "special"


class ResourceCategory(str, Enum):
    CORE = "core"
    SERVICE = "service"
    ADMINISTRATIVE = "administrative"
    TECHNICAL = "technical"


class OrganizationalLevel(str, Enum):
    """Organizational level a role is defined at."""

    HELPDESK = "helpdesk"
    SUPPORT = "support"
    SPECIALIST = "specialist"
    MANAGER = "manager"
    DIRECTOR = "director"
    EXECUTIVE = "executive"


# ── Metadata records ────────────────────────────────────


@dataclass(frozen=True)
class ResourceDefinition:
    label: str
    description: str
    category: ResourceCategory
    default_scopes: frozenset[ScopeType]
    risk_level: RiskLevel


@dataclass(frozen=True)
class ActionDefinition:
    label: str
    description: str
    risk_level: RiskLevel
    category: ActionCategory


@dataclass(frozen=True)
class ScopeDefinition:
    label: str
    description: str
    level: int  # Higher = broader


def _resource(
    label: str,
    description: str,
    category: ResourceCategory,
    scopes: tuple[ScopeType, ...],
    risk: RiskLevel,
) -> ResourceDefinition:
    return ResourceDefinition(label, description, category, frozenset(scopes), risk)


_S = ScopeType

RESOURCE_DEFINITIONS: Mapping[ResourceType, ResourceDefinition] = MappingProxyType(
    {
        ResourceType.EMPLOYEE: _resource(
            "Employee Management", "Staff and employee records",
            ResourceCategory.CORE, (_S.ALL, _S.DEPARTMENT, _S.ASSIGNED, _S.OWNED), RiskLevel.HIGH,
        ),
        ResourceType.MEMBER: _resource(
            "Member Districts", "School districts and member organizations",
            ResourceCategory.CORE, (_S.ALL, _S.REGION, _S.ASSIGNED), RiskLevel.MEDIUM,
        ),
        ResourceType.SERVICE: _resource(
            "Services", "Internet, phone, networking, and technical services",
            ResourceCategory.SERVICE, (_S.ALL, _S.ASSIGNED), RiskLevel.HIGH,
        ),
        ResourceType.APPLICATION: _resource(
            "Software Applications", "Educational and administrative applications",
            ResourceCategory.TECHNICAL, (_S.ALL, _S.ASSIGNED), RiskLevel.MEDIUM,
        ),
        ResourceType.USER: _resource(
            "User Accounts", "End user accounts within member districts",
            ResourceCategory.ADMINISTRATIVE, (_S.ALL, _S.DISTRICT, _S.ASSIGNED), RiskLevel.MEDIUM,
        ),
        ResourceType.CONTACT: _resource(
            "Contact Directory", "Contact information and organizational directory",
            ResourceCategory.ADMINISTRATIVE, (_S.ALL, _S.DISTRICT), RiskLevel.LOW,
        ),
        ResourceType.FILE: _resource(
            "File Management", "Document storage and file sharing",
            ResourceCategory.TECHNICAL, (_S.ALL, _S.DEPARTMENT, _S.ASSIGNED, _S.OWNED), RiskLevel.MEDIUM,
        ),
        ResourceType.WEBSITE: _resource(
            "Website Content", "Public and internal website management",
            ResourceCategory.ADMINISTRATIVE, (_S.ALL,), RiskLevel.MEDIUM,
        ),
        ResourceType.ANNOUNCEMENT: _resource(
            "Announcements", "Public and internal announcements",
            ResourceCategory.ADMINISTRATIVE, (_S.ALL, _S.DISTRICT), RiskLevel.LOW,
        ),
        ResourceType.FEEDBACK: _resource(
            "Support Tickets", "User feedback and support ticket system",
            ResourceCategory.SERVICE, (_S.ALL, _S.ASSIGNED), RiskLevel.LOW,
        ),
        ResourceType.BILLING: _resource(
            "Billing & Finance", "Financial records and billing information",
            ResourceCategory.ADMINISTRATIVE, (_S.ALL, _S.DISTRICT), RiskLevel.CRITICAL,
        ),
        ResourceType.REPORT: _resource(
            "Reports & Analytics", "System reports and data analytics",
            ResourceCategory.ADMINISTRATIVE, (_S.ALL, _S.DEPARTMENT, _S.ASSIGNED), RiskLevel.MEDIUM,
        ),
        ResourceType.TRAINING: _resource(
            "Training Materials", "Educational content and training resources",
            ResourceCategory.SERVICE, (_S.ALL,), RiskLevel.LOW,
        ),
        ResourceType.EQUIPMENT: _resource(
            "Equipment Management", "Hardware inventory and equipment tracking",
            ResourceCategory.TECHNICAL, (_S.ALL, _S.ASSIGNED), RiskLevel.MEDIUM,
        ),
    }
)

_A = ActionCategory

ACTION_DEFINITIONS: Mapping[ActionType, ActionDefinition] = MappingProxyType(
    {
        ActionType.VIEW: ActionDefinition("View", "Read access to view information", RiskLevel.LOW, _A.READ),
        ActionType.CREATE: ActionDefinition("Create", "Create new records or resources", RiskLevel.MEDIUM, _A.WRITE),
        ActionType.UPDATE: ActionDefinition("Update", "Modify existing records", RiskLevel.MEDIUM, _A.WRITE),
        ActionType.DELETE: ActionDefinition("Delete", "Remove records permanently", RiskLevel.CRITICAL, _A.ADMIN),
        ActionType.APPROVE: ActionDefinition("Approve", "Approve requests or changes", RiskLevel.HIGH, _A.ADMIN),
        ActionType.REJECT: ActionDefinition("Reject", "Reject requests or changes", RiskLevel.MEDIUM, _A.ADMIN),
        ActionType.ASSIGN: ActionDefinition("Assign", "Assign resources to users or groups", RiskLevel.MEDIUM, _A.ADMIN),
        ActionType.PUBLISH: ActionDefinition("Publish", "Make content publicly available", RiskLevel.MEDIUM, _A.WRITE),
        ActionType.UNPUBLISH: ActionDefinition("Unpublish", "Remove content from public view", RiskLevel.MEDIUM, _A.WRITE),
        ActionType.DOWNLOAD: ActionDefinition("Download", "Download files or export data", RiskLevel.LOW, _A.READ),
        ActionType.UPLOAD: ActionDefinition("Upload", "Upload files or import data", RiskLevel.MEDIUM, _A.WRITE),
        ActionType.IMPERSONATE: ActionDefinition(
            "Impersonate", "Act on behalf of another user", RiskLevel.CRITICAL, _A.SPECIAL
        ),
        ActionType.CONFIGURE: ActionDefinition("Configure", "Modify system settings", RiskLevel.HIGH, _A.ADMIN),
        ActionType.PROVISION: ActionDefinition("Provision", "Deploy or provision new services", RiskLevel.HIGH, _A.ADMIN),
        ActionType.SUSPEND: ActionDefinition("Suspend", "Temporarily disable services or accounts", RiskLevel.HIGH, _A.ADMIN),
        ActionType.RESTORE: ActionDefinition("Restore", "Restore suspended services or accounts", RiskLevel.HIGH, _A.ADMIN),
        ActionType.AUDIT: ActionDefinition("Audit", "Access audit logs and security reports", RiskLevel.MEDIUM, _A.READ),
    }
)

SCOPE_DEFINITIONS: Mapping[ScopeType, ScopeDefinition] = MappingProxyType(
    {
        ScopeType.NONE: ScopeDefinition("No Access", "No access to any resources", 0),
        ScopeType.OWNED: ScopeDefinition("Owned Only", "Only resources owned by the user", 1),
        ScopeType.ASSIGNED: ScopeDefinition("Assigned", "Only resources assigned to the user", 2),
        ScopeType.DISTRICT: ScopeDefinition("District", "Resources within the user's district", 3),
        ScopeType.DEPARTMENT: ScopeDefinition("Department", "Resources within the user's department", 4),
        ScopeType.REGION: ScopeDefinition("Region", "Resources within the user's region", 5),
        ScopeType.ALL: ScopeDefinition("All", "All resources of this type", 6),
    }
)

ORGANIZATIONAL_LEVELS: Mapping[OrganizationalLevel, int] = MappingProxyType(
    {
        OrganizationalLevel.HELPDESK: 1,
        OrganizationalLevel.SUPPORT: 2,
        OrganizationalLevel.SPECIALIST: 3,
        OrganizationalLevel.MANAGER: 4,
        OrganizationalLevel.DIRECTOR: 5,
        OrganizationalLevel.EXECUTIVE: 6,
    }
)


__all__ = [
    "ACTION_DEFINITIONS",
    "ADVANCED_ACTIONS",
    "BASIC_ACTIONS",
    "ORGANIZATIONAL_LEVELS",
    "RESOURCE_DEFINITIONS",
    "SCOPE_DEFINITIONS",
    "ActionCategory",
    "ActionDefinition",
    "ActionType",
    "OrganizationalLevel",
    "ResourceCategory",
    "ResourceDefinition",
    "ResourceType",
    "RiskLevel",
    "ScopeDefinition",
    "ScopeType",
]
