from enum import Enum


class AllocationRole(str, Enum):
    """Role a user plays on a project for the duration of an allocation."""
    DEVELOPER = "developer"
    DESIGNER = "designer"
    PROJECT_MANAGER = "project_manager"
    BUSINESS_ANALYST = "business_analyst"
    TESTER = "tester"
    DEVOPS = "devops"
    ARCHITECT = "architect"
    CONSULTANT = "consultant"


class ConflictType(str, Enum):
    """Types of allocation conflicts."""
    # Reserved: plain overlap below the limit is not reported today
    OVERLAP = "overlap"
    EXCEEDS_100_PERCENT = "exceeds_100_percent"


class AllocationPermission(str, Enum):
    CREATE = "allocations.create"
    READ = "allocations.read"
    UPDATE = "allocations.update"
    DELETE = "allocations.delete"
    VIEW_CAPACITY = "allocations.view_capacity"


# Audit actions reuse the permission names
AUDIT_ACTION_CREATE = AllocationPermission.CREATE.value
AUDIT_ACTION_UPDATE = AllocationPermission.UPDATE.value
AUDIT_ACTION_DELETE = AllocationPermission.DELETE.value

ENTITY_TYPE = "ResourceAllocation"

# Fields whose change requires a fresh conflict check on update
CONFLICT_RELEVANT_FIELDS = frozenset({"start_date", "end_date", "allocation_percent"})
