from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from pivotflow.allocations.constants import AllocationRole, ConflictType

Percent = Field(..., gt=0, le=100, max_digits=5, decimal_places=2, description="Share of the user's time, 0 < p <= 100")

# --- Commands ---

class AllocationCreateBody(BaseModel):
    """Create payload as posted under /projects/{project_id}/allocations."""
    user_id: str = Field(..., min_length=1)
    role: AllocationRole
    allocation_percent: Decimal = Percent
    start_date: date
    end_date: date
    is_billable: bool = True
    notes: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_date_order(self) -> "AllocationCreateBody":
        if self.end_date < self.start_date:
            raise ValueError("End date must be after or equal to start date")
        return self

class AllocationCreate(AllocationCreateBody):
    project_id: str = Field(..., min_length=1)

class AllocationUpdate(BaseModel):
    role: Optional[AllocationRole] = None
    allocation_percent: Optional[Decimal] = Field(None, gt=0, le=100, max_digits=5, decimal_places=2)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_billable: Optional[bool] = None
    notes: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_patch(self) -> "AllocationUpdate":
        # Columns are NOT NULL; an explicit null can only be a client error
        nulled = sorted(name for name in self.model_fields_set if getattr(self, name) is None)
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be after or equal to start date")
        return self

class AllocationFilters(BaseModel):
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    role: Optional[AllocationRole] = None
    # Allocations starting on or after
    start_date: Optional[date] = None
    # Allocations ending on or before
    end_date: Optional[date] = None
    is_billable: Optional[bool] = None

# --- Responses ---

class AllocationResponse(BaseModel):
    id: str
    organization_id: str
    project_id: str
    project_name: str = ""
    user_id: str
    user_name: str = ""
    role: str
    allocation_percent: float
    start_date: date
    end_date: date
    is_billable: bool
    notes: Dict[str, Any]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AllocationListResponse(BaseModel):
    items: List[AllocationResponse]
    page: int
    page_size: int
    total: int
    total_pages: int

    class Config:
        from_attributes = True

class ConflictingAllocationResponse(BaseModel):
    id: str
    project_id: str
    project_name: str
    role: str
    allocation_percent: float
    start_date: date
    end_date: date
    overlap_start: date
    overlap_end: date
    total_allocation: float

    class Config:
        from_attributes = True

class AllocationConflictResponse(BaseModel):
    user_id: str
    user_name: str
    conflicting_allocations: List[ConflictingAllocationResponse]
    total_allocation: float
    requested_allocation: float
    conflict_type: ConflictType

    class Config:
        from_attributes = True

class CapacitySummaryResponse(BaseModel):
    user_id: str
    user_name: str
    week_start: date
    week_end: date
    planned_hours: float
    actual_hours: float
    planned_percent: float
    actual_percent: float
    variance: float

    class Config:
        from_attributes = True

class WeeklyCapacitySummaryResponse(BaseModel):
    project_id: str
    project_name: str
    week_start: date
    week_end: date
    allocations: List[CapacitySummaryResponse]
    total_planned_hours: float
    total_actual_hours: float
    total_planned_percent: float
    total_actual_percent: float
    total_variance: float

    class Config:
        from_attributes = True
