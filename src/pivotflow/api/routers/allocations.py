"""
Router for resource allocation endpoints.

Failures raised by the allocation service (permission, not found, conflict,
validation) are turned into responses by the handlers registered in api.main.
"""

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from pivotflow.allocations import schemas
from pivotflow.allocations.constants import AllocationRole
from pivotflow.allocations.service import AllocationService
from pivotflow.api.dependencies import get_allocation_service
from pivotflow.platform.config import settings

router = APIRouter()


@router.post(
    "/projects/{project_id}/allocations",
    response_model=schemas.AllocationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_allocation(
    project_id: str,
    body: schemas.AllocationCreateBody,
    service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    """
    Create a resource allocation on a project.

    Rejected with 409 and the conflict reports when the user would be committed
    above 100% on any overlapping range.
    """
    payload = schemas.AllocationCreate(project_id=project_id, **body.model_dump())
    return service.create_allocation(payload)


@router.get("/projects/{project_id}/allocations", response_model=schemas.AllocationListResponse)
def list_project_allocations(
    project_id: str,
    service: Annotated[AllocationService, Depends(get_allocation_service)],
    user_id: Optional[str] = None,
    role: Optional[AllocationRole] = None,
    start_date: Optional[date] = Query(None, description="Allocations starting on or after"),
    end_date: Optional[date] = Query(None, description="Allocations ending on or before"),
    is_billable: Optional[bool] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.ALLOCATIONS_PAGE_SIZE, ge=1, le=settings.ALLOCATIONS_MAX_PAGE_SIZE),
):
    """
    List live allocations of a project, oldest first.
    """
    filters = schemas.AllocationFilters(
        project_id=project_id,
        user_id=user_id,
        role=role,
        start_date=start_date,
        end_date=end_date,
        is_billable=is_billable,
    )
    result = service.get_allocations(filters, page=page, page_size=page_size)
    return schemas.AllocationListResponse(
        items=[schemas.AllocationResponse.model_validate(item) for item in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/allocations/{allocation_id}", response_model=schemas.AllocationResponse)
def get_allocation(
    allocation_id: str,
    service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    return service.get_allocation(allocation_id)


@router.patch("/allocations/{allocation_id}", response_model=schemas.AllocationResponse)
def update_allocation(
    allocation_id: str,
    updates: schemas.AllocationUpdate,
    service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    """
    Update an allocation. Changing dates or percentage re-runs the conflict check,
    ignoring the allocation's own current values.
    """
    return service.update_allocation(allocation_id, updates)


@router.delete("/allocations/{allocation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_allocation(
    allocation_id: str,
    service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    """
    Delete (soft delete) an allocation.
    """
    service.delete_allocation(allocation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/projects/{project_id}/capacity", response_model=schemas.WeeklyCapacitySummaryResponse)
def get_project_capacity(
    project_id: str,
    service: Annotated[AllocationService, Depends(get_allocation_service)],
    weeks: int = Query(settings.CAPACITY_DEFAULT_WEEKS, ge=1, le=settings.CAPACITY_MAX_WEEKS),
):
    """
    Planned vs actual hours per user per week over the last `weeks` weeks.
    """
    return service.get_project_capacity(project_id, weeks)
