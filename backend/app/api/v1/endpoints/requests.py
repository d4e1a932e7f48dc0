"""
Worker request API endpoints.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.api.v1.middleware import require_authentication
from app.controllers.request_controller import RequestController
from app.models.employee import Employee
from app.models.request_common import RequestFamily, RequestStatus
from app.schemas.request import (
    AttachmentsAdd,
    CancelRequest,
    MyRequestsResponse,
    RemarksAdd,
    RequestCreatedResponse,
    RequestResponse,
    RequestStatusResponse,
)

router = APIRouter()


@router.get("/my", response_model=MyRequestsResponse)
async def list_all_my_requests(
    family: Optional[RequestFamily] = Query(None, alias="type"),
    status: Optional[RequestStatus] = Query(None),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> MyRequestsResponse:
    """List the caller's requests across all families."""
    controller = RequestController(db)
    return await controller.list_all_my_requests(
        current_employee,
        family=family,
        status=status,
        from_date=from_date,
        to_date=to_date,
        limit=limit,
        offset=offset,
    )


@router.get("/my/{request_id}", response_model=RequestResponse)
async def get_my_request(
    request_id: int,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the caller's requests."""
    controller = RequestController(db)
    return await controller.get_my_request(current_employee, request_id)


@router.post("/{request_id}/cancel", response_model=RequestStatusResponse)
async def cancel_request(
    request_id: int,
    body: Optional[CancelRequest] = None,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> RequestStatusResponse:
    """Cancel one of the caller's pending requests."""
    controller = RequestController(db)
    return await controller.cancel_request(current_employee, request_id, body or CancelRequest())


@router.post("/{family}", response_model=RequestCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    family: RequestFamily,
    payload: Dict[str, Any] = Body(...),
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> RequestCreatedResponse:
    """Submit a request. The body is validated against the family's schema."""
    controller = RequestController(db)
    return await controller.create_request(family, current_employee, payload)


@router.get("/{family}/my", response_model=List[RequestResponse])
async def list_my_requests(
    family: RequestFamily,
    status: Optional[RequestStatus] = Query(None),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's requests of one family, newest first."""
    controller = RequestController(db)
    return await controller.list_my_requests(
        family, current_employee, status=status, from_date=from_date, to_date=to_date
    )


@router.post("/{family}/{request_id}/attachments", response_model=RequestResponse)
async def attach_files(
    family: RequestFamily,
    request_id: int,
    body: AttachmentsAdd,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
):
    """Record stored-file metadata on a pending request."""
    controller = RequestController(db)
    return await controller.attach_files(family, request_id, current_employee, body)


@router.post("/{family}/{request_id}/remarks", response_model=RequestResponse)
async def append_remarks(
    family: RequestFamily,
    request_id: int,
    body: RemarksAdd,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
):
    """Append a remark to a request."""
    controller = RequestController(db)
    return await controller.append_remarks(family, request_id, current_employee, body)
