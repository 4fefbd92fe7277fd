"""
MediCamp Backend - Registration Route Handlers
================================================

Participant history plus the organizer's registration administration:
paid registrations listing, confirmation and removal.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.database import get_db_session
from medicamp.schemas.common import AckResponse, ErrorResponse
from medicamp.schemas.registration import (
    ConfirmationUpdate,
    PaidRegistrationPage,
    RegistrationResponse,
    RegistrationWithCamp,
)
from medicamp.security.dependencies import get_current_caller, require
from medicamp.security.policy import Caller, Capability
from medicamp.services.registration_ledger import registration_ledger

router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.get(
    "/participant/{email}",
    response_model=List[RegistrationWithCamp],
    summary="Registrations of one participant with camp details",
)
async def list_by_participant(
    email: str,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> List[RegistrationWithCamp]:
    return await registration_ledger.list_registrations_by_participant(db, email, caller)


@router.get(
    "/paid",
    response_model=PaidRegistrationPage,
    responses={403: {"model": ErrorResponse}},
    summary="Paid registrations with camp details (organizer)",
)
async def list_paid(
    response: Response,
    search: Optional[str] = Query(default=None, max_length=100),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=1, le=100),
    caller: Caller = Depends(require(Capability.ORGANIZER)),
    db: AsyncSession = Depends(get_db_session),
) -> PaidRegistrationPage:
    page = await registration_ledger.list_paid_registrations(
        db, caller, search=search, offset=offset, limit=limit
    )
    response.headers["X-Total-Count"] = str(page.total_count)
    return page


@router.patch(
    "/{registration_id}/confirmation",
    response_model=RegistrationResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Confirm a paid registration (organizer)",
)
async def confirm_registration(
    registration_id: uuid.UUID,
    body: ConfirmationUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> RegistrationResponse:
    return await registration_ledger.confirm_registration(
        db, registration_id, body.participant_email, body.status, caller
    )


@router.delete(
    "/{registration_id}",
    response_model=AckResponse,
    responses={403: {"model": ErrorResponse}},
    summary="Remove a registration (organizer)",
)
async def admin_delete(
    registration_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> AckResponse:
    return await registration_ledger.admin_delete_registration(db, registration_id, caller)
