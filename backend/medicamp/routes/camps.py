"""
MediCamp Backend - Camp Route Handlers
========================================

Catalogue reads are public. Camp management is organizer-only. The
participant-facing registration lifecycle for a camp (register, withdraw,
confirm payment) hangs off /camps/{camp_id}/registrations.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.database import get_db_session
from medicamp.schemas.camp import (
    CampCreate,
    CampListResponse,
    CampResponse,
    CampSort,
    CampUpdate,
    ParticipantCountUpdate,
)
from medicamp.schemas.common import AckResponse, ErrorResponse
from medicamp.schemas.feedback import FeedbackResponse
from medicamp.schemas.registration import (
    PaymentConfirmation,
    RegistrationCreate,
    RegistrationRequest,
    RegistrationResponse,
)
from medicamp.security.dependencies import get_current_caller, require
from medicamp.security.policy import Caller, Capability
from medicamp.services.camp_service import camp_service
from medicamp.services.feedback_service import feedback_service
from medicamp.services.registration_ledger import registration_ledger

router = APIRouter(prefix="/camps", tags=["Camps"])


# ── Catalogue ─────────────────────────────────────────────────────────────

@router.get("", response_model=CampListResponse, summary="List camps")
async def list_camps(
    response: Response,
    search: Optional[str] = Query(default=None, max_length=100),
    sort: CampSort = Query(default=CampSort.NEWEST),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> CampListResponse:
    result = await camp_service.list_camps(db, search=search, sort=sort, offset=offset, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get("/popular", response_model=List[CampResponse], summary="Most registered camps")
async def popular_camps(
    limit: int = Query(default=6, ge=1, le=50),
    db: AsyncSession = Depends(get_db_session),
) -> List[CampResponse]:
    return await camp_service.popular_camps(db, limit=limit)


@router.get(
    "/{camp_id}",
    response_model=CampResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Camp details",
)
async def get_camp(camp_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)) -> CampResponse:
    return await camp_service.get_camp(db, camp_id)


@router.get("/{camp_id}/feedback", response_model=List[FeedbackResponse], summary="Camp feedback")
async def camp_feedback(
    camp_id: uuid.UUID,
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db_session),
) -> List[FeedbackResponse]:
    return await feedback_service.list_feedback(db, camp_id=camp_id, limit=limit)


# ── Organizer management ──────────────────────────────────────────────────

@router.post("", status_code=201, response_model=CampResponse, summary="Create a camp")
async def create_camp(
    body: CampCreate,
    caller: Caller = Depends(require(Capability.ORGANIZER)),
    db: AsyncSession = Depends(get_db_session),
) -> CampResponse:
    return await camp_service.create_camp(db, body, caller)


@router.put("/{camp_id}", response_model=CampResponse, summary="Update a camp")
async def update_camp(
    camp_id: uuid.UUID,
    body: CampUpdate,
    caller: Caller = Depends(require(Capability.ORGANIZER)),
    db: AsyncSession = Depends(get_db_session),
) -> CampResponse:
    return await camp_service.update_camp(db, camp_id, body, caller)


@router.delete("/{camp_id}", response_model=AckResponse, summary="Delete a camp")
async def delete_camp(
    camp_id: uuid.UUID,
    caller: Caller = Depends(require(Capability.ORGANIZER)),
    db: AsyncSession = Depends(get_db_session),
) -> AckResponse:
    return await camp_service.delete_camp(db, camp_id, caller)


@router.patch(
    "/{camp_id}/participants",
    response_model=CampResponse,
    responses={409: {"model": ErrorResponse}},
    summary="Adjust the participant counter by one",
)
async def adjust_participants(
    camp_id: uuid.UUID,
    body: ParticipantCountUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> CampResponse:
    return await registration_ledger.adjust_participant_count(db, camp_id, body.direction, caller)


# ── Registration lifecycle ────────────────────────────────────────────────

@router.post(
    "/{camp_id}/registrations",
    status_code=201,
    response_model=RegistrationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Register for a camp",
)
async def register(
    camp_id: uuid.UUID,
    body: RegistrationRequest,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> RegistrationResponse:
    details = RegistrationCreate(**body.model_dump(exclude={"participant_email"}))
    return await registration_ledger.register(db, camp_id, body.participant_email, details, caller)


@router.delete(
    "/{camp_id}/registrations/me",
    response_model=AckResponse,
    summary="Withdraw own registration",
)
async def withdraw(
    camp_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> AckResponse:
    return await registration_ledger.withdraw_registration(db, camp_id, caller)


@router.patch(
    "/{camp_id}/registrations/me/payment",
    response_model=RegistrationResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Confirm payment of own registration",
)
async def confirm_payment(
    camp_id: uuid.UUID,
    body: Optional[PaymentConfirmation] = None,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> RegistrationResponse:
    transaction_id = body.transaction_id if body else None
    return await registration_ledger.confirm_payment(db, camp_id, caller, transaction_id)
