"""
MediCamp Backend - Feedback Routes
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.database import get_db_session
from medicamp.schemas.feedback import FeedbackCreate, FeedbackResponse
from medicamp.security.dependencies import get_current_caller
from medicamp.security.policy import Caller
from medicamp.services.feedback_service import feedback_service

router = APIRouter(prefix="/feedback", tags=["Feedback"])


@router.post("", status_code=201, response_model=FeedbackResponse, summary="Submit feedback")
async def submit_feedback(
    body: FeedbackCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> FeedbackResponse:
    return await feedback_service.submit_feedback(db, body, caller)


@router.get("", response_model=List[FeedbackResponse], summary="Latest feedback")
async def list_feedback(
    camp_id: Optional[uuid.UUID] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db_session),
) -> List[FeedbackResponse]:
    return await feedback_service.list_feedback(db, camp_id=camp_id, limit=limit)
