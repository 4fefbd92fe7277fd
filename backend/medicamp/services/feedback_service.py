"""
MediCamp Backend - Feedback Service

Participants submit ratings for camps; anyone can read them, newest first.
The participant's name and photo come from their stored profile, never from
the request body.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.exceptions import DatabaseError, MediCampError, NotFoundError
from medicamp.models.camp import Camp
from medicamp.models.feedback import Feedback
from medicamp.models.user import User
from medicamp.schemas.feedback import FeedbackCreate, FeedbackResponse
from medicamp.security.policy import Caller, Capability, authorize
from medicamp.security.tokens import normalize_email

logger = logging.getLogger(__name__)


class FeedbackService:

    async def submit_feedback(
        self, db: AsyncSession, data: FeedbackCreate, caller: Caller
    ) -> FeedbackResponse:
        authorize(caller, Capability.AUTHENTICATED)
        email = normalize_email(caller.email)

        try:
            if await db.get(Camp, data.camp_id) is None:
                raise NotFoundError(resource="camp", resource_id=str(data.camp_id))
            user = await db.get(User, email)
            if user is None:
                raise NotFoundError(resource="user", resource_id=email)

            entry = Feedback(
                camp_id=data.camp_id,
                participant_name=user.name or email,
                participant_email=email,
                participant_image=user.photo,
                rating=data.rating,
                feedback=data.feedback,
            )
            db.add(entry)
            await db.flush()
        except MediCampError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error saving feedback: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("Feedback %s (rating %d) for camp %s", entry.id, entry.rating, entry.camp_id)
        return FeedbackResponse.model_validate(entry)

    async def list_feedback(
        self, db: AsyncSession, camp_id: Optional[uuid.UUID] = None, limit: int = 50
    ) -> List[FeedbackResponse]:
        query = select(Feedback).order_by(Feedback.date.desc()).limit(limit)
        if camp_id is not None:
            query = query.where(Feedback.camp_id == camp_id)
        try:
            rows = (await db.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseError(context={"error_type": type(e).__name__})
        return [FeedbackResponse.model_validate(row) for row in rows]


feedback_service = FeedbackService()
