"""
MediCamp Backend - Camp Service
=================================

What:  Camp catalogue: organizer create/update/delete, public listing with
       search, sorting and offset pagination.
How:   Role checks go through the shared authorization policy; any organizer
       may manage any camp. participant_count is never written here; it is
       owned by the registration ledger.
"""

import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.exceptions import DatabaseError, MediCampError, NotFoundError
from medicamp.models.camp import Camp
from medicamp.models.feedback import Feedback
from medicamp.models.registration import Registration
from medicamp.schemas.camp import (
    CampCreate,
    CampListResponse,
    CampResponse,
    CampSort,
    CampUpdate,
)
from medicamp.schemas.common import AckResponse
from medicamp.security.policy import Caller, Capability, authorize

logger = logging.getLogger(__name__)

_SORT_ORDER = {
    CampSort.NEWEST: (Camp.created_at.desc(), Camp.id),
    CampSort.MOST_REGISTERED: (Camp.participant_count.desc(), Camp.created_at.desc()),
    CampSort.FEES_ASC: (Camp.fees.asc(), Camp.name.asc()),
    CampSort.FEES_DESC: (Camp.fees.desc(), Camp.name.asc()),
    CampSort.NAME: (Camp.name.asc(), Camp.id),
}


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


class CampService:

    async def create_camp(self, db: AsyncSession, data: CampCreate, caller: Caller) -> CampResponse:
        authorize(caller, Capability.ORGANIZER)
        camp = Camp(
            **data.model_dump(exclude={"fees"}),
            fees=_to_decimal(data.fees),
            participant_count=0,
            created_by=caller.email,
        )
        try:
            db.add(camp)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating camp: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("Camp %s '%s' created by %s", camp.id, camp.name, caller.email)
        return CampResponse.model_validate(camp)

    async def get_camp(self, db: AsyncSession, camp_id: uuid.UUID) -> CampResponse:
        try:
            camp = await db.get(Camp, camp_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})
        if camp is None:
            raise NotFoundError(resource="camp", resource_id=str(camp_id))
        return CampResponse.model_validate(camp)

    async def update_camp(
        self, db: AsyncSession, camp_id: uuid.UUID, patch: CampUpdate, caller: Caller
    ) -> CampResponse:
        authorize(caller, Capability.ORGANIZER)
        try:
            camp = await db.get(Camp, camp_id, populate_existing=True)
            if camp is None:
                raise NotFoundError(resource="camp", resource_id=str(camp_id))

            for field, value in patch.model_dump(exclude_unset=True).items():
                if value is None:
                    continue
                setattr(camp, field, _to_decimal(value) if field == "fees" else value)
            await db.flush()
            await db.refresh(camp)
        except MediCampError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating camp %s: %s", camp_id, str(e))
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})

        logger.info("Camp %s updated by %s", camp_id, caller.email)
        return CampResponse.model_validate(camp)

    async def delete_camp(self, db: AsyncSession, camp_id: uuid.UUID, caller: Caller) -> AckResponse:
        """Deletes the camp together with its registrations and feedback."""
        authorize(caller, Capability.ORGANIZER)
        try:
            for model in (Registration, Feedback):
                await db.execute(
                    delete(model)
                    .where(model.camp_id == camp_id)
                    .execution_options(synchronize_session=False)
                )
            result = await db.execute(
                delete(Camp)
                .where(Camp.id == camp_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting camp %s: %s", camp_id, str(e))
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})

        if result.rowcount:
            logger.info("Camp %s deleted by %s", camp_id, caller.email)
        return AckResponse(deleted_count=result.rowcount)

    async def list_camps(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        sort: CampSort = CampSort.NEWEST,
        offset: int = 0,
        limit: int = 20,
    ) -> CampListResponse:
        """
        Lists camps matching `search` (case-insensitive substring over name,
        location and healthcare professional).
        """
        conditions = []
        if search:
            conditions.append(
                or_(
                    Camp.name.icontains(search, autoescape=True),
                    Camp.location.icontains(search, autoescape=True),
                    Camp.healthcare_professional.icontains(search, autoescape=True),
                )
            )

        try:
            camps = (
                await db.execute(
                    select(Camp)
                    .where(*conditions)
                    .order_by(*_SORT_ORDER[sort])
                    .offset(offset)
                    .limit(limit)
                    .execution_options(populate_existing=True)
                )
            ).scalars().all()
            total_count = (
                await db.execute(select(func.count(Camp.id)).where(*conditions))
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing camps: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve camps. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return CampListResponse(
            camps=[CampResponse.model_validate(camp) for camp in camps],
            total_count=total_count,
            offset=offset,
            limit=limit,
            has_more=offset + len(camps) < total_count,
        )

    async def popular_camps(self, db: AsyncSession, limit: int = 6) -> List[CampResponse]:
        page = await self.list_camps(db, sort=CampSort.MOST_REGISTERED, limit=limit)
        return page.camps


camp_service = CampService()
