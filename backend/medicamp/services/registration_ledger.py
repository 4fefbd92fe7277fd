"""
MediCamp Backend - Registration Ledger
========================================

What:  Owns participant-to-camp registrations: uniqueness, the payment and
       confirmation state machine, and the camp participant counter.
Who:   Called by the camps and registrations routers, and by PaymentService
       to look up the registration being paid for.

State machine:
    (Pending, Pay) ──confirm_payment──▶ (Processing, Paid)
    (Processing, Paid) ──confirm_registration(Confirmed)──▶ (Confirmed, Paid)
    Any state ──withdraw / admin delete──▶ row removed

Invariants:
    - At most one row per (camp_id, participant_email). The unique
      constraint is the only guard: concurrent register() calls race on the
      INSERT, exactly one wins and every other caller gets
      DuplicateRegistrationError.
    - participant_count moves only through single UPDATE statements
      (`participant_count = participant_count ± 1`), never read-modify-write.
      A decrement carries `participant_count >= n` in its WHERE clause.
    - The counter tracks live rows: register() increments it in the same
      transaction as the INSERT and every real deletion decrements it.

Transactions are committed by the caller (get_db_session for HTTP requests).
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.database import violates_unique
from medicamp.exceptions import (
    DatabaseError,
    DuplicateRegistrationError,
    InvalidCountAdjustmentError,
    InvalidTransitionError,
    MediCampError,
    NotFoundError,
    NotRegisteredError,
)
from medicamp.models.camp import Camp
from medicamp.models.registration import ConfirmationStatus, PaymentStatus, Registration
from medicamp.models.user import User
from medicamp.schemas.camp import CampResponse, CountDirection
from medicamp.schemas.common import AckResponse
from medicamp.schemas.registration import (
    PaidRegistrationPage,
    RegistrationCreate,
    RegistrationResponse,
    RegistrationWithCamp,
)
from medicamp.security.policy import Caller, Capability, authorize
from medicamp.security.tokens import normalize_email

logger = logging.getLogger(__name__)


def _joined(registration: Registration, camp: Camp) -> RegistrationWithCamp:
    return RegistrationWithCamp(
        **RegistrationResponse.model_validate(registration).model_dump(),
        camp=CampResponse.model_validate(camp),
    )


class RegistrationLedger:
    """
    Business logic for registrations.

    Error Handling Strategy:
        Domain failures raise their typed exception before any mutation.
        Unexpected SQLAlchemy errors are wrapped in DatabaseError with the
        original error type in the (server-side only) context.
    """

    # ── Counter primitive ─────────────────────────────────────────────────

    async def _shift_count(self, db: AsyncSession, camp_id: uuid.UUID, delta: int) -> int:
        """
        Atomically moves participant_count by delta. Returns the number of
        rows changed: 0 means the camp is missing or a decrement hit zero.
        """
        statement = (
            update(Camp)
            .where(Camp.id == camp_id)
            .values(participant_count=Camp.participant_count + delta)
            .execution_options(synchronize_session=False)
        )
        if delta < 0:
            statement = statement.where(Camp.participant_count >= -delta)
        result = await db.execute(statement)
        return result.rowcount

    async def _own_registration(
        self, db: AsyncSession, camp_id: uuid.UUID, email: str
    ) -> Optional[Registration]:
        result = await db.execute(
            select(Registration)
            .where(
                Registration.camp_id == camp_id,
                Registration.participant_email == email,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # ── Register ──────────────────────────────────────────────────────────

    async def register(
        self,
        db: AsyncSession,
        camp_id: uuid.UUID,
        participant_email: str,
        details: RegistrationCreate,
        caller: Caller,
    ) -> RegistrationResponse:
        """
        Creates a (Pending, Pay) registration and counts the participant.

        Raises:
            ForbiddenError: caller is not the participant being registered.
            NotFoundError: camp or participant profile does not exist.
            DuplicateRegistrationError: a registration for the pair exists.
        """
        authorize(caller, Capability.SELF_OWNER, owner_email=participant_email)
        email = normalize_email(participant_email)

        try:
            if await db.get(Camp, camp_id) is None:
                raise NotFoundError(resource="camp", resource_id=str(camp_id))
            if await db.get(User, email) is None:
                raise NotFoundError(resource="user", resource_id=email)

            registration = Registration(
                camp_id=camp_id,
                participant_email=email,
                confirmation_status=ConfirmationStatus.PENDING.value,
                payment_status=PaymentStatus.PAY.value,
                **details.model_dump(include=set(RegistrationCreate.model_fields)),
            )
            try:
                async with db.begin_nested():
                    db.add(registration)
            except IntegrityError as e:
                if not violates_unique(
                    e, "uq_registrations_camp_participant", "registrations", "camp_id", "participant_email"
                ):
                    raise
                logger.info("Duplicate registration rejected: camp=%s email=%s", camp_id, email)
                raise DuplicateRegistrationError(str(camp_id), email)

            await self._shift_count(db, camp_id, +1)
            logger.info("Registration %s created for camp %s", registration.id, camp_id)
            return RegistrationResponse.model_validate(registration)

        except MediCampError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error registering for camp %s: %s", camp_id, str(e))
            raise DatabaseError(
                message="Could not complete the registration. Please try again.",
                context={"camp_id": str(camp_id), "error_type": type(e).__name__},
            )

    # ── Payment confirmation ──────────────────────────────────────────────

    async def get_own_registration(
        self, db: AsyncSession, camp_id: uuid.UUID, caller: Caller
    ) -> RegistrationResponse:
        authorize(caller, Capability.AUTHENTICATED)
        try:
            registration = await self._own_registration(db, camp_id, normalize_email(caller.email))
        except SQLAlchemyError as e:
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})
        if registration is None:
            raise NotRegisteredError(str(camp_id))
        return RegistrationResponse.model_validate(registration)

    async def confirm_payment(
        self,
        db: AsyncSession,
        camp_id: uuid.UUID,
        caller: Caller,
        transaction_id: Optional[str] = None,
    ) -> RegistrationResponse:
        """
        Moves the caller's own registration to (Processing, Paid).

        Idempotent: a registration that is already Paid (including one an
        organizer has since Confirmed) is returned unchanged.

        Raises:
            NotRegisteredError: the caller has no registration for the camp.
        """
        authorize(caller, Capability.AUTHENTICATED)
        email = normalize_email(caller.email)

        try:
            values = {
                "confirmation_status": ConfirmationStatus.PROCESSING.value,
                "payment_status": PaymentStatus.PAID.value,
            }
            if transaction_id:
                values["transaction_id"] = transaction_id

            result = await db.execute(
                update(Registration)
                .where(
                    Registration.camp_id == camp_id,
                    Registration.participant_email == email,
                    Registration.payment_status == PaymentStatus.PAY.value,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            registration = await self._own_registration(db, camp_id, email)
        except SQLAlchemyError as e:
            logger.error("Database error confirming payment for camp %s: %s", camp_id, str(e))
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})

        if registration is None:
            raise NotRegisteredError(str(camp_id))

        if result.rowcount:
            logger.info("Payment confirmed for registration %s", registration.id)
        else:
            logger.debug("Registration %s already paid; nothing to do", registration.id)
        return RegistrationResponse.model_validate(registration)

    # ── Organizer confirmation ────────────────────────────────────────────

    async def confirm_registration(
        self,
        db: AsyncSession,
        registration_id: uuid.UUID,
        participant_email: str,
        target_status: str,
        caller: Caller,
    ) -> RegistrationResponse:
        """
        Organizer moves a paid registration to Confirmed.

        Only the target `Confirmed` is supported; any other target is rejected
        with InvalidTransitionError and leaves the row untouched. An unpaid
        (Pending) registration cannot be confirmed. Confirming an already
        Confirmed registration is a no-op.

        Raises:
            ForbiddenError: caller is not an organizer.
            NotFoundError: no registration matches both id and email.
            InvalidTransitionError: unsupported target or unpaid registration.
        """
        authorize(caller, Capability.ORGANIZER)
        email = normalize_email(participant_email)

        try:
            result = await db.execute(
                select(Registration)
                .where(
                    Registration.id == registration_id,
                    Registration.participant_email == email,
                )
                .execution_options(populate_existing=True)
            )
            registration = result.scalar_one_or_none()
            if registration is None:
                raise NotFoundError(resource="registration", resource_id=str(registration_id))

            current = registration.confirmation_status
            if target_status != ConfirmationStatus.CONFIRMED.value:
                raise InvalidTransitionError(current=current, target=target_status)
            if current == ConfirmationStatus.CONFIRMED.value:
                return RegistrationResponse.model_validate(registration)
            if current != ConfirmationStatus.PROCESSING.value:
                raise InvalidTransitionError(current=current, target=target_status)

            await db.execute(
                update(Registration)
                .where(
                    Registration.id == registration_id,
                    Registration.confirmation_status == ConfirmationStatus.PROCESSING.value,
                )
                .values(confirmation_status=ConfirmationStatus.CONFIRMED.value)
                .execution_options(synchronize_session=False)
            )
            await db.refresh(registration)
            logger.info("Registration %s confirmed by %s", registration_id, caller.email)
            return RegistrationResponse.model_validate(registration)

        except MediCampError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error confirming registration %s: %s", registration_id, str(e))
            raise DatabaseError(
                context={"registration_id": str(registration_id), "error_type": type(e).__name__}
            )

    # ── Counter adjustment ────────────────────────────────────────────────

    async def adjust_participant_count(
        self,
        db: AsyncSession,
        camp_id: uuid.UUID,
        direction: CountDirection,
        caller: Caller,
    ) -> CampResponse:
        """
        Atomically increments or decrements a camp's participant_count by one.

        Decrementing at zero is refused with InvalidCountAdjustmentError; the
        count never goes negative.
        """
        authorize(caller, Capability.AUTHENTICATED)
        delta = 1 if direction == CountDirection.INCREASE else -1

        try:
            changed = await self._shift_count(db, camp_id, delta)
            camp = await db.get(Camp, camp_id, populate_existing=True)
        except SQLAlchemyError as e:
            logger.error("Database error adjusting count for camp %s: %s", camp_id, str(e))
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})

        if camp is None:
            raise NotFoundError(resource="camp", resource_id=str(camp_id))
        if not changed:
            raise InvalidCountAdjustmentError(str(camp_id), direction.value)

        logger.info(
            "Camp %s participant_count %s to %d by %s",
            camp_id, direction.value, camp.participant_count, caller.email,
        )
        return CampResponse.model_validate(camp)

    # ── Deletion ──────────────────────────────────────────────────────────

    async def withdraw_registration(
        self, db: AsyncSession, camp_id: uuid.UUID, caller: Caller
    ) -> AckResponse:
        """Deletes the caller's own registration; deleted_count 0 if none existed."""
        authorize(caller, Capability.AUTHENTICATED)
        email = normalize_email(caller.email)

        try:
            result = await db.execute(
                delete(Registration)
                .where(
                    Registration.camp_id == camp_id,
                    Registration.participant_email == email,
                )
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount
            if deleted:
                await self._shift_count(db, camp_id, -deleted)
        except SQLAlchemyError as e:
            logger.error("Database error withdrawing from camp %s: %s", camp_id, str(e))
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})

        if deleted:
            logger.info("%s withdrew from camp %s", email, camp_id)
        return AckResponse(deleted_count=deleted)

    async def admin_delete_registration(
        self, db: AsyncSession, registration_id: uuid.UUID, caller: Caller
    ) -> AckResponse:
        """Organizer removes any registration by id; deleted_count 0 if absent."""
        authorize(caller, Capability.ORGANIZER)

        try:
            camp_id = (
                await db.execute(
                    select(Registration.camp_id).where(Registration.id == registration_id)
                )
            ).scalar_one_or_none()
            if camp_id is None:
                return AckResponse(deleted_count=0)

            result = await db.execute(
                delete(Registration)
                .where(Registration.id == registration_id)
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount
            if deleted:
                await self._shift_count(db, camp_id, -deleted)
        except SQLAlchemyError as e:
            logger.error("Database error deleting registration %s: %s", registration_id, str(e))
            raise DatabaseError(
                context={"registration_id": str(registration_id), "error_type": type(e).__name__}
            )

        logger.info("Registration %s removed by organizer %s", registration_id, caller.email)
        return AckResponse(deleted_count=deleted)

    # ── Listings ──────────────────────────────────────────────────────────

    async def list_paid_registrations(
        self,
        db: AsyncSession,
        caller: Caller,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> PaidRegistrationPage:
        """
        Paid registrations joined with their camp, newest first.

        `search` is a case-insensitive substring matched against the
        participant name OR the confirmation status. Order is
        (created_at DESC, id DESC) so pages are stable.
        """
        authorize(caller, Capability.ORGANIZER)

        conditions = [Registration.payment_status == PaymentStatus.PAID.value]
        if search:
            conditions.append(
                or_(
                    Registration.participant_name.icontains(search, autoescape=True),
                    Registration.confirmation_status.icontains(search, autoescape=True),
                )
            )

        try:
            rows = (
                await db.execute(
                    select(Registration, Camp)
                    .join(Camp, Camp.id == Registration.camp_id)
                    .where(*conditions)
                    .order_by(Registration.created_at.desc(), Registration.id.desc())
                    .offset(offset)
                    .limit(limit)
                )
            ).all()
            total_count = (
                await db.execute(
                    select(func.count())
                    .select_from(Registration)
                    .join(Camp, Camp.id == Registration.camp_id)
                    .where(*conditions)
                )
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing paid registrations: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve registrations. Please try again.",
                context={"error_type": type(e).__name__},
            )

        items = [_joined(registration, camp) for registration, camp in rows]
        return PaidRegistrationPage(
            items=items,
            total_count=total_count,
            offset=offset,
            limit=limit,
            has_more=offset + len(items) < total_count,
        )

    async def list_registrations_by_participant(
        self, db: AsyncSession, participant_email: str, caller: Caller
    ) -> List[RegistrationWithCamp]:
        """All registrations of one participant joined with camp details."""
        authorize(
            caller,
            Capability.SELF_OWNER,
            Capability.ORGANIZER,
            owner_email=participant_email,
        )
        email = normalize_email(participant_email)

        try:
            rows = (
                await db.execute(
                    select(Registration, Camp)
                    .join(Camp, Camp.id == Registration.camp_id)
                    .where(Registration.participant_email == email)
                    .order_by(Registration.created_at.desc())
                )
            ).all()
        except SQLAlchemyError as e:
            logger.error("Database error listing registrations for %s: %s", email, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        return [_joined(registration, camp) for registration, camp in rows]


registration_ledger = RegistrationLedger()
