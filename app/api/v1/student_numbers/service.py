"""
Student number ranges and assignment.
Exactly one range is active; numbers are claimed from it in order under row locks on the
application and the range. The claim commits before any letter or email work starts, and
those post-commit steps only ever report failure, they never undo the claim.
"""

import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import notification
from app.core.config import settings
from app.core.enums import AcceptanceStatus
from app.core.exceptions import (
    ConflictError,
    DependencyFailureError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
)
from app.core.models import Application, StudentNumberAssignment, StudentNumberRange
from app.core.offer_letter_pdf import resolve_letter_path

from . import offer_letter_service
from .event_service import ClientInfo
from .offer_letter_service import IssuedLetter, LetterContext
from .schemas import (
    AssignStudentNumberResponse,
    StudentNumberAssignmentResponse,
    StudentNumberRangeCreate,
    StudentNumberRangeResponse,
)

logger = logging.getLogger(__name__)

# A creator that loses the race for the single active slot retries this many times
MAX_RANGE_CREATE_ATTEMPTS = 3

# Statuses from which a number may be issued; "accepted" covers rows accepted before numbering
ASSIGNABLE_STATUSES = (AcceptanceStatus.PENDING.value, AcceptanceStatus.ACCEPTED.value)

EMAIL_ERRORS = (notification.EmailNotConfiguredError, smtplib.SMTPException, OSError, ValueError)


def _range_to_response(r: StudentNumberRange) -> StudentNumberRangeResponse:
    return StudentNumberRangeResponse(
        id=r.id,
        prefix=r.prefix,
        start_number=r.start_number,
        end_number=r.end_number,
        next_number=r.next_number,
        is_active=r.is_active,
        remaining=r.remaining,
        created_by=r.created_by,
        created_at=r.created_at,
        deactivated_at=r.deactivated_at,
    )


# ----- Ranges -----

def _validate_bounds(start_number: int, end_number: int) -> None:
    if start_number <= 0 or end_number <= 0:
        raise InvalidArgumentError("start_number and end_number must be positive integers")
    if start_number > end_number:
        raise InvalidArgumentError("start_number must be <= end_number")


async def create_range(
    db: AsyncSession,
    payload: StudentNumberRangeCreate,
    created_by: Optional[UUID] = None,
) -> StudentNumberRangeResponse:
    """Deactivate the current range and activate a new one in the same transaction."""
    _validate_bounds(payload.start_number, payload.end_number)
    prefix = (payload.prefix or "").strip() or settings.default_range_prefix

    for attempt in range(1, MAX_RANGE_CREATE_ATTEMPTS + 1):
        now = datetime.utcnow()
        try:
            await db.execute(
                update(StudentNumberRange)
                .where(StudentNumberRange.is_active.is_(True))
                .values(is_active=False, deactivated_at=now)
            )
            new_range = StudentNumberRange(
                prefix=prefix,
                start_number=payload.start_number,
                end_number=payload.end_number,
                next_number=payload.start_number,
                is_active=True,
                created_by=created_by,
                created_at=now,
            )
            db.add(new_range)
            await db.commit()
        except IntegrityError:
            # Another creator committed an active range between our deactivate and insert
            await db.rollback()
            logger.warning("Range creation lost the active-range race (attempt %d)", attempt)
            continue

        logger.info(
            "Activated student number range %s: %s%d-%s%d",
            new_range.id,
            prefix,
            new_range.start_number,
            prefix,
            new_range.end_number,
        )
        return _range_to_response(new_range)

    raise ConflictError("Another range was activated concurrently; please retry")


async def get_active_range(db: AsyncSession) -> StudentNumberRangeResponse:
    active = (await db.execute(
        select(StudentNumberRange).where(StudentNumberRange.is_active.is_(True))
    )).scalar_one_or_none()
    if not active:
        raise NotFoundError("No active range found")
    return _range_to_response(active)


async def list_ranges(db: AsyncSession) -> List[StudentNumberRangeResponse]:
    result = await db.execute(
        select(StudentNumberRange).order_by(StudentNumberRange.created_at.desc())
    )
    return [_range_to_response(r) for r in result.scalars().all()]


async def list_assignments(
    db: AsyncSession,
    range_id: Optional[UUID] = None,
) -> List[StudentNumberAssignmentResponse]:
    """Ledger of issued numbers, newest first."""
    q = select(StudentNumberAssignment)
    if range_id is not None:
        q = q.where(StudentNumberAssignment.range_id == range_id)
    q = q.order_by(StudentNumberAssignment.assigned_at.desc())
    result = await db.execute(q)
    return [StudentNumberAssignmentResponse.model_validate(a) for a in result.scalars().all()]


# ----- Claim (atomic) -----

@dataclass(frozen=True)
class Claim:
    application: Application
    student_number: str
    already_assigned: bool
    range_id: Optional[UUID] = None


async def claim_student_number(
    db: AsyncSession,
    reference_number: str,
    assigned_by: Optional[UUID] = None,
    accepted_programme: Optional[str] = None,
) -> Claim:
    """
    Lock the application and the active range, issue prefix + next_number, advance the cursor
    and append a ledger entry, all in one transaction. Re-running on a numbered application
    commits nothing new and returns the existing number.
    """
    try:
        application = (await db.execute(
            select(Application)
            .where(Application.reference_number == reference_number)
            .with_for_update()
        )).scalar_one_or_none()
        if not application:
            raise NotFoundError("Application not found")

        if application.student_number:
            if accepted_programme and accepted_programme != application.programme:
                logger.warning(
                    "Ignoring programme override %r on already numbered application %s (programme %r)",
                    accepted_programme,
                    reference_number,
                    application.programme,
                )
            await db.commit()
            return Claim(
                application=application,
                student_number=application.student_number,
                already_assigned=True,
            )

        if application.accepted_status not in ASSIGNABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot accept an application with status {application.accepted_status}"
            )

        active = (await db.execute(
            select(StudentNumberRange)
            .where(StudentNumberRange.is_active.is_(True))
            .with_for_update()
        )).scalar_one_or_none()
        if not active:
            raise InvalidStateError("No active student number range set")
        if active.is_exhausted:
            raise ConflictError("Student number range exhausted")

        issued = active.next_number
        student_number = active.format_number(issued)

        application.accepted_status = AcceptanceStatus.ACCEPTED.value
        application.student_number = student_number
        if accepted_programme:
            application.programme = accepted_programme
        active.next_number = issued + 1

        db.add(
            StudentNumberAssignment(
                application_id=application.id,
                reference_number=application.reference_number,
                student_number=student_number,
                range_id=active.id,
                assigned_by=assigned_by,
                assigned_at=datetime.utcnow(),
            )
        )
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.error("Student number claim for %s violated a unique constraint: %s", reference_number, e.orig)
        raise ConflictError("Student number already issued; the range cursor is out of sync") from e
    except SQLAlchemyError:
        await db.rollback()
        raise

    logger.info(
        "Assigned student number %s to %s from range %s",
        student_number,
        reference_number,
        active.id,
    )
    return Claim(
        application=application,
        student_number=student_number,
        already_assigned=False,
        range_id=active.id,
    )


# ----- Post-commit side effects (best-effort, each reported on its own) -----

@dataclass
class PostCommitOutcome:
    letter: Optional[IssuedLetter] = None
    email_sent: bool = False

    @property
    def letter_generated(self) -> bool:
        return self.letter is not None


async def _generate_letter_step(
    db: AsyncSession,
    context: LetterContext,
    student_number: str,
    generated_by: Optional[UUID],
    client: Optional[ClientInfo],
) -> Optional[IssuedLetter]:
    try:
        return await offer_letter_service.issue_offer_letter(
            db, context, student_number, generated_by=generated_by, client=client
        )
    except (DependencyFailureError, SQLAlchemyError):
        logger.exception("Offer letter generation failed for %s", context.reference_number)
        return None


async def _email_step(context: LetterContext, student_number: str, letter: Optional[IssuedLetter]) -> bool:
    to_address = context.email
    if not to_address:
        logger.info("No email address for %s; skipping notification", context.reference_number)
        return False

    attachment = resolve_letter_path(letter.file_name) if letter else None
    if attachment is not None and not attachment.is_file():
        attachment = None
    content = notification.acceptance_email(
        context.full_name, context.programme_name, student_number, with_letter=attachment is not None
    )
    try:
        await notification.send_email_async(
            to_address,
            content,
            attachment_path=attachment,
            attachment_name=f"offer-letter-{student_number}.pdf" if attachment else None,
        )
    except EMAIL_ERRORS:
        logger.exception("Student number email to %s failed", to_address)
        return False
    return True


async def run_post_commit_steps(
    db: AsyncSession,
    claim: Claim,
    generated_by: Optional[UUID] = None,
    client: Optional[ClientInfo] = None,
) -> PostCommitOutcome:
    """Letter generation, then email. Each step's failure is logged and folded into the outcome."""
    outcome = PostCommitOutcome()
    reference_number = claim.application.reference_number
    try:
        context = await offer_letter_service.load_letter_context(db, claim.application)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not load letter data for %s", reference_number)
        return outcome

    outcome.letter = await _generate_letter_step(db, context, claim.student_number, generated_by, client)
    outcome.email_sent = await _email_step(context, claim.student_number, outcome.letter)
    return outcome


# ----- Assign (claim + side effects) -----

async def assign_student_number(
    db: AsyncSession,
    reference_number: str,
    assigned_by: Optional[UUID] = None,
    accepted_programme: Optional[str] = None,
    client: Optional[ClientInfo] = None,
) -> AssignStudentNumberResponse:
    """Accept an application and issue its student number; idempotent per application."""
    programme = (accepted_programme or "").strip() or None
    claim = await claim_student_number(db, reference_number, assigned_by, programme)

    if claim.already_assigned:
        latest = await offer_letter_service.get_latest_offer_letter(db, application_id=claim.application.id)
        logger.info("Student number %s already assigned to %s", claim.student_number, reference_number)
        return AssignStudentNumberResponse(
            message="Student number already assigned",
            reference_number=reference_number,
            student_number=claim.student_number,
            already_assigned=True,
            offer_letter_path=latest.file_path if latest else None,
            verification_code=latest.verification_code if latest else None,
        )

    outcome = await run_post_commit_steps(db, claim, generated_by=assigned_by, client=client)
    return AssignStudentNumberResponse(
        message="Student number assigned successfully",
        reference_number=reference_number,
        student_number=claim.student_number,
        already_assigned=False,
        letter_generated=outcome.letter_generated,
        email_sent=outcome.email_sent,
        offer_letter_path=outcome.letter.file_path if outcome.letter else None,
        verification_code=outcome.letter.verification_code if outcome.letter else None,
    )
