"""
Offer letter issuance, retrieval and public verification.
Issuing a letter flips any previous latest letter of the application to latest=false and
inserts the new row as latest=true, under a row lock on the application.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import offer_letter_pdf
from app.core.config import settings
from app.core.enums import OfferLetterAction
from app.core.exceptions import DependencyFailureError, InvalidArgumentError, InvalidStateError, NotFoundError
from app.core.models import (
    Application,
    OfferLetter,
    OfferLetterSettings,
    PersonalDetails,
    Programme,
    Signature,
)
from app.core.offer_letter_pdf import GeneratedLetter, OfferLetterData
from app.core.verification_code import generate_verification_code, normalize_verification_code

from . import event_service
from .event_service import ClientInfo
from .schemas import (
    OfferLetterEventResponse,
    RegenerateOfferLetterResponse,
    VerifyOfferLetterResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class LetterContext:
    """
    Everything printed on a letter besides the student number and verification code.
    The plain fields are copied from the rows on construction and stay readable after the
    session rolls back and expires the rows.
    """

    application: Application
    personal: Optional[PersonalDetails] = None
    programme: Optional[Programme] = None
    signature: Optional[Signature] = None
    intake: Optional[OfferLetterSettings] = None
    application_id: Optional[UUID] = field(init=False, default=None)
    reference_number: str = field(init=False, default="")
    email: Optional[str] = field(init=False, default=None)
    full_name: str = field(init=False, default="")
    programme_name: str = field(init=False, default="")

    def __post_init__(self) -> None:
        self.application_id = self.application.id
        self.reference_number = self.application.reference_number
        p = self.personal
        if p and p.email:
            self.email = p.email.strip() or None
        if p:
            parts = [p.first_names, p.surname]
            self.full_name = " ".join(s.strip() for s in parts if s and s.strip())
        if self.programme and self.programme.name:
            self.programme_name = self.programme.name
        else:
            self.programme_name = self.application.programme or "your programme"

    def to_letter_data(self, student_number: str, verification_code: str) -> OfferLetterData:
        p, prog, sig, intake = self.personal, self.programme, self.signature, self.intake
        signature_path = None
        if sig and sig.file_path:
            signature_path = str(Path(sig.file_path.lstrip("/")))
        down_payment = prog.down_payment if prog and prog.down_payment is not None else settings.default_down_payment
        return OfferLetterData(
            reference_number=self.reference_number,
            student_number=student_number,
            verification_code=verification_code,
            title=p.title if p else None,
            first_names=p.first_names if p else None,
            surname=p.surname if p else None,
            programme_name=self.programme_name,
            programme_duration=prog.programme_duration if prog else None,
            programme_start_date=prog.prog_start_date if prog else None,
            programme_end_date=prog.prog_end_date if prog else None,
            programme_fee=prog.programme_fee if prog else None,
            down_payment=down_payment,
            down_payment_due_date=intake.down_payment_due_date if intake else None,
            total_fees_due_date=intake.total_fees_due_date if intake else None,
            registration_start_date=intake.registration_start_date if intake else None,
            registration_end_date=intake.registration_end_date if intake else None,
            orientation_start_date=intake.orientation_start_date if intake else None,
            orientation_end_date=intake.orientation_end_date if intake else None,
            orientation_time=intake.orientation_time if intake else None,
            min_applicants_by_date=intake.min_applicants_by_date if intake else None,
            offer_valid_until_date=intake.offer_valid_until_date if intake else None,
            year_of_commencement=self.application.year_of_commencement,
            satellite_campus=self.application.satellite_campus,
            postal_address=p.postal_address if p else None,
            residential_address=p.residential_address if p else None,
            signature_name=sig.name if sig else settings.default_signatory_name,
            signature_title=sig.title if sig else settings.signatory_role,
            signature_file_path=signature_path,
            logo_file_path=settings.offer_letter_logo_path,
        )


@dataclass(frozen=True)
class IssuedLetter:
    """Committed letter values, detached from the session."""

    id: UUID
    application_id: UUID
    file_name: str
    file_path: str
    verification_code: str


@dataclass(frozen=True)
class DownloadableLetter:
    path: Path
    file_name: str


async def get_application_by_reference(db: AsyncSession, reference_number: str) -> Optional[Application]:
    return (await db.execute(
        select(Application).where(Application.reference_number == reference_number)
    )).scalar_one_or_none()


async def load_letter_context(db: AsyncSession, application: Application) -> LetterContext:
    """Applicant details, programme, newest active signature and intake settings for a letter."""
    personal = (await db.execute(
        select(PersonalDetails).where(PersonalDetails.application_id == application.id)
    )).scalar_one_or_none()

    programme = None
    if application.programme:
        programme = (await db.execute(
            select(Programme).where(Programme.code == application.programme)
        )).scalar_one_or_none()

    signature = (await db.execute(
        select(Signature)
        .where(Signature.role == settings.signatory_role, Signature.is_active.is_(True))
        .order_by(Signature.created_at.desc())
        .limit(1)
    )).scalar_one_or_none()

    intake = (await db.execute(
        select(OfferLetterSettings)
        .where(OfferLetterSettings.is_active.is_(True))
        .order_by(OfferLetterSettings.created_at.desc())
        .limit(1)
    )).scalar_one_or_none()

    return LetterContext(
        application=application,
        personal=personal,
        programme=programme,
        signature=signature,
        intake=intake,
    )


async def _render_letter(data: OfferLetterData) -> GeneratedLetter:
    try:
        return await run_in_threadpool(offer_letter_pdf.generate_offer_letter, data)
    except Exception as e:
        logger.exception("Offer letter rendering failed for %s", data.reference_number)
        raise DependencyFailureError("Offer letter generation failed") from e


async def issue_offer_letter(
    db: AsyncSession,
    context: LetterContext,
    student_number: str,
    *,
    generated_by: Optional[UUID] = None,
    client: Optional[ClientInfo] = None,
) -> IssuedLetter:
    """
    Render a new letter and make it the latest one for the application.
    Raises DependencyFailureError when rendering fails; database errors propagate after rollback.
    """
    verification_code = generate_verification_code()
    generated = await _render_letter(context.to_letter_data(student_number, verification_code))

    application_id = context.application_id
    try:
        # Serialize concurrent (re)generations for the same application
        await db.execute(
            select(Application.id).where(Application.id == application_id).with_for_update()
        )
        await db.execute(
            update(OfferLetter)
            .where(OfferLetter.application_id == application_id, OfferLetter.latest.is_(True))
            .values(latest=False)
        )
        letter = OfferLetter(
            application_id=application_id,
            reference_number=context.reference_number,
            student_number=student_number,
            file_name=generated.file_name,
            file_path=generated.public_path,
            verification_code=verification_code,
            generated_by=generated_by,
            latest=True,
            created_at=datetime.utcnow(),
        )
        db.add(letter)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    issued = IssuedLetter(
        id=letter.id,
        application_id=application_id,
        file_name=letter.file_name,
        file_path=letter.file_path,
        verification_code=letter.verification_code,
    )
    logger.info("Offer letter %s issued for %s", issued.file_name, context.reference_number)
    await event_service.log_offer_letter_event(
        db, issued.id, application_id, OfferLetterAction.GENERATED, acted_by=generated_by, client=client
    )
    return issued


async def get_latest_offer_letter(
    db: AsyncSession,
    *,
    reference_number: Optional[str] = None,
    student_number: Optional[str] = None,
    application_id: Optional[UUID] = None,
) -> Optional[OfferLetter]:
    q = select(OfferLetter).where(OfferLetter.latest.is_(True))
    if application_id is not None:
        q = q.where(OfferLetter.application_id == application_id)
    elif reference_number is not None:
        q = q.where(OfferLetter.reference_number == reference_number)
    elif student_number is not None:
        q = q.where(OfferLetter.student_number == student_number)
    else:
        raise InvalidArgumentError("reference_number or student_number is required")
    q = q.order_by(OfferLetter.created_at.desc()).limit(1)
    return (await db.execute(q)).scalar_one_or_none()


async def download_offer_letter(
    db: AsyncSession,
    *,
    reference_number: Optional[str] = None,
    student_number: Optional[str] = None,
    acted_by: Optional[UUID] = None,
    client: Optional[ClientInfo] = None,
) -> DownloadableLetter:
    """Resolve the latest letter file and log a best-effort "downloaded" event."""
    letter = await get_latest_offer_letter(
        db, reference_number=reference_number, student_number=student_number
    )
    if not letter:
        raise NotFoundError("Offer letter not found")
    file_name = letter.file_name
    path = offer_letter_pdf.resolve_letter_path(file_name)
    if not path.is_file():
        logger.error("Offer letter file %s is missing on disk", path)
        raise NotFoundError("Offer letter file not found")

    await event_service.log_offer_letter_event(
        db, letter.id, letter.application_id, OfferLetterAction.DOWNLOADED, acted_by=acted_by, client=client
    )
    return DownloadableLetter(path=path, file_name=file_name)


async def verify_offer_letter(db: AsyncSession, code: str) -> VerifyOfferLetterResponse:
    """Public lookup by verification code."""
    normalized = normalize_verification_code(code)
    if not normalized:
        raise InvalidArgumentError("Verification code is required")

    row = (await db.execute(
        select(OfferLetter, Application.programme)
        .join(Application, Application.id == OfferLetter.application_id)
        .where(OfferLetter.verification_code == normalized)
    )).first()
    if not row:
        raise NotFoundError("Offer letter not found")

    letter, programme = row
    return VerifyOfferLetterResponse(
        valid=True,
        reference_number=letter.reference_number,
        student_number=letter.student_number,
        programme=programme,
        issued_at=letter.created_at,
    )


async def regenerate_offer_letter(
    db: AsyncSession,
    reference_number: str,
    *,
    generated_by: Optional[UUID] = None,
    client: Optional[ClientInfo] = None,
) -> RegenerateOfferLetterResponse:
    """Re-render the letter with current programme/settings data. Never touches the student number."""
    application = await get_application_by_reference(db, reference_number)
    if not application:
        raise NotFoundError("Application not found")
    if not application.student_number:
        raise InvalidStateError("Student number not assigned yet")

    context = await load_letter_context(db, application)
    letter = await issue_offer_letter(
        db, context, application.student_number, generated_by=generated_by, client=client
    )
    return RegenerateOfferLetterResponse(
        message="Offer letter regenerated",
        offer_letter_path=letter.file_path,
        verification_code=letter.verification_code,
    )


async def log_print(
    db: AsyncSession,
    reference_number: str,
    *,
    acted_by: Optional[UUID] = None,
    client: Optional[ClientInfo] = None,
) -> None:
    """Record a "printed" event against the latest letter."""
    letter = await get_latest_offer_letter(db, reference_number=reference_number)
    if not letter:
        raise NotFoundError("Offer letter not found")
    await event_service.record_offer_letter_event(
        db, letter.id, letter.application_id, OfferLetterAction.PRINTED, acted_by=acted_by, client=client
    )


async def list_offer_letter_events(db: AsyncSession, reference_number: str) -> List[OfferLetterEventResponse]:
    application = await get_application_by_reference(db, reference_number)
    if not application:
        raise NotFoundError("Application not found")
    events = await event_service.list_events_for_application(db, application.id)
    return [OfferLetterEventResponse.model_validate(e) for e in events]
