from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_roles
from app.auth.schemas import CurrentUser
from app.core.enums import RANGE_ADMIN_ROLES
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .event_service import ClientInfo
from .schemas import (
    AssignStudentNumberRequest,
    AssignStudentNumberResponse,
    MessageResponse,
    OfferLetterEventResponse,
    RegenerateOfferLetterResponse,
    StudentNumberAssignmentResponse,
    StudentNumberRangeCreate,
    StudentNumberRangeResponse,
    VerifyOfferLetterResponse,
)
from . import offer_letter_service, service

router = APIRouter(prefix="/api/v1/student-numbers", tags=["student-numbers"])


def _client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# ----- Ranges -----

@router.post(
    "/range",
    response_model=StudentNumberRangeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_range(
    payload: StudentNumberRangeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*RANGE_ADMIN_ROLES)),
) -> StudentNumberRangeResponse:
    """Create and activate a new student number range. The previously active range is deactivated."""
    try:
        return await service.create_range(db, payload, created_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/range/active", response_model=StudentNumberRangeResponse)
async def get_active_range(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentNumberRangeResponse:
    """Get the currently active student number range."""
    try:
        return await service.get_active_range(db)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/ranges", response_model=List[StudentNumberRangeResponse])
async def list_ranges(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentNumberRangeResponse]:
    """All ranges, newest first, including deactivated and exhausted ones."""
    return await service.list_ranges(db)


@router.get("/assignments", response_model=List[StudentNumberAssignmentResponse])
async def list_assignments(
    range_id: Optional[UUID] = Query(None, description="Only numbers issued from this range"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentNumberAssignmentResponse]:
    """Audit trail of issued student numbers, newest first."""
    return await service.list_assignments(db, range_id=range_id)


# ----- Assignment -----

@router.post("/assign/{reference_number}", response_model=AssignStudentNumberResponse)
async def assign_student_number(
    reference_number: str,
    request: Request,
    payload: Optional[AssignStudentNumberRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AssignStudentNumberResponse:
    """
    Accept an application and assign the next available student number.
    Repeating the call returns the number already assigned. Letter and email failures are
    reported through letter_generated / email_sent and do not undo the assignment.
    """
    try:
        return await service.assign_student_number(
            db,
            reference_number,
            assigned_by=current_user.id,
            accepted_programme=payload.accepted_programme if payload else None,
            client=_client_info(request),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Offer letters -----
# /offer-letter/verify and /offer-letter/student/... must be registered before /offer-letter/{reference_number}

@router.get("/offer-letter/verify", response_model=VerifyOfferLetterResponse)
async def verify_offer_letter(
    code: str = Query("", description="Verification code printed on the letter"),
    db: AsyncSession = Depends(get_db),
) -> VerifyOfferLetterResponse:
    """Verify an offer letter by its verification code. No authentication required."""
    try:
        return await offer_letter_service.verify_offer_letter(db, code)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/offer-letter/student/{student_number}", response_class=FileResponse)
async def download_offer_letter_by_student_number(
    student_number: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FileResponse:
    """Download the latest offer letter by student number."""
    try:
        letter = await offer_letter_service.download_offer_letter(
            db,
            student_number=student_number,
            acted_by=current_user.id,
            client=_client_info(request),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return FileResponse(letter.path, media_type="application/pdf", filename=letter.file_name)


@router.get("/offer-letter/{reference_number}", response_class=FileResponse)
async def download_offer_letter(
    reference_number: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FileResponse:
    """Download the latest offer letter for a reference number."""
    try:
        letter = await offer_letter_service.download_offer_letter(
            db,
            reference_number=reference_number,
            acted_by=current_user.id,
            client=_client_info(request),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return FileResponse(letter.path, media_type="application/pdf", filename=letter.file_name)


@router.get("/offer-letter/{reference_number}/events", response_model=List[OfferLetterEventResponse])
async def list_offer_letter_events(
    reference_number: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[OfferLetterEventResponse]:
    """Generated / downloaded / printed events for an application's letters, oldest first."""
    try:
        return await offer_letter_service.list_offer_letter_events(db, reference_number)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/offer-letter/{reference_number}/print", response_model=MessageResponse)
async def log_offer_letter_print(
    reference_number: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    """Log a print event for the latest offer letter."""
    try:
        await offer_letter_service.log_print(
            db,
            reference_number,
            acted_by=current_user.id,
            client=_client_info(request),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Print event logged")


@router.post("/offer-letter/{reference_number}/regenerate", response_model=RegenerateOfferLetterResponse)
async def regenerate_offer_letter(
    reference_number: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> RegenerateOfferLetterResponse:
    """Regenerate the offer letter using current programme data. The student number is unchanged."""
    try:
        return await offer_letter_service.regenerate_offer_letter(
            db,
            reference_number,
            generated_by=current_user.id,
            client=_client_info(request),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
