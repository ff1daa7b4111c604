from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ----- Ranges -----

class StudentNumberRangeCreate(BaseModel):
    """Open a new issuance range. Bounds are checked by the service (positive, start <= end)."""

    prefix: Optional[str] = Field(None, max_length=20, description="Prepended to every number; default from DEFAULT_RANGE_PREFIX")
    start_number: int = Field(..., description="First number to issue")
    end_number: int = Field(..., description="Last number to issue (inclusive)")


class StudentNumberRangeResponse(BaseModel):
    id: UUID
    prefix: str
    start_number: int
    end_number: int
    next_number: int
    is_active: bool
    remaining: int
    created_by: Optional[UUID] = None
    created_at: datetime
    deactivated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentNumberAssignmentResponse(BaseModel):
    id: UUID
    application_id: UUID
    reference_number: str
    student_number: str
    range_id: UUID
    assigned_by: Optional[UUID] = None
    assigned_at: datetime

    class Config:
        from_attributes = True


# ----- Assignment -----

class AssignStudentNumberRequest(BaseModel):
    accepted_programme: Optional[str] = Field(
        None,
        max_length=50,
        description="Programme code to accept the applicant into; defaults to the applied programme",
    )


class AssignStudentNumberResponse(BaseModel):
    """
    Number issuance outcome. letter_generated and email_sent describe this call only: on a
    replay (already_assigned=true) both are false, while offer_letter_path and
    verification_code point at the existing latest letter, if any.
    """

    message: str
    reference_number: str
    student_number: str
    already_assigned: bool = False
    letter_generated: bool = False
    email_sent: bool = False
    offer_letter_path: Optional[str] = None
    verification_code: Optional[str] = None


# ----- Offer letters -----

class RegenerateOfferLetterResponse(BaseModel):
    message: str
    offer_letter_path: str
    verification_code: str


class VerifyOfferLetterResponse(BaseModel):
    """Public verification payload: only what confirms the letter is authentic."""

    valid: bool
    reference_number: str
    student_number: str
    programme: Optional[str] = None
    issued_at: datetime


class OfferLetterEventResponse(BaseModel):
    id: UUID
    offer_letter_id: UUID
    application_id: UUID
    action: str
    acted_by: Optional[UUID] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str
