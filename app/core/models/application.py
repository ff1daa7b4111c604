"""
Application: created at submission (outside this service). Acceptance status moves
pending -> accepted exactly once, when a student number is issued; student_number is
then set and never cleared.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.core.enums import AcceptanceStatus
from app.db.session import Base


class Application(Base):
    __tablename__ = "applications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reference_number = Column(String(50), nullable=False, unique=True, index=True)
    # Programme code (programmes.code); may be replaced by the accepted programme on assignment
    programme = Column(String(50), nullable=True)
    accepted_status = Column(String(20), nullable=False, default=AcceptanceStatus.PENDING.value)
    student_number = Column(String(50), nullable=True, unique=True)
    year_of_commencement = Column(String(10), nullable=True)
    starting_semester = Column(String(50), nullable=True)
    satellite_campus = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    personal_details = relationship("PersonalDetails", back_populates="application", uselist=False)


class PersonalDetails(Base):
    """Applicant contact details captured on the first step of the application form."""

    __tablename__ = "personal_details"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(
        Uuid,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    title = Column(String(20), nullable=True)
    first_names = Column(String(255), nullable=True)
    surname = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    postal_address = Column(Text, nullable=True)
    residential_address = Column(Text, nullable=True)

    application = relationship("Application", back_populates="personal_details")
