import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, String, Uuid

from app.db.session import Base


class OfferLetterSettings(Base):
    """Dates printed on offer letters for the current intake. Newest active row wins."""

    __tablename__ = "offer_letter_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    down_payment_due_date = Column(Date, nullable=True)
    total_fees_due_date = Column(Date, nullable=True)
    registration_start_date = Column(Date, nullable=True)
    registration_end_date = Column(Date, nullable=True)
    orientation_start_date = Column(Date, nullable=True)
    orientation_end_date = Column(Date, nullable=True)
    orientation_time = Column(String(50), nullable=True)
    min_applicants_by_date = Column(Date, nullable=True)
    offer_valid_until_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
