"""
Offer letters and their lifecycle events. Each (re)generation inserts a new letter row and
flips the previous latest row to latest=false; rows are never deleted. Events are append-only.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid

from app.db.session import Base


class OfferLetter(Base):
    __tablename__ = "offer_letters"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(Uuid, ForeignKey("applications.id", ondelete="RESTRICT"), nullable=False, index=True)
    reference_number = Column(String(50), nullable=False, index=True)
    student_number = Column(String(50), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    verification_code = Column(String(64), nullable=False, unique=True)
    generated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    latest = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class OfferLetterEvent(Base):
    __tablename__ = "offer_letter_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    offer_letter_id = Column(Uuid, ForeignKey("offer_letters.id", ondelete="CASCADE"), nullable=False, index=True)
    application_id = Column(Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    # generated | downloaded | printed
    action = Column(String(20), nullable=False)
    # Null for anonymous callers
    acted_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
