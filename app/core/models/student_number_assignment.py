"""
Assignment ledger: one append-only row per issued student number, recording the
application, the range it was drawn from and who issued it.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from app.db.session import Base


class StudentNumberAssignment(Base):
    __tablename__ = "student_number_assignments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(
        Uuid,
        ForeignKey("applications.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    reference_number = Column(String(50), nullable=False)
    student_number = Column(String(50), nullable=False, unique=True)
    range_id = Column(
        Uuid,
        ForeignKey("student_number_ranges.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    assigned_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
