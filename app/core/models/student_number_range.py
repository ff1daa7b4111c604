"""
Student number range: prefix + [start_number, end_number], issued in order through the
next_number cursor. At most one row is active; creating a range deactivates the previous one.
Rows are never deleted.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Uuid,
    text,
)

from app.db.session import Base


class StudentNumberRange(Base):
    __tablename__ = "student_number_ranges"
    __table_args__ = (
        CheckConstraint("start_number > 0 AND start_number <= end_number", name="ck_range_bounds"),
        CheckConstraint(
            "next_number >= start_number AND next_number <= end_number + 1",
            name="ck_range_next_within_bounds",
        ),
        # Only one row may carry is_active = true
        Index(
            "uq_student_number_ranges_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active IS TRUE"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    prefix = Column(String(20), nullable=False, default="")
    start_number = Column(BigInteger, nullable=False)
    end_number = Column(BigInteger, nullable=False)
    next_number = Column(BigInteger, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_exhausted(self) -> bool:
        return self.next_number > self.end_number

    @property
    def remaining(self) -> int:
        return max(self.end_number - self.next_number + 1, 0)

    def format_number(self, number: int) -> str:
        return f"{self.prefix}{number}"
