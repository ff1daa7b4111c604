import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Numeric, String, Uuid

from app.db.session import Base


class Programme(Base):
    __tablename__ = "programmes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    programme_duration = Column(String(100), nullable=True)
    prog_start_date = Column(Date, nullable=True)
    prog_end_date = Column(Date, nullable=True)
    programme_fee = Column(Numeric(12, 2), nullable=True)
    down_payment = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
