"""Pending signup data: the member is created only after email verification."""
from sqlalchemy import Column, String, Date, DateTime
from sqlalchemy.sql import func

from memberauth.database import Base


class PendingVerification(Base):
    __tablename__ = "pending_verifications"

    # One pending signup per email; a new registration replaces the old one
    email = Column(String(255), primary_key=True)
    full_name = Column(String(255), nullable=False)
    contact = Column(String(50), nullable=True)
    dob = Column(Date, nullable=False)

    otp_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
