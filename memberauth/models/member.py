"""Members and their transient login challenge."""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Column, String, Date, DateTime
from sqlalchemy.sql import func

from memberauth.database import Base


@dataclass(frozen=True)
class LoginChallenge:
    """A pending login OTP: bcrypt hash plus absolute expiry."""
    otp_hash: str
    expires_at: datetime


class Member(Base):
    __tablename__ = "members"

    member_id = Column(String(16), primary_key=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    contact = Column(String(50), nullable=True)
    dob = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Login OTP only; always read and written together through login_challenge
    otp_hash = Column(String(255), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def login_challenge(self) -> LoginChallenge | None:
        if self.otp_hash is None or self.otp_expires_at is None:
            return None
        return LoginChallenge(self.otp_hash, self.otp_expires_at)

    @login_challenge.setter
    def login_challenge(self, challenge: LoginChallenge | None) -> None:
        if challenge is None:
            self.otp_hash = None
            self.otp_expires_at = None
        else:
            self.otp_hash = challenge.otp_hash
            self.otp_expires_at = challenge.expires_at
