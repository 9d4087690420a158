"""Data access for members, pending verifications and revoked tokens."""
from datetime import datetime

from sqlalchemy.orm import Session

from memberauth.models.member import Member
from memberauth.models.pending_verification import PendingVerification
from memberauth.models.revoked_token import RevokedToken
from memberauth.services.clock import utcnow


class MemberStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_email(self, email: str) -> Member | None:
        return self.db.query(Member).filter(Member.email == email).first()

    def find_by_id(self, member_id: str) -> Member | None:
        return self.db.get(Member, member_id)

    def save(self, member: Member) -> Member:
        self.db.add(member)
        self.db.flush()
        return member

    def consume_login_challenge(self, member_id: str, otp_hash: str) -> bool:
        """Clear the login OTP only if it is still the one that was checked. False if another request won."""
        cleared = (
            self.db.query(Member)
            .filter(Member.member_id == member_id, Member.otp_hash == otp_hash)
            .update({Member.otp_hash: None, Member.otp_expires_at: None}, synchronize_session="fetch")
        )
        return cleared == 1

    def find_highest_id_with_prefix(self, prefix: str) -> str | None:
        row = (
            self.db.query(Member.member_id)
            .filter(Member.member_id.startswith(prefix, autoescape=True))
            .order_by(Member.member_id.desc())
            .first()
        )
        return row[0] if row else None


class PendingVerificationStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_email(self, email: str) -> PendingVerification | None:
        return self.db.get(PendingVerification, email)

    def save(self, pending: PendingVerification) -> PendingVerification:
        # Keyed by email: replaces any earlier pending signup for the same address
        return self.db.merge(pending)

    def delete(self, pending: PendingVerification) -> None:
        self.db.delete(pending)


class RevocationStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(self, token: str, expires_at: datetime) -> None:
        self.db.merge(RevokedToken(token=token, expires_at=expires_at))

    def exists(self, token: str) -> bool:
        return self.db.query(RevokedToken.token).filter(RevokedToken.token == token).first() is not None

    def delete_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        return self.db.query(RevokedToken).filter(RevokedToken.expires_at < now).delete(synchronize_session=False)
