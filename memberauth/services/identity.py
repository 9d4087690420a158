"""
Registration, login and logout driven by one-time passcodes.

Registration: StartRegistration stores a hashed OTP in a pending verification
and emails the code; CompleteRegistration checks it, creates the member and
issues a session token. Login: RequestOtp puts a short-lived login challenge on
the member and emails the code; VerifyOtp consumes it and issues a session
token. Logout revokes a still-valid token.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from memberauth.config import Settings, get_settings
from memberauth.exceptions import (
    Conflict,
    DeliveryFailed,
    Expired,
    InvalidOtp,
    MemberIdUnavailable,
    NotFound,
    NotificationError,
    RateLimited,
    Unauthenticated,
)
from memberauth.models.member import LoginChallenge, Member
from memberauth.models.pending_verification import PendingVerification
from memberauth.services.background import TaskQueue, schedule_best_effort
from memberauth.services.clock import as_utc, utcnow
from memberauth.services.member_id import generate_member_id
from memberauth.services.notifications import Notifier
from memberauth.services.otp import check_otp, generate_otp, hash_otp
from memberauth.services.rate_limiter import RateLimiter
from memberauth.services.stores import MemberStore, PendingVerificationStore, RevocationStore
from memberauth.services.tokens import TokenService

logger = logging.getLogger(__name__)

RATE_WINDOW = timedelta(minutes=15)
SEND_OTP_MAX_REQUESTS = 5
VERIFY_OTP_MAX_REQUESTS = 10
LOGOUT_MAX_REQUESTS = 10
REVOCATION_CEILING = timedelta(hours=24)


@dataclass
class AuthResult:
    token: str
    member: Member


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class IdentityVerificationFlow:
    def __init__(
        self,
        db: Session,
        rate_limiter: RateLimiter,
        tokens: TokenService,
        notifier: Notifier,
        tasks: TaskQueue,
        settings: Settings | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.members = MemberStore(db)
        self.pending = PendingVerificationStore(db)
        self.revocations = RevocationStore(db)
        self.rate_limiter = rate_limiter
        self.tokens = tokens
        self.notifier = notifier
        self.tasks = tasks
        self.settings = settings or get_settings()
        self._now = now

    def _admit(self, key: str, max_requests: int) -> None:
        if not self.rate_limiter.allow(key, max_requests, RATE_WINDOW):
            raise RateLimited(retry_after=int(RATE_WINDOW.total_seconds()))

    # Registration

    def start_registration(self, email: str, full_name: str, contact: str | None, dob: date) -> None:
        email = normalize_email(email)
        if self.members.find_by_email(email):
            raise Conflict("Email already registered")

        otp = generate_otp()
        expires_at = self._now() + timedelta(minutes=self.settings.registration_otp_ttl_minutes)
        pending = self.pending.save(PendingVerification(
            email=email,
            full_name=full_name.strip(),
            contact=contact or None,
            dob=dob,
            otp_hash=hash_otp(otp, self.settings.otp_hash_rounds),
            expires_at=expires_at,
        ))
        self.db.commit()
        logger.info("Registration started for %s (code expires %s)", email, expires_at.isoformat())

        try:
            self.notifier.send_verification_code(email, otp)
        except NotificationError as e:
            logger.error("Verification code not delivered to %s: %s", email, e)
            self.pending.delete(pending)
            self.db.commit()
            raise DeliveryFailed("We could not send the verification email. Please try again.") from e

    def complete_registration(self, email: str, submitted_otp: str) -> AuthResult:
        email = normalize_email(email)
        pending = self.pending.find_by_email(email)
        if pending is None:
            raise NotFound("Registration request not found")

        if as_utc(pending.expires_at) < self._now():
            self.pending.delete(pending)
            self.db.commit()
            logger.info("Registration code expired for %s", email)
            raise Expired("OTP has expired. Please register again.")

        if not check_otp(submitted_otp, pending.otp_hash):
            logger.info("Registration code mismatch for %s", email)
            raise InvalidOtp("Invalid OTP")

        member = self._create_member(pending)
        logger.info("Registration completed for %s as member %s", email, member.member_id)

        schedule_best_effort(
            self.tasks,
            f"welcome email to {member.email}",
            self.notifier.send_welcome,
            member.email,
            member.full_name,
        )
        return AuthResult(token=self.tokens.issue(member.member_id), member=member)

    def _create_member(self, pending: PendingVerification) -> Member:
        """Generate an id and insert the member, retrying when a concurrent signup took the same id."""
        email = pending.email
        attempts = max(1, self.settings.member_id_max_attempts)
        for attempt in range(1, attempts + 1):
            member = Member(
                member_id=generate_member_id(self.members, pending.full_name, pending.dob),
                full_name=pending.full_name,
                email=pending.email,
                contact=pending.contact,
                dob=pending.dob,
            )
            try:
                self.members.save(member)
                self.pending.delete(pending)
                self.db.commit()
                return member
            except IntegrityError:
                self.db.rollback()
                pending = self.pending.find_by_email(email)
                if pending is None:
                    raise NotFound("Registration request not found")
                if self.members.find_by_email(email):
                    raise Conflict("Email already registered")
                logger.warning("Member id %s taken concurrently (attempt %d/%d)", member.member_id, attempt, attempts)
        raise MemberIdUnavailable()

    # Login

    def request_otp(self, email: str) -> None:
        email = normalize_email(email)
        member = self.members.find_by_email(email)
        if member is None:
            raise NotFound("Member not found")
        self._admit(f"send_otp:{email}", SEND_OTP_MAX_REQUESTS)

        otp = generate_otp()
        member.login_challenge = LoginChallenge(
            otp_hash=hash_otp(otp, self.settings.otp_hash_rounds),
            expires_at=self._now() + timedelta(minutes=self.settings.login_otp_ttl_minutes),
        )
        self.db.commit()
        logger.info("Login code issued for member %s", member.member_id)

        try:
            self.notifier.send_login_code(member.email, otp)
        except NotificationError as e:
            logger.error("Login code not delivered to %s: %s", email, e)
            member.login_challenge = None
            self.db.commit()
            raise DeliveryFailed("We could not send the login code. Please try again.") from e

    def verify_otp(self, email: str, submitted_otp: str) -> AuthResult:
        email = normalize_email(email)
        member = self.members.find_by_email(email)
        if member is None:
            raise NotFound("Member not found")
        self._admit(f"verify_otp:{email}", VERIFY_OTP_MAX_REQUESTS)

        challenge = member.login_challenge
        if challenge is None or as_utc(challenge.expires_at) < self._now():
            logger.info("No live login code for member %s", member.member_id)
            raise Expired("OTP has expired")
        if not check_otp(submitted_otp, challenge.otp_hash):
            logger.info("Login code mismatch for member %s", member.member_id)
            raise InvalidOtp("Invalid OTP")

        # Clear before issuing so the same code can never be redeemed twice
        if not self.members.consume_login_challenge(member.member_id, challenge.otp_hash):
            self.db.rollback()
            raise Expired("OTP has expired")
        self.db.commit()
        self.db.refresh(member)
        logger.info("Login completed for member %s", member.member_id)
        return AuthResult(token=self.tokens.issue(member.member_id), member=member)

    # Logout

    def logout(self, token: str | None) -> datetime:
        """Revoke ``token``. Returns when the revocation record may be purged."""
        if not token:
            raise Unauthenticated()
        member_id = self.tokens.extract_subject(token)
        if member_id is None or not self.tokens.validate(token, member_id):
            raise Unauthenticated()
        if self.members.find_by_id(member_id) is None:
            raise Unauthenticated()
        self._admit(f"logout:{member_id}", LOGOUT_MAX_REQUESTS)

        now = self._now()
        ceiling = now + REVOCATION_CEILING
        token_expiry = self.tokens.expires_at(token) or ceiling
        revoke_until = min(token_expiry, ceiling)
        self.revocations.insert(token, revoke_until)
        self.db.commit()
        logger.info("Member %s logged out; token revoked until %s", member_id, revoke_until.isoformat())
        return revoke_until
