"""Per-request credential check for protected routes."""
import logging
from dataclasses import dataclass

from memberauth.services.stores import MemberStore, RevocationStore
from memberauth.services.tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, resolved once per request and passed explicitly."""
    member_id: str
    email: str
    token: str


class SessionGate:
    """
    Resolves a presented session token to an :class:`Identity`.

    Never raises: a missing, revoked, malformed, expired or orphaned token
    simply yields ``None`` and the request proceeds unauthenticated. Routes
    that need a caller reject the missing identity themselves.
    """

    def __init__(self, tokens: TokenService, revocations: RevocationStore, members: MemberStore) -> None:
        self.tokens = tokens
        self.revocations = revocations
        self.members = members

    def resolve(self, token: str | None, current: Identity | None = None) -> Identity | None:
        if not token:
            return current
        try:
            if self.revocations.exists(token):
                logger.debug("Revoked session token presented")
                return None
            member_id = self.tokens.extract_subject(token)
            if member_id is None or current is not None:
                return current
            member = self.members.find_by_id(member_id)
            if member is None or not self.tokens.validate(token, member.member_id):
                logger.debug("Session token rejected for subject %s", member_id)
                return None
            return Identity(member_id=member.member_id, email=member.email, token=token)
        except Exception:
            logger.exception("Session gate failed; continuing unauthenticated")
            return None
