"""Session tokens: signed JWTs carrying the member id as subject."""
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt

from memberauth.config import get_settings


class TokenService:
    """Issues and validates HS256 session tokens.

    The signing key is fixed for the lifetime of the instance; build one per
    process through :func:`get_token_service`.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=24)) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl

    def issue(self, subject: str, issued_at: datetime | None = None) -> str:
        """Sign a token for ``subject`` expiring ``ttl`` after ``issued_at``."""
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject),
            "iat": issued_at,
            "exp": issued_at + self.ttl,
            # Two tokens for the same member issued in the same second still differ
            "jti": uuid.uuid4().hex,
        }
        raw = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return raw if isinstance(raw, str) else raw.decode("utf-8")

    def validate(self, token: str, expected_subject: str | None = None) -> bool:
        """True only for an intact, unexpired token (for ``expected_subject`` if given)."""
        payload = self._decode(token, verify_exp=True)
        if payload is None:
            return False
        if expected_subject is not None and payload.get("sub") != str(expected_subject):
            return False
        return True

    def extract_subject(self, token: str) -> str | None:
        """Subject claim of a correctly signed token, ignoring its expiry."""
        payload = self._decode(token, verify_exp=False)
        if payload is None:
            return None
        sub = payload.get("sub")
        return sub if isinstance(sub, str) and sub else None

    def expires_at(self, token: str) -> datetime | None:
        """Absolute expiry of a correctly signed token, ignoring whether it has passed."""
        payload = self._decode(token, verify_exp=False)
        if payload is None:
            return None
        try:
            return datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError):
            return None

    def _decode(self, token: str, verify_exp: bool) -> dict | None:
        if not token or not isinstance(token, str):
            return None
        try:
            return jwt.decode(
                token.strip(),
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"], "verify_exp": verify_exp},
            )
        except jwt.PyJWTError:
            return None


@lru_cache
def get_token_service() -> TokenService:
    settings = get_settings()
    return TokenService(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.session_token_ttl_hours),
    )
