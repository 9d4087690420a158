"""Shared dependencies: DB session, auth services, session gate, current identity."""
from datetime import timedelta

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from memberauth.config import get_settings
from memberauth.database import get_db
from memberauth.exceptions import RateLimited, Unauthenticated
from memberauth.services.identity import IdentityVerificationFlow
from memberauth.services.notifications import Notifier, get_notifier
from memberauth.services.rate_limiter import RateLimiter, get_rate_limiter
from memberauth.services.session_gate import Identity, SessionGate
from memberauth.services.stores import MemberStore, RevocationStore
from memberauth.services.tokens import TokenService, get_token_service

security = HTTPBearer(auto_error=False)


def get_identity_flow(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    tokens: TokenService = Depends(get_token_service),
    notifier: Notifier = Depends(get_notifier),
) -> IdentityVerificationFlow:
    return IdentityVerificationFlow(db, rate_limiter, tokens, notifier, background_tasks)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for") or ""
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_auth_ip_limit(request: Request, rate_limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    """Coarse per-IP guard in front of every /api/auth route."""
    settings = get_settings()
    window = timedelta(minutes=settings.auth_ip_rate_window_minutes)
    if not rate_limiter.allow(f"auth_rate_limit:{client_ip(request)}", settings.auth_ip_rate_limit, window):
        raise RateLimited(
            "Too many authentication requests. Please try again later.",
            retry_after=int(window.total_seconds()),
        )


def session_token(request: Request) -> str | None:
    """Session cookie value, if the client sent one."""
    token = request.cookies.get(get_settings().session_cookie_name)
    return token.strip() if token and token.strip() else None


def presented_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials and (credentials.credentials or "").strip():
        return credentials.credentials.strip()
    return session_token(request)


def attach_identity(
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> None:
    """App-wide session gate: sets ``request.state.identity`` (None when unauthenticated)."""
    gate = SessionGate(tokens, RevocationStore(db), MemberStore(db))
    current = getattr(request.state, "identity", None)
    request.state.identity = gate.resolve(session_token(request), current=current)


def get_identity(request: Request) -> Identity | None:
    return getattr(request.state, "identity", None)


def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity
