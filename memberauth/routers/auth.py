"""OTP registration, OTP login and logout."""
from fastapi import APIRouter, Depends, Response, status

from memberauth.config import get_settings
from memberauth.dependencies import enforce_auth_ip_limit, get_identity_flow, presented_token
from memberauth.schemas.auth import (
    AuthenticationResponse,
    LoginRequest,
    MemberResponse,
    MessageResponse,
    OtpRequest,
    RegisterRequest,
)
from memberauth.services.identity import AuthResult, IdentityVerificationFlow

router = APIRouter(prefix="/api/auth", tags=["auth"], dependencies=[Depends(enforce_auth_ip_limit)])


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_token_ttl_hours * 3600,
        path="/",
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite="strict",
    )


def _clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        max_age=0,
        path="/",
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite="strict",
    )


def _authenticated(response: Response, result: AuthResult) -> AuthenticationResponse:
    _set_session_cookie(response, result.token)
    return AuthenticationResponse(token=result.token, member=MemberResponse.model_validate(result.member))


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
def register(data: RegisterRequest, flow: IdentityVerificationFlow = Depends(get_identity_flow)):
    flow.start_registration(data.email, data.full_name, data.contact, data.dob)
    return MessageResponse(message="Registration initiated. Please verify your email with the OTP sent.")


@router.post("/verify-email", response_model=AuthenticationResponse)
def verify_email(data: OtpRequest, response: Response, flow: IdentityVerificationFlow = Depends(get_identity_flow)):
    return _authenticated(response, flow.complete_registration(data.email, data.otp))


@router.post("/login/send-otp", response_model=MessageResponse)
def send_otp(data: LoginRequest, flow: IdentityVerificationFlow = Depends(get_identity_flow)):
    flow.request_otp(data.email)
    return MessageResponse(message="OTP sent successfully")


@router.post("/login/verify-otp", response_model=AuthenticationResponse)
def verify_otp(data: OtpRequest, response: Response, flow: IdentityVerificationFlow = Depends(get_identity_flow)):
    return _authenticated(response, flow.verify_otp(data.email, data.otp))


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    token: str | None = Depends(presented_token),
    flow: IdentityVerificationFlow = Depends(get_identity_flow),
):
    flow.logout(token)
    _clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")
