from memberauth.schemas.auth import (
    AuthenticationResponse,
    LoginRequest,
    MemberResponse,
    MessageResponse,
    OtpRequest,
    RegisterRequest,
)
