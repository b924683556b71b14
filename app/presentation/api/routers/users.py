"""API router for user registration, login and email verification."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.application.services.authentication_service import AuthenticationService
from app.core.dependencies import get_authentication_service
from app.domain.errors import (
    CredentialMismatch,
    EmailAlreadyRegistered,
    MailDispatchError,
    UserNotFound,
    UserNotVerified,
)
from app.presentation.api.schemas.user_schemas import (
    UserChangePasswordRequest,
    UserLoginRequest,
    UserRegisterRequest,
    UserResendVerificationRequest,
    UserResponse,
    UserVerifyEmailRequest,
)

router = APIRouter(prefix="/api/users", tags=["users"])


def _mail_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Verification email could not be sent. Please try again later.",
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: UserRegisterRequest,
    auth_service: AuthenticationService = Depends(get_authentication_service),
) -> UserResponse:
    """Register a new user and send the verification email."""
    try:
        user = await auth_service.register(request.name, request.email, request.password)
    except EmailAlreadyRegistered as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered") from exc
    except MailDispatchError as exc:
        raise _mail_unavailable() from exc
    return UserResponse.from_user(user)


@router.post("/login", response_model=UserResponse)
async def login(
    request: UserLoginRequest,
    auth_service: AuthenticationService = Depends(get_authentication_service),
) -> UserResponse:
    """Check credentials of a verified user."""
    try:
        user = await auth_service.login(request.email, request.password)
    except (UserNotFound, CredentialMismatch) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        ) from exc
    except UserNotVerified as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email not verified. Please verify your email first.",
        ) from exc
    return UserResponse.from_user(user)


@router.post("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    user_id: str,
    request: UserChangePasswordRequest,
    auth_service: AuthenticationService = Depends(get_authentication_service),
) -> Response:
    try:
        await auth_service.change_password(user_id, request.previous_password, request.new_password)
    except UserNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    except CredentialMismatch as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Previous password is incorrect",
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/verify-email", status_code=status.HTTP_200_OK)
async def verify_email(
    request: UserVerifyEmailRequest,
    auth_service: AuthenticationService = Depends(get_authentication_service),
) -> dict:
    """Verify user email with token."""
    if not await auth_service.validate_email_verification_key(request.token):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid verification token",
        )
    return {"message": "Email verified successfully"}


@router.post("/resend-verification", status_code=status.HTTP_202_ACCEPTED)
async def resend_verification(
    request: UserResendVerificationRequest,
    auth_service: AuthenticationService = Depends(get_authentication_service),
) -> dict:
    """Resend verification email."""
    try:
        await auth_service.re_request_verification(request.email)
    except UserNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    except MailDispatchError as exc:
        raise _mail_unavailable() from exc
    return {"message": "Verification email sent"}
