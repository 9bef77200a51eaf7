"""
API v1 routes.

Defines the user identity endpoints: registration, login and session
rotation, password reset, email change and account management.

Proof tokens travel as httpOnly cookies scoped to the token ttl, and are
also returned in the body so non-browser clients can send them back as a
bearer credential. Session cookies carry no max-age; their expiry lives
inside the signed token.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request, Response, status

from src.api.dependencies import (
    extract_token,
    get_account_service,
    get_current_user,
    get_email_change_service,
    get_password_reset_service,
    get_registration_service,
    get_session_issuer,
    get_token_codec,
)
from src.api.models import (
    ApiResponse,
    ChangePasswordRequest,
    DeleteAccountRequest,
    ErrorResponse,
    ForgotPasswordOtpRequest,
    LoginRequest,
    RefreshRequest,
    RegisterEmailRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateEmailRequest,
    UpdateProfileRequest,
    UserResponse,
    VerifyEmailRequest,
    VerifyForgotPasswordOtpRequest,
    VerifyUpdateEmailRequest,
)
from src.config.settings import Settings, get_settings
from src.domain.accounts import AccountService
from src.domain.email_change import EmailChangeService
from src.domain.models import ProfileChanges, RegistrationForm, SessionTokens, User, UserProfile
from src.domain.password_reset import PasswordResetService
from src.domain.registration import RegistrationService
from src.domain.sessions import SessionIssuer
from src.domain.tokens import TokenCodec, TokenPurpose

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input or OTP"},
        401: {"model": ErrorResponse, "description": "Bad credentials or token"},
    },
)

# Cookie names per proof token
EMAIL_TOKEN_COOKIE = "emailToken"
VERIFIED_EMAIL_TOKEN_COOKIE = "verifiedEmailToken"
UPDATE_EMAIL_TOKEN_COOKIE = "updateEmailToken"
FORGOT_PASSWORD_TOKEN_COOKIE = "forgotPassToken"
VERIFIED_RESET_TOKEN_COOKIE = "verifiedToken"
ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def _user_payload(profile: UserProfile | User) -> dict:
    if isinstance(profile, User):
        profile = profile.to_profile()
    return UserResponse(**asdict(profile)).model_dump(by_alias=True, mode="json")


def _set_proof_cookie(
    response: Response, name: str, token: str, max_age: int, settings: Settings
) -> None:
    response.set_cookie(name, token, max_age=max_age, httponly=True, secure=settings.cookie_secure)


def _set_session_cookies(response: Response, tokens: SessionTokens, settings: Settings) -> None:
    for name, value in (
        (ACCESS_TOKEN_COOKIE, tokens.access_token),
        (REFRESH_TOKEN_COOKIE, tokens.refresh_token),
    ):
        response.set_cookie(name, value, httponly=True, secure=settings.cookie_secure)


def _clear_cookie(response: Response, name: str, settings: Settings) -> None:
    response.delete_cookie(name, httponly=True, secure=settings.cookie_secure)


# Registration


@router.post(
    "/register-email",
    response_model=ApiResponse,
    responses={409: {"model": ErrorResponse, "description": "Email already linked to a user"}},
    summary="Start registration",
    description="Mail a 6-digit OTP to the address and return a register-email token.",
)
async def register_email(
    request_data: RegisterEmailRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    token = await service.begin_registration(request_data.email)
    _set_proof_cookie(
        response,
        EMAIL_TOKEN_COOKIE,
        token,
        tokens.ttl_seconds(TokenPurpose.REGISTER_EMAIL),
        settings,
    )
    return ApiResponse(
        status=200,
        data={"token": token},
        message="OTP sent successfuly. Please verify your email.",
    )


@router.post("/verify-email", response_model=ApiResponse, summary="Confirm registration OTP")
async def verify_email(
    request_data: VerifyEmailRequest,
    request: Request,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    token = await service.confirm_registration_otp(
        extract_token(request, EMAIL_TOKEN_COOKIE), request_data.verification_otp
    )
    _set_proof_cookie(
        response,
        VERIFIED_EMAIL_TOKEN_COOKIE,
        token,
        tokens.ttl_seconds(TokenPurpose.VERIFIED_EMAIL),
        settings,
    )
    _clear_cookie(response, EMAIL_TOKEN_COOKIE, settings)
    return ApiResponse(
        status=200,
        data={
            "email": tokens.verify(token, TokenPurpose.VERIFIED_EMAIL),
            "verified": True,
            "token": token,
        },
        message="Email verification successful.",
    )


@router.post(
    "/register",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Email or username taken"}},
    summary="Complete registration",
)
async def register(
    request_data: RegisterRequest,
    request: Request,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    profile = await service.complete_registration(
        extract_token(request, VERIFIED_EMAIL_TOKEN_COOKIE),
        RegistrationForm(
            username=request_data.username,
            full_name=request_data.full_name,
            password=request_data.password,
            bio=request_data.bio,
        ),
    )
    _clear_cookie(response, VERIFIED_EMAIL_TOKEN_COOKIE, settings)
    return ApiResponse(
        status=201,
        data=_user_payload(profile),
        message="User registered successfully!",
    )


# Sessions


@router.post(
    "/login",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown username or email"}},
    summary="Log in",
)
async def login(
    request_data: LoginRequest,
    response: Response,
    sessions: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    result = await sessions.login(request_data.username_or_email, request_data.password)
    _set_session_cookies(response, result.tokens, settings)
    return ApiResponse(
        status=200,
        data={
            "user": _user_payload(result.user),
            "accessToken": result.tokens.access_token,
            "refreshToken": result.tokens.refresh_token,
        },
        message="User logged in successfully.",
    )


@router.post("/logout", response_model=ApiResponse, summary="Log out")
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    sessions: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    await sessions.logout(user.id)
    _clear_cookie(response, ACCESS_TOKEN_COOKIE, settings)
    _clear_cookie(response, REFRESH_TOKEN_COOKIE, settings)
    return ApiResponse(status=200, data={}, message="User logged out successfully!")


@router.post("/refresh-access-token", response_model=ApiResponse, summary="Rotate session tokens")
async def refresh_access_token(
    request: Request,
    response: Response,
    request_data: RefreshRequest | None = None,
    sessions: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    incoming = (request_data.refresh_token if request_data else None) or request.cookies.get(
        REFRESH_TOKEN_COOKIE
    )
    tokens = await sessions.refresh(incoming)
    _set_session_cookies(response, tokens, settings)
    return ApiResponse(
        status=200,
        data={"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token},
        message="Access token refreshed successfully",
    )


@router.post("/change-password", response_model=ApiResponse, summary="Change password")
async def change_password(
    request_data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> ApiResponse:
    await sessions.change_password(
        user.id,
        request_data.old_password,
        request_data.new_password,
        request_data.confirm_new_password,
    )
    return ApiResponse(status=200, data={}, message="Password changed successfully.")


@router.get("/current-user", response_model=ApiResponse, summary="Get the signed-in user")
async def current_user(user: User = Depends(get_current_user)) -> ApiResponse:
    return ApiResponse(
        status=200,
        data=_user_payload(user),
        message="Current user fetched successfully.",
    )


# Password reset


@router.post(
    "/send-forgot-password-otp",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Start password reset",
)
async def send_forgot_password_otp(
    request_data: ForgotPasswordOtpRequest,
    response: Response,
    service: PasswordResetService = Depends(get_password_reset_service),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    token = await service.begin_reset(request_data.username_or_email)
    _set_proof_cookie(
        response,
        FORGOT_PASSWORD_TOKEN_COOKIE,
        token,
        tokens.ttl_seconds(TokenPurpose.FORGOT_PASSWORD),
        settings,
    )
    return ApiResponse(
        status=200,
        data={"email": tokens.verify(token, TokenPurpose.FORGOT_PASSWORD), "token": token},
        message="Forgot password OTP sent successfully.",
    )


@router.post("/verify-forgot-password-otp", response_model=ApiResponse, summary="Confirm reset OTP")
async def verify_forgot_password_otp(
    request_data: VerifyForgotPasswordOtpRequest,
    request: Request,
    response: Response,
    service: PasswordResetService = Depends(get_password_reset_service),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    token = await service.confirm_reset_otp(
        extract_token(request, FORGOT_PASSWORD_TOKEN_COOKIE), request_data.forgot_password_otp
    )
    _set_proof_cookie(
        response,
        VERIFIED_RESET_TOKEN_COOKIE,
        token,
        tokens.ttl_seconds(TokenPurpose.VERIFIED_RESET),
        settings,
    )
    _clear_cookie(response, FORGOT_PASSWORD_TOKEN_COOKIE, settings)
    return ApiResponse(
        status=200,
        data={"token": token},
        message="Forgot password OTP verified successfully.",
    )


@router.post("/forgot-password", response_model=ApiResponse, summary="Set a new password")
async def forgot_password(
    request_data: ResetPasswordRequest,
    request: Request,
    response: Response,
    service: PasswordResetService = Depends(get_password_reset_service),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    await service.complete_reset(
        extract_token(request, VERIFIED_RESET_TOKEN_COOKIE), request_data.new_password
    )
    _clear_cookie(response, VERIFIED_RESET_TOKEN_COOKIE, settings)
    return ApiResponse(status=200, data=None, message="Password updated successfully.")


# Email change


@router.post(
    "/update-email",
    response_model=ApiResponse,
    responses={409: {"model": ErrorResponse, "description": "Email already linked to a user"}},
    summary="Start email change",
)
async def update_email(
    request_data: UpdateEmailRequest,
    response: Response,
    user: User = Depends(get_current_user),
    service: EmailChangeService = Depends(get_email_change_service),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    token = await service.begin_email_change(user.id, request_data.new_email, request_data.password)
    _set_proof_cookie(
        response,
        UPDATE_EMAIL_TOKEN_COOKIE,
        token,
        tokens.ttl_seconds(TokenPurpose.UPDATE_EMAIL),
        settings,
    )
    return ApiResponse(
        status=200,
        data={"updateEmailToken": token},
        message="Verification OTP sent successfully to new email.",
    )


@router.post("/verify-update-email", response_model=ApiResponse, summary="Confirm email change")
async def verify_update_email(
    request_data: VerifyUpdateEmailRequest,
    request: Request,
    response: Response,
    user: User = Depends(get_current_user),
    service: EmailChangeService = Depends(get_email_change_service),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    # The bearer header carries the session here, so the proof token has its own header
    token = request.cookies.get(UPDATE_EMAIL_TOKEN_COOKIE) or request.headers.get(
        "updateEmailToken"
    )
    profile = await service.confirm_email_change(user.id, token, request_data.update_email_otp)
    _clear_cookie(response, UPDATE_EMAIL_TOKEN_COOKIE, settings)
    return ApiResponse(
        status=200,
        data={"user": _user_payload(profile)},
        message="Email updated successfully.",
    )


# Account


@router.patch("/update-profile", response_model=ApiResponse, summary="Edit profile fields")
async def update_profile(
    request_data: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> ApiResponse:
    profile = await accounts.update_profile(
        user.id,
        ProfileChanges(
            full_name=request_data.full_name,
            bio=request_data.bio,
            username=request_data.username,
        ),
    )
    return ApiResponse(
        status=200,
        data=_user_payload(profile),
        message="Account updated successfully.",
    )


@router.delete("/delete-user", response_model=ApiResponse, summary="Delete the signed-in account")
async def delete_user(
    request_data: DeleteAccountRequest,
    response: Response,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    deleted = await accounts.delete_account(user.id, request_data.password)
    _clear_cookie(response, ACCESS_TOKEN_COOKIE, settings)
    _clear_cookie(response, REFRESH_TOKEN_COOKIE, settings)
    return ApiResponse(
        status=200,
        data=_user_payload(deleted),
        message="Account deleted successfully.",
    )
