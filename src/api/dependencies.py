"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services
and infrastructure adapters into routes, plus token extraction from
cookies and headers.
"""

from fastapi import Depends, Request

from src.adapters.assets.console import ConsoleAssetStore
from src.adapters.smtp.console import ConsoleEmailSender
from src.config.settings import Settings, get_settings
from src.domain.accounts import AccountService
from src.domain.credentials import CredentialStore
from src.domain.email_change import EmailChangeService
from src.domain.models import User
from src.domain.password_reset import PasswordResetService
from src.domain.ports import AssetStore, EmailSender
from src.domain.registration import RegistrationService
from src.domain.sessions import SessionIssuer
from src.domain.tokens import TokenCodec

# Module-level singletons - console adapters are stateless
_email_sender = ConsoleEmailSender()
_asset_store = ConsoleAssetStore()


def get_credential_store(request: Request) -> CredentialStore:
    """
    Get the credential store from app state.

    The store is built during app lifespan startup and stored in app.state.
    """
    return request.app.state.credential_store


def get_email_sender() -> EmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


def get_asset_store() -> AssetStore:
    return _asset_store


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    return TokenCodec(settings.token_config())


def get_registration_service(
    store: CredentialStore = Depends(get_credential_store),
    email_sender: EmailSender = Depends(get_email_sender),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> RegistrationService:
    """Wire the registration workflow."""
    return RegistrationService(
        store=store,
        email_sender=email_sender,
        tokens=tokens,
        otp_ttl_minutes=settings.registration_otp_ttl_minutes,
    )


def get_email_change_service(
    store: CredentialStore = Depends(get_credential_store),
    email_sender: EmailSender = Depends(get_email_sender),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> EmailChangeService:
    return EmailChangeService(
        store=store,
        email_sender=email_sender,
        tokens=tokens,
        otp_ttl_minutes=settings.email_change_otp_ttl_minutes,
    )


def get_password_reset_service(
    store: CredentialStore = Depends(get_credential_store),
    email_sender: EmailSender = Depends(get_email_sender),
    tokens: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> PasswordResetService:
    return PasswordResetService(
        store=store,
        email_sender=email_sender,
        tokens=tokens,
        otp_ttl_minutes=settings.password_reset_otp_ttl_minutes,
    )


def get_session_issuer(
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenCodec = Depends(get_token_codec),
) -> SessionIssuer:
    return SessionIssuer(store=store, tokens=tokens)


def get_account_service(
    store: CredentialStore = Depends(get_credential_store),
    assets: AssetStore = Depends(get_asset_store),
) -> AccountService:
    return AccountService(store=store, assets=assets)


def extract_token(request: Request, cookie_name: str, header_name: str | None = None) -> str | None:
    """
    Read a token from its cookie, a named header, or a bearer credential.

    Returns:
        The raw token string, or None when none was sent
    """
    token = request.cookies.get(cookie_name)
    if token:
        return token

    if header_name:
        token = request.headers.get(header_name)
        if token:
            return token.strip()

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


async def get_current_user(
    request: Request,
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> User:
    """Authorize the request from the ``accessToken`` cookie or a bearer header."""
    return await sessions.authenticate(extract_token(request, "accessToken"))
