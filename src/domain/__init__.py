"""
Domain layer - Pure business logic with zero framework imports.

This package contains the identity verification workflows and the
session token lifecycle. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .accounts import AccountService
from .credentials import CredentialStore
from .email_change import EmailChangeService
from .exceptions import (
    AuthError,
    Conflict,
    Expired,
    InvalidInput,
    InvalidOtp,
    NotFound,
    NotificationFailed,
    TokenExpired,
    TokenInvalid,
    Unauthorized,
    UpstreamFailure,
)
from .models import (
    NewUser,
    PendingRegistration,
    ProfileChanges,
    RegistrationForm,
    User,
    UserChanges,
    UserProfile,
)
from .passwords import PasswordHasher
from .password_reset import PasswordResetService
from .ports import (
    AssetStore,
    EmailSender,
    OtpPurpose,
    PendingRegistrationRepository,
    UserRepository,
)
from .registration import RegistrationService
from .sessions import SessionIssuer
from .tokens import TokenCodec, TokenConfig, TokenPolicy, TokenPurpose

__all__ = [
    "AccountService",
    "AssetStore",
    "AuthError",
    "Conflict",
    "CredentialStore",
    "EmailChangeService",
    "EmailSender",
    "Expired",
    "InvalidInput",
    "InvalidOtp",
    "NewUser",
    "NotFound",
    "NotificationFailed",
    "OtpPurpose",
    "PasswordHasher",
    "PasswordResetService",
    "PendingRegistration",
    "PendingRegistrationRepository",
    "ProfileChanges",
    "RegistrationForm",
    "RegistrationService",
    "SessionIssuer",
    "TokenCodec",
    "TokenConfig",
    "TokenExpired",
    "TokenInvalid",
    "TokenPolicy",
    "TokenPurpose",
    "Unauthorized",
    "UpstreamFailure",
    "User",
    "UserChanges",
    "UserProfile",
    "UserRepository",
]
