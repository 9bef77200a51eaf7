"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Deterministic token configuration with short ttls
- In-memory credential store with a fast bcrypt cost
- Email senders that record or fail deliveries
"""

from dataclasses import dataclass, field

import pytest

from src.adapters.repository.memory import (
    InMemoryPendingRegistrationRepository,
    InMemoryUserRepository,
)
from src.domain.credentials import CredentialStore
from src.domain.models import NewUser, User
from src.domain.passwords import PasswordHasher
from src.domain.ports import OtpPurpose
from src.domain.tokens import TokenCodec, TokenConfig, TokenPolicy, TokenPurpose


@dataclass
class SentOtp:
    email: str
    code: str
    purpose: OtpPurpose


@dataclass
class RecordingEmailSender:
    """EmailSender that keeps every OTP it was asked to deliver."""

    sent: list[SentOtp] = field(default_factory=list)

    async def send_otp(self, email: str, code: str, purpose: OtpPurpose) -> None:
        self.sent.append(SentOtp(email, code, purpose))

    @property
    def last_code(self) -> str:
        return self.sent[-1].code


class FailingEmailSender:
    """EmailSender whose delivery always fails."""

    async def send_otp(self, email: str, code: str, purpose: OtpPurpose) -> None:
        raise ConnectionError("SMTP unavailable")


def make_token_config(ttl_seconds: int = 600) -> TokenConfig:
    """One distinct secret per purpose, same ttl for all."""
    return TokenConfig(
        policies={
            purpose: TokenPolicy(
                secret=f"test-secret-{purpose.value}-0123456789abcdef0123",
                ttl_seconds=ttl_seconds,
            )
            for purpose in TokenPurpose
        }
    )


@pytest.fixture
def token_config() -> TokenConfig:
    return make_token_config()


@pytest.fixture
def tokens(token_config: TokenConfig) -> TokenCodec:
    return TokenCodec(token_config)


@pytest.fixture
def hasher() -> PasswordHasher:
    """bcrypt's minimum cost keeps the suite fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def registrations() -> InMemoryPendingRegistrationRepository:
    return InMemoryPendingRegistrationRepository()


@pytest.fixture
def store(
    users: InMemoryUserRepository,
    registrations: InMemoryPendingRegistrationRepository,
    hasher: PasswordHasher,
) -> CredentialStore:
    return CredentialStore(users=users, registrations=registrations, hasher=hasher)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
async def alice(store: CredentialStore) -> User:
    """A registered user with password 'secret1'."""
    return await store.create_user(
        NewUser(
            username="alice",
            email="alice@example.com",
            full_name="Alice A",
            password="secret1",
        )
    )
