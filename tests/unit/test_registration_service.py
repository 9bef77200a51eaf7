"""
Unit tests for RegistrationService domain logic.

Tests the three-step registration flow against in-memory adapters:
- Email normalization and conflicts
- One pending registration per email, newest OTP wins
- Proof token chaining and single-use OTPs
- Username validation and uniqueness
- Delivery failures
"""

from datetime import UTC, datetime, timedelta

import pytest

from src.domain.credentials import CredentialStore
from src.domain.exceptions import (
    Conflict,
    InvalidInput,
    InvalidOtp,
    NotificationFailed,
    TokenInvalid,
)
from src.domain.models import DEFAULT_BIO, RegistrationForm, User
from src.domain.ports import OtpPurpose
from src.domain.registration import RegistrationService
from src.domain.tokens import TokenCodec, TokenPurpose
from tests.conftest import FailingEmailSender, RecordingEmailSender


@pytest.fixture
def service(
    store: CredentialStore, email_sender: RecordingEmailSender, tokens: TokenCodec
) -> RegistrationService:
    return RegistrationService(store=store, email_sender=email_sender, tokens=tokens)


@pytest.fixture
def fixed_otp(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr("src.domain.registration.generate_otp", lambda: "123456")
    return "123456"


FORM = RegistrationForm(username="alice_1", full_name="Alice A", password="secret1")


class TestBeginRegistration:
    """Tests for step one."""

    async def test_email_normalized(
        self, service: RegistrationService, email_sender: RecordingEmailSender, tokens: TokenCodec
    ) -> None:
        """Email is stripped and lowercased before use."""
        token = await service.begin_registration("  New@Example.COM  ")

        assert email_sender.sent[0].email == "new@example.com"
        assert tokens.verify(token, TokenPurpose.REGISTER_EMAIL) == "new@example.com"

    async def test_otp_stored_and_mailed(
        self,
        service: RegistrationService,
        store: CredentialStore,
        email_sender: RecordingEmailSender,
    ) -> None:
        """The mailed code is the one held by the pending registration."""
        await service.begin_registration("new@example.com")

        pending = await store.find_registration("new@example.com")
        assert pending.otp == email_sender.last_code
        assert email_sender.sent[0].purpose is OtpPurpose.REGISTRATION

    async def test_repeat_keeps_single_pending_registration(
        self, service: RegistrationService, registrations, email_sender: RecordingEmailSender
    ) -> None:
        """Calling twice leaves exactly one pending record holding the newest OTP."""
        await service.begin_registration("new@example.com")
        await service.begin_registration("new@example.com")

        assert len(registrations) == 1
        pending = await registrations.find("new@example.com")
        assert pending.otp == email_sender.sent[-1].code

    async def test_existing_user_email_conflicts(
        self, service: RegistrationService, alice: User, email_sender: RecordingEmailSender
    ) -> None:
        """An email already linked to a user is refused before any OTP is sent."""
        with pytest.raises(Conflict):
            await service.begin_registration("ALICE@example.com")
        assert email_sender.sent == []

    @pytest.mark.parametrize("email", ["", "   ", "not-an-email", "a@b"])
    async def test_malformed_email_rejected(self, service: RegistrationService, email: str) -> None:
        """Missing or malformed addresses are invalid input."""
        with pytest.raises(InvalidInput):
            await service.begin_registration(email)

    async def test_delivery_failure_surfaces(
        self, store: CredentialStore, tokens: TokenCodec
    ) -> None:
        """A failed send raises NotificationFailed and no token is returned."""
        service = RegistrationService(
            store=store, email_sender=FailingEmailSender(), tokens=tokens
        )
        with pytest.raises(NotificationFailed) as exc_info:
            await service.begin_registration("new@example.com")
        assert exc_info.value.status_code == 500


class TestConfirmRegistrationOtp:
    """Tests for step two."""

    async def test_correct_otp_returns_verified_token(
        self, service: RegistrationService, tokens: TokenCodec, fixed_otp: str
    ) -> None:
        """The right code exchanges the register token for a verified one."""
        token = await service.begin_registration("new@example.com")
        verified = await service.confirm_registration_otp(token, fixed_otp)
        assert tokens.verify(verified, TokenPurpose.VERIFIED_EMAIL) == "new@example.com"

    async def test_otp_is_single_use(
        self, service: RegistrationService, registrations, fixed_otp: str
    ) -> None:
        """The pending registration is deleted on success, so a replay fails."""
        token = await service.begin_registration("new@example.com")
        await service.confirm_registration_otp(token, fixed_otp)

        assert len(registrations) == 0
        with pytest.raises(InvalidOtp):
            await service.confirm_registration_otp(token, fixed_otp)

    async def test_wrong_otp_rejected(
        self, service: RegistrationService, registrations, fixed_otp: str
    ) -> None:
        """A mismatched code is refused and the pending record stays."""
        token = await service.begin_registration("new@example.com")
        with pytest.raises(InvalidOtp):
            await service.confirm_registration_otp(token, "654321")
        assert len(registrations) == 1

    async def test_superseded_otp_rejected(
        self, service: RegistrationService, email_sender: RecordingEmailSender
    ) -> None:
        """After a resend only the newest code is accepted."""
        await service.begin_registration("new@example.com")
        first_code = email_sender.last_code
        token = await service.begin_registration("new@example.com")
        if first_code == email_sender.last_code:
            pytest.skip("random codes collided")

        with pytest.raises(InvalidOtp):
            await service.confirm_registration_otp(token, first_code)

    async def test_stale_pending_registration_rejected(
        self, service: RegistrationService, registrations, fixed_otp: str
    ) -> None:
        """A pending record older than the OTP ttl no longer verifies."""
        token = await service.begin_registration("new@example.com")
        pending = await registrations.find("new@example.com")
        pending.created_at = datetime.now(UTC) - timedelta(minutes=21)

        with pytest.raises(InvalidOtp):
            await service.confirm_registration_otp(token, fixed_otp)

    async def test_wrong_purpose_token_rejected(
        self, service: RegistrationService, tokens: TokenCodec, fixed_otp: str
    ) -> None:
        """A token from another workflow cannot be used here."""
        await service.begin_registration("new@example.com")
        forged = tokens.issue("new@example.com", TokenPurpose.FORGOT_PASSWORD)
        with pytest.raises(TokenInvalid):
            await service.confirm_registration_otp(forged, fixed_otp)


class TestCompleteRegistration:
    """Tests for step three."""

    async def _verified_token(self, service: RegistrationService, otp: str) -> str:
        token = await service.begin_registration("new@example.com")
        return await service.confirm_registration_otp(token, otp)

    async def test_end_to_end_creates_user(
        self, service: RegistrationService, store: CredentialStore, fixed_otp: str
    ) -> None:
        """All three steps produce a user with a hashed password and default bio."""
        verified = await self._verified_token(service, fixed_otp)
        profile = await service.complete_registration(verified, FORM)

        assert profile.email == "new@example.com"
        assert profile.username == "alice_1"
        assert profile.bio == DEFAULT_BIO
        assert not hasattr(profile, "password")

        user = await store.find_user_by_email("new@example.com")
        assert user.password != "secret1"
        assert store.hasher.verify("secret1", user.password)

    async def test_username_lowercased(
        self, service: RegistrationService, fixed_otp: str
    ) -> None:
        """Usernames are stored lowercase."""
        verified = await self._verified_token(service, fixed_otp)
        form = RegistrationForm(username="Alice_1", full_name="Alice A", password="secret1")
        profile = await service.complete_registration(verified, form)
        assert profile.username == "alice_1"

    @pytest.mark.parametrize("username", ["bad name", "dots.not.allowed", "emoji🙂", ""])
    async def test_username_outside_allow_list_rejected(
        self, service: RegistrationService, fixed_otp: str, username: str
    ) -> None:
        """Only letters, digits, hyphens and underscores are allowed."""
        verified = await self._verified_token(service, fixed_otp)
        form = RegistrationForm(username=username, full_name="Alice A", password="secret1")
        with pytest.raises(InvalidInput):
            await service.complete_registration(verified, form)

    async def test_taken_username_conflicts(
        self, service: RegistrationService, alice: User, fixed_otp: str
    ) -> None:
        """A username already in use is refused."""
        verified = await self._verified_token(service, fixed_otp)
        form = RegistrationForm(username="ALICE", full_name="Alice A", password="secret1")
        with pytest.raises(Conflict):
            await service.complete_registration(verified, form)

    async def test_blank_fields_rejected(
        self, service: RegistrationService, fixed_otp: str
    ) -> None:
        """Full name and password are required."""
        verified = await self._verified_token(service, fixed_otp)
        with pytest.raises(InvalidInput):
            await service.complete_registration(
                verified, RegistrationForm(username="bob", full_name="  ", password="pw")
            )
        with pytest.raises(InvalidInput):
            await service.complete_registration(
                verified, RegistrationForm(username="bob", full_name="Bob", password="")
            )

    async def test_register_token_cannot_skip_verification(
        self, service: RegistrationService
    ) -> None:
        """The step-one token is not accepted by step three."""
        token = await service.begin_registration("new@example.com")
        with pytest.raises(TokenInvalid):
            await service.complete_registration(token, FORM)

    async def test_custom_bio_kept(self, service: RegistrationService, fixed_otp: str) -> None:
        """A non-blank bio replaces the default."""
        verified = await self._verified_token(service, fixed_otp)
        form = RegistrationForm(
            username="bob", full_name="Bob", password="secret1", bio="  hello  "
        )
        profile = await service.complete_registration(verified, form)
        assert profile.bio == "hello"
