"""
Unit tests for one-time passcodes.

Tests code generation and expiry:
- Six digits, no leading zero
- Constant-time matching with whitespace tolerance
- Expiry boundary
"""

from datetime import UTC, datetime, timedelta

from src.domain.otp import OTP_MAX, OTP_MIN, OtpGrant, generate_otp, issue_otp


class TestGenerateOtp:
    """Tests for code generation."""

    def test_code_is_six_digits(self) -> None:
        """Every code is exactly six numeric characters."""
        for _ in range(200):
            code = generate_otp()
            assert len(code) == 6
            assert code.isdigit()

    def test_code_in_fixed_range(self) -> None:
        """Codes are drawn from 100000-999999."""
        for _ in range(200):
            assert OTP_MIN <= int(generate_otp()) <= OTP_MAX

    def test_codes_vary(self) -> None:
        """Codes come from a random source, not a counter or constant."""
        assert len({generate_otp() for _ in range(50)}) > 1


class TestOtpGrant:
    """Tests for the code/expiry pair."""

    def test_issue_sets_expiry_from_ttl(self) -> None:
        """Expiry is ttl minutes after the issue time."""
        now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        grant = issue_otp(15, now=now)
        assert grant.expires_at == now + timedelta(minutes=15)

    def test_not_expired_before_deadline(self) -> None:
        """A grant is accepted up to its expiry."""
        now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        grant = OtpGrant(code="123456", expires_at=now + timedelta(minutes=1))
        assert not grant.is_expired(now)
        assert not grant.is_expired(grant.expires_at)

    def test_expired_after_deadline(self) -> None:
        """A grant past its expiry reports expired."""
        now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        grant = OtpGrant(code="123456", expires_at=now)
        assert grant.is_expired(now + timedelta(seconds=1))

    def test_matches_exact_code(self) -> None:
        """The stored code matches itself."""
        grant = OtpGrant(code="123456", expires_at=datetime.now(UTC))
        assert grant.matches("123456")

    def test_matches_ignores_surrounding_whitespace(self) -> None:
        """Pasted codes with spaces still match."""
        grant = OtpGrant(code="123456", expires_at=datetime.now(UTC))
        assert grant.matches(" 123456 ")

    def test_matches_accepts_integer_input(self) -> None:
        """A code submitted as a number is compared as text."""
        grant = OtpGrant(code="123456", expires_at=datetime.now(UTC))
        assert grant.matches(123456)

    def test_wrong_code_does_not_match(self) -> None:
        """Any other code is rejected."""
        grant = OtpGrant(code="123456", expires_at=datetime.now(UTC))
        assert not grant.matches("654321")
        assert not grant.matches("")
