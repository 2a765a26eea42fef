"""
Tests for credential helpers, lifecycle transition rules and date arithmetic
"""

import pytest
from datetime import datetime, timedelta, timezone

from models import BotSubscriptionStatus, TradeStatus, TransactionStatus
from utils.datetime_helpers import add_months, ensure_naive_datetime, remaining_days
from utils.exceptions import AuthenticationError, StateTransitionError
from utils.security import (
    EXPIRED_TOKEN_MESSAGE, INVALID_TOKEN_MESSAGE, AuthTokenSecurity, generate_otp,
    generate_referral_code, hash_password, hash_reset_token, verify_password
)
from utils.state_validator import (
    SubscriptionStateValidator, TradeStateValidator, TransactionStateValidator
)

NOW = datetime(2024, 1, 15, 10, 0, 0)


class TestPasswordHashing:

    def test_round_trip(self):
        stored = hash_password("hunter22", iterations=1000)
        assert stored.startswith("pbkdf2_sha256$1000$")
        assert verify_password("hunter22", stored) is True
        assert verify_password("hunter23", stored) is False

    def test_salted(self):
        assert hash_password("hunter22", iterations=1000) != hash_password("hunter22", iterations=1000)

    def test_malformed_hash_never_verifies(self):
        assert verify_password("hunter22", "not-a-hash") is False
        assert verify_password("hunter22", "md5$1$abc$def") is False


class TestAuthTokens:

    def test_issue_and_verify(self):
        token = AuthTokenSecurity.issue_token(42, now=NOW)
        claims = AuthTokenSecurity.verify_token(token, now=NOW + timedelta(days=6))

        assert claims.user_id == 42
        assert claims.expires_at == NOW + timedelta(days=7)

    def test_expired_token(self):
        token = AuthTokenSecurity.issue_token(42, now=NOW)
        with pytest.raises(AuthenticationError) as exc_info:
            AuthTokenSecurity.verify_token(token, now=NOW + timedelta(days=7, seconds=1))
        assert exc_info.value.message == EXPIRED_TOKEN_MESSAGE

    @pytest.mark.parametrize("mutate", [
        lambda t: t.replace("42.", "43.", 1),
        lambda t: t[:-1] + ("0" if t[-1] != "0" else "1"),
        lambda t: "garbage",
        lambda t: "",
    ])
    def test_tampered_token(self, mutate):
        token = AuthTokenSecurity.issue_token(42, now=NOW)
        with pytest.raises(AuthenticationError) as exc_info:
            AuthTokenSecurity.verify_token(mutate(token), now=NOW)
        assert exc_info.value.message == INVALID_TOKEN_MESSAGE


class TestGeneratedCodes:

    def test_otp_is_six_digits(self):
        for _ in range(50):
            otp = generate_otp()
            assert len(otp) == 6 and otp.isdigit()

    def test_referral_code_uses_name_prefix(self):
        code = generate_referral_code("o'Brien Smith")
        assert code.startswith("OBR")
        assert len(code) == 9

    def test_reset_token_hash_is_stable(self):
        assert hash_reset_token("abc") == hash_reset_token("abc")
        assert hash_reset_token("abc") != "abc"


class TestLifecycleTransitions:

    def test_trade_only_completes_from_active(self):
        TradeStateValidator.ensure_transition(TradeStatus.ACTIVE, TradeStatus.COMPLETED)
        with pytest.raises(StateTransitionError):
            TradeStateValidator.ensure_transition("completed", "active", entity_id=7)

    def test_subscription_rejection_is_terminal(self):
        assert BotSubscriptionStatus.REJECTED in SubscriptionStateValidator.terminal_states()
        is_valid, reason = SubscriptionStateValidator.validate_transition(
            BotSubscriptionStatus.REJECTED, BotSubscriptionStatus.ACTIVE
        )
        assert is_valid is False
        assert "rejected -> active" in reason

    def test_subscription_pending_paths(self):
        SubscriptionStateValidator.ensure_transition("pending", "active")
        SubscriptionStateValidator.ensure_transition("pending", "rejected")
        with pytest.raises(StateTransitionError):
            SubscriptionStateValidator.ensure_transition("pending", "expired")

    def test_same_status_is_allowed(self):
        is_valid, _ = TransactionStateValidator.validate_transition(
            TransactionStatus.COMPLETED, TransactionStatus.COMPLETED
        )
        assert is_valid is True

    def test_settled_transactions_are_terminal(self):
        assert TransactionStateValidator.terminal_states() == {
            TransactionStatus.COMPLETED, TransactionStatus.FAILED
        }


class TestDateHelpers:

    def test_add_months_keeps_time(self):
        assert add_months(NOW, 1) == datetime(2024, 2, 15, 10, 0, 0)

    def test_add_months_clamps_month_end(self):
        assert add_months(datetime(2023, 1, 31), 1) == datetime(2023, 2, 28)
        assert add_months(datetime(2024, 3, 31), 1) == datetime(2024, 4, 30)

    def test_add_months_rolls_year(self):
        assert add_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)

    def test_remaining_days_rounds_up(self):
        assert remaining_days(NOW + timedelta(days=2, hours=1), now=NOW) == 3
        assert remaining_days(NOW + timedelta(days=2), now=NOW) == 2

    def test_remaining_days_never_negative(self):
        assert remaining_days(NOW - timedelta(days=1), now=NOW) == 0

    def test_aware_datetimes_become_naive_utc(self):
        aware = datetime(2024, 1, 15, 15, 0, tzinfo=timezone(timedelta(hours=5)))
        assert ensure_naive_datetime(aware) == datetime(2024, 1, 15, 10, 0)
        assert ensure_naive_datetime(None) is None
