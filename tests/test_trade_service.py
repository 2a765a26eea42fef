"""
Trade Lifecycle Tests
Start (debit), manual and expiry completion (credit once), profit terms and read side
"""

import random
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from config import Config
from models import Trade, TradeStatus
from services.bot_subscription_service import BotSubscriptionService
from services.trade_service import TradeService, calculate_profit, serialize_trade
from utils.exceptions import (
    InsufficientFundsError, NotFoundError, SubscriptionRequiredError, ValidationError
)

NOW = datetime(2024, 1, 15, 10, 0, 0)


class TestProfitCalculation:

    def test_default_percentage_profit(self):
        assert calculate_profit(Decimal("5000"), Decimal("10")) == Decimal("500.00")

    def test_profit_rounds_half_up_to_cents(self):
        assert calculate_profit(Decimal("5555.55"), Decimal("12")) == Decimal("666.67")


class TestStartTrade:
    """Opening a trade debits the principal in the same transaction"""

    def test_manual_trade_debits_and_records_terms(self, db_session, make_user):
        """Scenario: balance 10000, manual trade of 5000 at the default 10%"""
        user = make_user(balance="10000")
        trade = TradeService(db_session).start_trade(user.id, Decimal("5000"), now=NOW)

        assert user.balance == Decimal("5000")
        assert trade.status == TradeStatus.ACTIVE.value
        assert trade.profit_percentage == Decimal("10")
        assert trade.profit_amount == Decimal("500")
        assert trade.start_date == NOW
        assert trade.end_date == datetime(2024, 2, 15, 10, 0, 0)
        assert trade.is_bot is False
        assert trade.bot_type is None

    def test_month_end_start_clamps_end_date(self, db_session, make_user):
        user = make_user(balance="10000")
        trade = TradeService(db_session).start_trade(user.id, Decimal("5000"), now=datetime(2024, 1, 31, 9, 0))
        assert trade.end_date == datetime(2024, 2, 29, 9, 0)

    def test_insufficient_balance_creates_nothing(self, db_session, make_user):
        """Scenario: balance 3000, trade of 5000 fails and leaves no trade behind"""
        user = make_user(balance="3000")

        with pytest.raises(InsufficientFundsError):
            TradeService(db_session).start_trade(user.id, Decimal("5000"), now=NOW)

        assert user.balance == Decimal("3000")
        assert db_session.query(Trade).count() == 0

    @pytest.mark.parametrize("amount", ["4999.99", "50000.01", "0"])
    def test_amount_out_of_range(self, db_session, make_user, amount):
        user = make_user(balance="100000")
        with pytest.raises(ValidationError) as exc_info:
            TradeService(db_session).start_trade(user.id, Decimal(amount), now=NOW)

        assert exc_info.value.message == "Amount must be between 5,000 and 50,000 PKR"
        assert user.balance == Decimal("100000")

    def test_sub_cent_amount_is_rejected(self, db_session, make_user):
        user = make_user(balance="10000")
        with pytest.raises(ValidationError) as exc_info:
            TradeService(db_session).start_trade(user.id, Decimal("5000.005"), now=NOW)

        assert exc_info.value.message == "Amount cannot have more than 2 decimal places"
        assert user.balance == Decimal("10000")
        assert db_session.query(Trade).count() == 0

    @pytest.mark.parametrize("amount", ["5000", "50000"])
    def test_amount_bounds_are_inclusive(self, db_session, make_user, amount):
        user = make_user(balance="100000")
        trade = TradeService(db_session).start_trade(user.id, Decimal(amount), now=NOW)
        assert trade.amount == Decimal(amount)

    def test_bot_trade_requires_live_subscription(self, db_session, make_user):
        user = make_user(balance="20000")
        with pytest.raises(SubscriptionRequiredError) as exc_info:
            TradeService(db_session).start_trade(user.id, Decimal("10000"), is_bot=True, now=NOW)

        assert exc_info.value.status_code == 403
        assert user.balance == Decimal("20000")

    def test_bot_trade_uses_subscription_percentage(self, db_session, make_user):
        """Scenario: basic plan purchased, bot trade of 10000 earns 12%"""
        user = make_user(balance="20000")
        BotSubscriptionService(db_session).purchase(user.id, "basic", now=NOW)
        assert user.balance == Decimal("15000")

        trade = TradeService(db_session).start_trade(user.id, Decimal("10000"), is_bot=True, now=NOW)

        assert user.balance == Decimal("5000")
        assert trade.is_bot is True
        assert trade.bot_type == "basic"
        assert trade.profit_percentage == Decimal("12")
        assert trade.profit_amount == Decimal("1200")

    def test_bot_trade_refused_after_subscription_end(self, db_session, make_user):
        user = make_user(balance="20000")
        BotSubscriptionService(db_session).purchase(user.id, "basic", now=NOW)

        with pytest.raises(SubscriptionRequiredError):
            TradeService(db_session).start_trade(
                user.id, Decimal("5000"), is_bot=True, now=NOW + timedelta(days=40)
            )


class TestManualCompletion:
    """User-triggered completion credits principal + profit exactly once"""

    def test_complete_with_stored_terms(self, db_session, make_user):
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)

        completed = service.complete_trade(user.id, trade.id, now=NOW + timedelta(days=3))

        assert completed.status == TradeStatus.COMPLETED.value
        assert completed.end_date == NOW + timedelta(days=3)
        assert user.balance == Decimal("10500")
        assert user.total_profit == Decimal("500")

    def test_second_completion_is_rejected(self, db_session, make_user):
        """Double completion: only the first call credits"""
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)
        service.complete_trade(user.id, trade.id, now=NOW)

        with pytest.raises(NotFoundError) as exc_info:
            service.complete_trade(user.id, trade.id, now=NOW)

        assert exc_info.value.message == "Trade not found or not active"
        assert user.balance == Decimal("10500")
        assert user.total_profit == Decimal("500")

    def test_other_users_trade_cannot_be_completed(self, db_session, make_user):
        owner = make_user(balance="10000")
        intruder = make_user(balance="0")
        service = TradeService(db_session)
        trade = service.start_trade(owner.id, Decimal("5000"), now=NOW)

        with pytest.raises(NotFoundError):
            service.complete_trade(intruder.id, trade.id)
        assert intruder.balance == Decimal("0")

    def test_client_percentage_within_range_is_honoured(self, db_session, make_user, monkeypatch):
        monkeypatch.setattr(Config, "TRUST_CLIENT_PROFIT", True)
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)

        completed = service.complete_trade(user.id, trade.id, profit_percentage=Decimal("15"), now=NOW)

        assert completed.profit_percentage == Decimal("15")
        assert completed.profit_amount == Decimal("750")
        assert user.balance == Decimal("10750")

    def test_client_percentage_out_of_range_is_rejected(self, db_session, make_user, monkeypatch):
        monkeypatch.setattr(Config, "TRUST_CLIENT_PROFIT", True)
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)

        with pytest.raises(ValidationError):
            service.complete_trade(user.id, trade.id, profit_percentage=Decimal("50"), now=NOW)

        db_session.refresh(trade)
        assert trade.status == TradeStatus.ACTIVE.value
        assert user.balance == Decimal("5000")

    def test_client_profit_above_ceiling_is_rejected(self, db_session, make_user, monkeypatch):
        monkeypatch.setattr(Config, "TRUST_CLIENT_PROFIT", True)
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)

        with pytest.raises(ValidationError):
            service.complete_trade(user.id, trade.id, profit=Decimal("5000"), now=NOW)

    def test_client_figures_ignored_when_not_trusted(self, db_session, make_user, monkeypatch):
        monkeypatch.setattr(Config, "TRUST_CLIENT_PROFIT", False)
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)

        completed = service.complete_trade(
            user.id, trade.id, profit=Decimal("700"), profit_percentage=Decimal("14"), now=NOW
        )

        assert completed.profit_amount == Decimal("500")
        assert completed.profit_percentage == Decimal("10")
        assert user.balance == Decimal("10500")


class TestExpiryCompletion:

    def test_complete_expired_trade_keeps_scheduled_end(self, db_session, make_user):
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)
        scheduled_end = trade.end_date

        assert service.complete_expired_trade(trade) is True
        db_session.refresh(trade)

        assert trade.status == TradeStatus.COMPLETED.value
        assert trade.end_date == scheduled_end
        assert user.balance == Decimal("10500")

    def test_expiry_after_manual_completion_does_not_pay_twice(self, db_session, make_user):
        user = make_user(balance="10000")
        service = TradeService(db_session)
        trade = service.start_trade(user.id, Decimal("5000"), now=NOW)
        service.complete_trade(user.id, trade.id, now=NOW)

        assert service.complete_expired_trade(trade) is False
        assert user.balance == Decimal("10500")


class TestReadSide:

    def test_list_trades_filters_and_paginates(self, db_session, make_user):
        user = make_user(balance="50000")
        service = TradeService(db_session)
        first = service.start_trade(user.id, Decimal("5000"), now=NOW)
        service.start_trade(user.id, Decimal("6000"), now=NOW)
        service.start_trade(user.id, Decimal("7000"), now=NOW)
        service.complete_trade(user.id, first.id, now=NOW)

        active = service.list_trades(user.id, status="active", page=1, limit=1)
        assert active["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}
        assert len(active["trades"]) == 1

        completed = service.list_trades(user.id, status="completed")
        assert [t["id"] for t in completed["trades"]] == [first.id]

    def test_get_trade_enforces_ownership(self, db_session, make_user):
        owner = make_user(balance="10000")
        other = make_user()
        service = TradeService(db_session)
        trade = service.start_trade(owner.id, Decimal("5000"), now=NOW)

        assert service.get_trade(owner.id, trade.id).id == trade.id
        with pytest.raises(NotFoundError):
            service.get_trade(other.id, trade.id)

    def test_serialized_trade_uses_client_field_names(self, db_session, make_user):
        user = make_user(balance="10000")
        trade = TradeService(db_session).start_trade(user.id, Decimal("5000"), now=NOW)
        data = serialize_trade(trade)

        assert data["profitAmount"] == Decimal("500")
        assert data["isBot"] is False
        assert data["endDate"] == datetime(2024, 2, 15, 10, 0, 0)

    def test_graph_data_is_a_bounded_random_walk(self):
        points = TradeService.graph_data(days=30, now=NOW, rng=random.Random(7))

        assert len(points) == 30
        assert points[-1]["date"] == "2024-01-15"
        assert all(point["value"] >= 100 for point in points)
