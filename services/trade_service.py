"""
Trade Lifecycle Service
Opens fixed-term trades (debit) and closes them (credit principal + profit),
either on user request or from the expiry sweep.
"""

import logging
import math
import random
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import Config
from models import BotSubscription, BotSubscriptionStatus, Trade, TradeStatus, User
from services.balance_service import BalanceService
from utils.datetime_helpers import add_months, get_naive_utc_now
from utils.exceptions import (
    NotFoundError, SubscriptionRequiredError, ValidationError
)
from utils.state_validator import TradeStateValidator

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def calculate_profit(amount: Decimal, percentage: Decimal) -> Decimal:
    return (Decimal(amount) * Decimal(percentage) / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)


def serialize_trade(trade: Trade) -> Dict[str, Any]:
    return {
        "id": trade.id,
        "amount": trade.amount,
        "profitPercentage": trade.profit_percentage,
        "profitAmount": trade.profit_amount,
        "startDate": trade.start_date,
        "endDate": trade.end_date,
        "status": trade.status,
        "isBot": trade.is_bot,
        "botType": trade.bot_type,
        "createdAt": trade.created_at,
    }


class TradeService:
    """Trade start, manual completion, expiry completion and read side"""

    def __init__(self, db: Session):
        self.db = db
        self.balance = BalanceService(db)

    def start_trade(self, user_id: int, amount: Decimal, is_bot: bool = False,
                    now: Optional[datetime] = None) -> Trade:
        """
        Debit `amount` and open an active trade ending one calendar month from now.

        Bot trades take the percentage and bot type of the user's live subscription.
        """
        now = now or get_naive_utc_now()
        amount = Decimal(str(amount))
        if amount != amount.quantize(CENT):
            raise ValidationError("Amount cannot have more than 2 decimal places")
        if amount < Config.MIN_TRADE_AMOUNT or amount > Config.MAX_TRADE_AMOUNT:
            raise ValidationError(
                f"Amount must be between {Config.MIN_TRADE_AMOUNT:,.0f} and "
                f"{Config.MAX_TRADE_AMOUNT:,.0f} {Config.CURRENCY}"
            )

        percentage = Config.DEFAULT_PROFIT_PERCENTAGE
        bot_type = None
        if is_bot:
            subscription = (
                self.db.query(BotSubscription)
                .filter(
                    BotSubscription.user_id == user_id,
                    BotSubscription.is_active.is_(True),
                    BotSubscription.end_date >= now,
                )
                .order_by(BotSubscription.end_date.desc())
                .first()
            )
            if subscription is None:
                raise SubscriptionRequiredError()
            percentage = subscription.profit_percentage
            bot_type = subscription.bot_type

        try:
            self.balance.debit(user_id, amount, reason="trade start")
            trade = Trade(
                user_id=user_id,
                amount=amount,
                profit_percentage=Decimal(percentage),
                profit_amount=calculate_profit(amount, percentage),
                start_date=now,
                end_date=add_months(now, 1),
                status=TradeStatus.ACTIVE.value,
                is_bot=bool(is_bot),
                bot_type=bot_type,
            )
            self.db.add(trade)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"📈 Trade {trade.id} started for user {user_id}: {amount} at {percentage}% "
            f"({'bot ' + bot_type if bot_type else 'manual'})"
        )
        return trade

    def complete_trade(self, user_id: int, trade_id: int,
                       profit: Optional[Decimal] = None,
                       profit_percentage: Optional[Decimal] = None,
                       now: Optional[datetime] = None) -> Trade:
        """
        User-triggered completion of an owned active trade.

        Caller-supplied figures are honoured only while TRUST_CLIENT_PROFIT is on,
        and only inside the configured percentage range.
        """
        now = now or get_naive_utc_now()
        trade = (
            self.db.query(Trade)
            .filter(Trade.id == trade_id, Trade.user_id == user_id, Trade.status == TradeStatus.ACTIVE.value)
            .first()
        )
        if trade is None:
            raise NotFoundError("Trade not found or not active")

        final_profit, final_percentage = self._resolve_completion_terms(trade, profit, profit_percentage)

        try:
            closed = self._close_trade(trade, final_profit, final_percentage, end_date=now)
            if not closed:
                self.db.rollback()
                raise NotFoundError("Trade not found or not active")
            self.db.commit()
        except NotFoundError:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(trade)
        logger.info(f"✅ Trade {trade.id} completed manually by user {user_id}: profit {final_profit}")
        return trade

    def complete_expired_trade(self, trade: Trade) -> bool:
        """
        Sweep completion with the stored profit; end date is left as scheduled.

        Returns False when the trade was already closed by someone else.
        """
        if self.db.get(User, trade.user_id) is None:
            logger.warning(f"⚠️ User {trade.user_id} not found for trade {trade.id}, skipping")
            return False

        try:
            closed = self._close_trade(trade, trade.profit_amount, trade.profit_percentage)
            if not closed:
                self.db.rollback()
                logger.info(f"🔄 Trade {trade.id} already completed, skipping")
                return False
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Trade {trade.id} completed by expiry for user {trade.user_id}")
        return True

    def _resolve_completion_terms(self, trade: Trade, profit, profit_percentage):
        if not Config.TRUST_CLIENT_PROFIT or (profit is None and profit_percentage is None):
            return trade.profit_amount, trade.profit_percentage

        percentage = Decimal(str(profit_percentage)) if profit_percentage is not None else trade.profit_percentage
        if percentage < Config.MIN_PROFIT_PERCENTAGE or percentage > Config.MAX_PROFIT_PERCENTAGE:
            raise ValidationError(
                f"Profit percentage must be between {Config.MIN_PROFIT_PERCENTAGE} "
                f"and {Config.MAX_PROFIT_PERCENTAGE}"
            )

        if profit is None:
            return calculate_profit(trade.amount, percentage), percentage

        final_profit = Decimal(str(profit)).quantize(CENT, rounding=ROUND_HALF_UP)
        ceiling = calculate_profit(trade.amount, Config.MAX_PROFIT_PERCENTAGE)
        if final_profit < 0 or final_profit > ceiling:
            raise ValidationError(f"Profit must be between 0 and {ceiling}")
        return final_profit, percentage

    def _close_trade(self, trade: Trade, profit: Decimal, percentage: Decimal,
                     end_date: Optional[datetime] = None) -> bool:
        """Flip active -> completed once and credit principal + profit in the same transaction"""
        TradeStateValidator.ensure_transition(TradeStatus.ACTIVE, TradeStatus.COMPLETED, trade.id)

        values = {
            "status": TradeStatus.COMPLETED.value,
            "profit_amount": profit,
            "profit_percentage": percentage,
        }
        if end_date is not None:
            values["end_date"] = end_date

        result = self.db.execute(
            update(Trade)
            .where(Trade.id == trade.id, Trade.status == TradeStatus.ACTIVE.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False

        self.balance.credit(trade.user_id, trade.amount + profit, profit=profit, reason=f"trade {trade.id}")
        return True

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def list_trades(self, user_id: int, status: Optional[str] = None, is_bot: Optional[bool] = None,
                    page: int = 1, limit: int = 10) -> Dict[str, Any]:
        page = max(1, int(page))
        limit = max(1, int(limit))

        query = self.db.query(Trade).filter(Trade.user_id == user_id)
        if status:
            query = query.filter(Trade.status == status)
        if is_bot is not None:
            query = query.filter(Trade.is_bot.is_(bool(is_bot)))

        total = query.count()
        trades = (
            query.order_by(Trade.created_at.desc(), Trade.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "trades": [serialize_trade(t) for t in trades],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
            },
        }

    def get_trade(self, user_id: int, trade_id: int) -> Trade:
        trade = self.db.query(Trade).filter(Trade.id == trade_id, Trade.user_id == user_id).first()
        if trade is None:
            raise NotFoundError("Trade not found or not owned by user")
        return trade

    @staticmethod
    def graph_data(days: int = 30, now: Optional[datetime] = None,
                   rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
        """Synthetic daily random-walk series for the dashboard chart"""
        rng = rng or random.Random()
        now = now or get_naive_utc_now()
        value = 5000 + rng.random() * 1000
        points = []
        for offset in range(days - 1, -1, -1):
            day = now - timedelta(days=offset)
            value = max(100, value * (1 + (rng.random() * 0.04 - 0.02)))
            points.append({"date": day.strftime("%Y-%m-%d"), "value": round(value, 2)})
        return points
