"""
User Service
Profile updates, dashboard aggregation, and admin user management.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import BankAccount, Trade, TradeStatus, User
from services.auth_service import serialize_user
from services.bank_account_service import serialize_bank_account
from services.payment_method_service import mask_bank_number
from services.referral_service import ReferralService
from utils.datetime_helpers import add_months, get_naive_utc_now
from utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
PERFORMANCE_MONTHS = 6


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user: User, full_name: Optional[str] = None) -> User:
        if full_name is not None:
            full_name = full_name.strip()
            if not 3 <= len(full_name) <= 50:
                raise ValidationError("Full name must be between 3 and 50 characters")
            user.full_name = full_name
        self.db.commit()
        return user

    def update_profile_image(self, user: User, image_url: Optional[str]) -> User:
        """Profile images arrive as already-hosted URLs"""
        if not image_url:
            raise ValidationError("Profile image URL is required")
        user.profile_image = image_url
        self.db.commit()
        return user

    def monthly_performance(self, user_id: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Realized profit per calendar month for the last six months, oldest first"""
        now = now or get_naive_utc_now()
        window_start = add_months(now, -PERFORMANCE_MONTHS)
        completed = (
            self.db.query(Trade.end_date, Trade.profit_amount)
            .filter(
                Trade.user_id == user_id,
                Trade.status == TradeStatus.COMPLETED.value,
                Trade.end_date >= window_start,
            )
            .all()
        )

        totals: Dict[tuple, Decimal] = {}
        for end_date, profit in completed:
            key = (end_date.year, end_date.month)
            totals[key] = totals.get(key, Decimal("0")) + Decimal(profit)

        performance = []
        for offset in range(PERFORMANCE_MONTHS - 1, -1, -1):
            month = add_months(now.replace(day=1), -offset)
            performance.append({
                "month": MONTH_LABELS[month.month - 1],
                "profit": totals.get((month.year, month.month), Decimal("0")),
            })
        return performance

    def dashboard(self, user: User, now: Optional[datetime] = None) -> Dict[str, Any]:
        bank_accounts = (
            self.db.query(BankAccount).filter(BankAccount.user_id == user.id).order_by(BankAccount.id).all()
        )
        counts = dict(
            self.db.query(Trade.status, func.count(Trade.id))
            .filter(Trade.user_id == user.id)
            .group_by(Trade.status)
            .all()
        )
        return {
            "user": {
                "fullName": user.full_name,
                "email": user.email,
                "profileImage": user.profile_image,
            },
            "balance": user.balance,
            "totalProfit": user.total_profit,
            "referralCount": user.referral_count,
            "bankAccounts": [
                {
                    "id": account.id,
                    "bankName": account.bank_name,
                    "accountNumber": mask_bank_number(account.account_number),
                    "isDefault": account.is_default,
                }
                for account in bank_accounts
            ],
            "activeTrades": counts.get(TradeStatus.ACTIVE.value, 0),
            "completedTrades": counts.get(TradeStatus.COMPLETED.value, 0),
            "performance": self.monthly_performance(user.id, now),
        }

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list_users(self) -> List[User]:
        return (
            self.db.query(User)
            .filter(User.is_admin.is_(False))
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

    def user_details(self, user_id: int) -> Dict[str, Any]:
        user = self.get_user(user_id)
        bank_accounts = self.db.query(BankAccount).filter(BankAccount.user_id == user.id).all()
        referrals = ReferralService(self.db).list_referrals(user.id, limit=5)
        trades = (
            self.db.query(Trade)
            .filter(Trade.user_id == user.id)
            .order_by(Trade.created_at.desc(), Trade.id.desc())
            .limit(10)
            .all()
        )

        data = serialize_user(user)
        data["bankAccounts"] = [serialize_bank_account(account) for account in bank_accounts]
        data["referrals"] = [
            {
                "id": referral.id,
                "user": {
                    "id": referral.referred_user.id,
                    "fullName": referral.referred_user.full_name,
                    "email": referral.referred_user.email,
                },
                "joinedAt": referral.created_at,
            }
            for referral in referrals
        ]
        data["trades"] = [
            {
                "id": trade.id,
                "type": "bot" if trade.is_bot else "manual",
                "amount": trade.amount,
                "status": trade.status,
                "createdAt": trade.created_at,
            }
            for trade in trades
        ]
        return data

    def delete_user(self, user_id: int) -> None:
        user = self.get_user(user_id)
        if user.is_admin:
            raise ValidationError("Admin users cannot be deleted")
        try:
            self.db.delete(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.warning(f"🗑️ User {user_id} deleted by admin")
