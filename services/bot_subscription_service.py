"""
Bot Subscription Service
Plan catalog, purchase, request/approval workflow, cancellation and expiry.

A subscription carries two axes: the workflow `status` and the `is_active`
entitlement flag. At most one subscription per user holds the entitlement;
activating one first switches off every other (reason: superseded).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from models import BotSubscription, BotSubscriptionStatus, BotType, DeactivationReason
from services.balance_service import BalanceService
from utils.datetime_helpers import add_months, get_naive_utc_now, remaining_days
from utils.exceptions import ConflictError, NotFoundError, ValidationError
from utils.state_validator import SubscriptionStateValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotPlan:
    id: str
    name: str
    profit_percentage: Decimal
    price: Decimal
    description: str
    duration: str = "1 Month"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "profitPercentage": self.profit_percentage,
            "duration": self.duration,
            "price": self.price,
            "description": self.description,
        }


BOT_PLANS: Dict[str, BotPlan] = {
    BotType.BASIC.value: BotPlan(
        id=BotType.BASIC.value,
        name="Basic Bot",
        profit_percentage=Decimal("12"),
        price=Decimal("5000"),
        description="Start with our basic bot and get 12% profit per trade",
    ),
    BotType.ADVANCED.value: BotPlan(
        id=BotType.ADVANCED.value,
        name="Advanced Bot",
        profit_percentage=Decimal("14"),
        price=Decimal("10000"),
        description="Get more profit with our advanced bot at 14% profit per trade",
    ),
    BotType.PRO.value: BotPlan(
        id=BotType.PRO.value,
        name="Pro Bot",
        profit_percentage=Decimal("15"),
        price=Decimal("15000"),
        description="Maximize your profit with our pro bot at 15% profit per trade",
    ),
}


@dataclass(frozen=True)
class SubscriptionState:
    """Tagged view of the two-axis subscription state"""
    workflow: BotSubscriptionStatus
    entitled: bool
    reason: DeactivationReason

    @classmethod
    def of(cls, subscription: BotSubscription) -> "SubscriptionState":
        return cls(
            workflow=BotSubscriptionStatus(subscription.status),
            entitled=bool(subscription.is_active),
            reason=DeactivationReason(subscription.deactivation_reason),
        )

    def is_live(self, end_date: datetime, now: datetime) -> bool:
        return self.entitled and self.workflow == BotSubscriptionStatus.ACTIVE and end_date >= now


def get_plan(plan_id: str) -> BotPlan:
    plan = BOT_PLANS.get(plan_id)
    if plan is None:
        raise ValidationError("Invalid bot plan")
    return plan


def serialize_subscription(subscription: BotSubscription, include_user: bool = False) -> Dict[str, Any]:
    state = SubscriptionState.of(subscription)
    data = {
        "id": subscription.id,
        "botType": subscription.bot_type,
        "profitPercentage": subscription.profit_percentage,
        "status": state.workflow.value,
        "isActive": state.entitled,
        "deactivationReason": state.reason.value,
        "startDate": subscription.start_date,
        "endDate": subscription.end_date,
        "paymentProofUrl": subscription.payment_proof_url,
        "adminNote": subscription.admin_note,
        "createdAt": subscription.created_at,
    }
    if include_user and subscription.user is not None:
        data["user"] = {
            "id": subscription.user.id,
            "fullName": subscription.user.full_name,
            "email": subscription.user.email,
            "profileImage": subscription.user.profile_image,
        }
    return data


class BotSubscriptionService:
    """Subscription lifecycle against the user wallet"""

    def __init__(self, db: Session):
        self.db = db
        self.balance = BalanceService(db)

    @staticmethod
    def list_plans() -> List[Dict[str, Any]]:
        return [plan.to_dict() for plan in BOT_PLANS.values()]

    def request_subscription(self, user_id: int, plan_id: str, payment_proof_url: Optional[str],
                             now: Optional[datetime] = None) -> BotSubscription:
        """Record a pending request with payment proof; no balance change"""
        now = now or get_naive_utc_now()
        plan = get_plan(plan_id)
        if not payment_proof_url:
            raise ValidationError("Payment proof is required")

        existing = (
            self.db.query(BotSubscription)
            .filter(
                BotSubscription.user_id == user_id,
                BotSubscription.bot_type == plan.id,
                BotSubscription.status == BotSubscriptionStatus.PENDING.value,
            )
            .first()
        )
        if existing is not None:
            raise ConflictError("You already have a pending request for this bot plan")

        subscription = BotSubscription(
            user_id=user_id,
            bot_type=plan.id,
            profit_percentage=plan.profit_percentage,
            status=BotSubscriptionStatus.PENDING.value,
            is_active=False,
            deactivation_reason=DeactivationReason.NONE.value,
            start_date=now,
            end_date=add_months(now, 1),
            payment_proof_url=payment_proof_url,
        )
        try:
            self.db.add(subscription)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"📝 Bot subscription request {subscription.id} ({plan.id}) created for user {user_id}")
        return subscription

    def purchase(self, user_id: int, plan_id: str, now: Optional[datetime] = None) -> BotSubscription:
        """Debit the plan price and activate immediately, superseding any live subscription"""
        now = now or get_naive_utc_now()
        plan = get_plan(plan_id)

        try:
            self.balance.debit(user_id, plan.price, reason=f"bot plan {plan.id}")
            self._supersede_active(user_id)
            subscription = BotSubscription(
                user_id=user_id,
                bot_type=plan.id,
                profit_percentage=plan.profit_percentage,
                status=BotSubscriptionStatus.ACTIVE.value,
                is_active=True,
                deactivation_reason=DeactivationReason.NONE.value,
                start_date=now,
                end_date=add_months(now, 1),
            )
            self.db.add(subscription)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🤖 User {user_id} purchased {plan.name} for {plan.price} (subscription {subscription.id})")
        return subscription

    def review(self, subscription_id: int, action: str, admin_note: Optional[str] = None,
               now: Optional[datetime] = None) -> BotSubscription:
        """Admin approve/reject of a pending request"""
        now = now or get_naive_utc_now()
        if action not in ("approve", "reject"):
            raise ValidationError("Invalid action. Must be 'approve' or 'reject'")

        subscription = self.db.get(BotSubscription, subscription_id)
        if subscription is None:
            raise NotFoundError("Bot subscription not found")
        if subscription.status != BotSubscriptionStatus.PENDING.value:
            raise ValidationError(f"Cannot {action} subscription that is not in pending status")

        target = BotSubscriptionStatus.ACTIVE if action == "approve" else BotSubscriptionStatus.REJECTED
        SubscriptionStateValidator.ensure_transition(subscription.status, target, subscription.id)

        try:
            if action == "approve":
                self._supersede_active(subscription.user_id, exclude_id=subscription.id)
                subscription.is_active = True
                subscription.start_date = now
                subscription.end_date = add_months(now, 1)
                subscription.deactivation_reason = DeactivationReason.NONE.value
            subscription.status = target.value
            if admin_note:
                subscription.admin_note = admin_note
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🛂 Bot subscription {subscription.id} {target.value} for user {subscription.user_id}")
        return subscription

    def cancel(self, user_id: int) -> BotSubscription:
        subscription = (
            self.db.query(BotSubscription)
            .filter(BotSubscription.user_id == user_id, BotSubscription.is_active.is_(True))
            .first()
        )
        if subscription is None:
            raise NotFoundError("No active bot subscription found")

        try:
            subscription.is_active = False
            subscription.status = BotSubscriptionStatus.CANCELLED.value
            subscription.deactivation_reason = DeactivationReason.CANCELLED.value
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🛑 Bot subscription {subscription.id} cancelled by user {user_id}")
        return subscription

    def expire(self, subscription: BotSubscription, now: Optional[datetime] = None) -> bool:
        """
        Sweep deactivation. Guarded on is_active so a concurrent cancel or a
        repeated sweep leaves the row untouched.
        """
        now = now or get_naive_utc_now()
        try:
            result = self.db.execute(
                update(BotSubscription)
                .where(
                    BotSubscription.id == subscription.id,
                    BotSubscription.is_active.is_(True),
                    BotSubscription.end_date <= now,
                )
                .values(
                    is_active=False,
                    status=BotSubscriptionStatus.EXPIRED.value,
                    deactivation_reason=DeactivationReason.EXPIRED.value,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                return False
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"⌛ Bot subscription {subscription.id} expired")
        return True

    def current_subscription(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Live subscription with remaining days, else pending indicator, else NotFoundError"""
        now = now or get_naive_utc_now()
        subscription = (
            self.db.query(BotSubscription)
            .filter(
                BotSubscription.user_id == user_id,
                BotSubscription.is_active.is_(True),
                BotSubscription.status == BotSubscriptionStatus.ACTIVE.value,
                BotSubscription.end_date >= now,
            )
            .first()
        )
        if subscription is not None:
            return {
                "isActive": True,
                "isPending": False,
                "id": subscription.id,
                "botType": subscription.bot_type,
                "profitPercentage": subscription.profit_percentage,
                "startDate": subscription.start_date,
                "endDate": subscription.end_date,
                "remainingDays": remaining_days(subscription.end_date, now),
            }

        pending = (
            self.db.query(BotSubscription)
            .filter(
                BotSubscription.user_id == user_id,
                BotSubscription.status == BotSubscriptionStatus.PENDING.value,
            )
            .order_by(BotSubscription.created_at.desc(), BotSubscription.id.desc())
            .first()
        )
        if pending is not None:
            return {
                "isActive": False,
                "isPending": True,
                "botType": pending.bot_type,
                "requestedAt": pending.created_at,
            }

        raise NotFoundError(
            "No active bot subscription found",
            data={"isActive": False, "isPending": False},
        )

    def list_for_admin(self, status: Optional[str] = None) -> List[BotSubscription]:
        query = self.db.query(BotSubscription)
        if status in {s.value for s in BotSubscriptionStatus}:
            query = query.filter(BotSubscription.status == status)
        return query.order_by(BotSubscription.created_at.desc(), BotSubscription.id.desc()).all()

    def _supersede_active(self, user_id: int, exclude_id: Optional[int] = None) -> int:
        conditions = [BotSubscription.user_id == user_id, BotSubscription.is_active.is_(True)]
        if exclude_id is not None:
            conditions.append(BotSubscription.id != exclude_id)

        result = self.db.execute(
            update(BotSubscription)
            .where(*conditions)
            .values(is_active=False, deactivation_reason=DeactivationReason.SUPERSEDED.value)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount:
            logger.info(f"🔁 Superseded {result.rowcount} active subscription(s) for user {user_id}")
        return result.rowcount
