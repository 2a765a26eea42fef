"""
Referral Service
Referral records are created once per (referrer, referred) pair when the
referred user verifies their email.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from config import Config
from models import Referral, User

logger = logging.getLogger(__name__)


def serialize_referral(referral: Referral) -> Dict[str, Any]:
    referred = referral.referred_user
    return {
        "id": referral.id,
        "user": {
            "id": referred.id,
            "fullName": referred.full_name,
            "email": referred.email,
        } if referred is not None else None,
        "tradeAmount": referral.total_trade_amount,
        "rewardAmount": referral.reward_amount,
        "isRewardClaimed": referral.is_reward_claimed,
        "joinedAt": referral.created_at,
    }


class ReferralService:
    def __init__(self, db: Session):
        self.db = db

    def find_referrer(self, referral_code: Optional[str]) -> Optional[User]:
        """Look up a referrer by code; unknown codes are logged and ignored"""
        if not referral_code:
            return None
        code = referral_code.strip().upper()
        referrer = self.db.query(User).filter(User.referral_code == code).first()
        if referrer is None:
            logger.info(f"Invalid referral code provided: {referral_code}")
        return referrer

    def create_referral_once(self, referrer_id: int, referred_user_id: int) -> Optional[Referral]:
        """
        Idempotent creation inside a savepoint, so a failure here never undoes
        the caller's surrounding work.

        Returns the new record, or None when it already existed or could not be written.
        """
        existing = (
            self.db.query(Referral)
            .filter(Referral.referrer_id == referrer_id, Referral.referred_user_id == referred_user_id)
            .first()
        )
        if existing is not None:
            logger.info(f"Referral record already exists for {referrer_id} -> {referred_user_id}")
            return None

        try:
            with self.db.begin_nested():
                referral = Referral(
                    referrer_id=referrer_id,
                    referred_user_id=referred_user_id,
                    total_trade_amount=Decimal("0"),
                    reward_amount=Decimal("0"),
                    is_reward_claimed=False,
                )
                self.db.add(referral)
        except IntegrityError:
            logger.info(f"Referral record for {referrer_id} -> {referred_user_id} created concurrently")
            return None
        except Exception as e:
            logger.error(f"❌ Failed to create referral record {referrer_id} -> {referred_user_id}: {e}")
            return None

        logger.info(f"🤝 Referral record created: {referrer_id} -> {referred_user_id}")
        return referral

    def list_referrals(self, referrer_id: int, limit: Optional[int] = None) -> List[Referral]:
        query = (
            self.db.query(Referral)
            .options(joinedload(Referral.referred_user))
            .filter(Referral.referrer_id == referrer_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def summary(self, user: User) -> Dict[str, Any]:
        referrals = self.list_referrals(user.id)
        total_reward = sum((r.reward_amount for r in referrals), Decimal("0"))
        return {
            "referralCode": user.referral_code,
            "referralCount": len(referrals),
            "referralLink": f"{Config.FRONTEND_URL}/register?ref={user.referral_code}",
            "eligibleForReward": len(referrals) >= Config.REFERRAL_REWARD_THRESHOLD,
            "totalReward": total_reward,
            "referrals": [serialize_referral(r) for r in referrals],
        }
