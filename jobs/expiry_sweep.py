"""
Expiry Sweep - completes past-due trades and deactivates expired bot subscriptions

Each entity is processed in its own database transaction; one failure is
logged and the sweep moves on. Completion and deactivation are conditional
updates, so re-running the sweep (or racing a manual completion) never pays
twice.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from database import SessionLocal
from models import BotSubscription, Trade, TradeStatus
from services.bot_subscription_service import BotSubscriptionService
from services.trade_service import TradeService
from utils.datetime_helpers import get_naive_utc_now

logger = logging.getLogger(__name__)


def sweep_expired_trades(session_factory: Callable[[], Session] = SessionLocal,
                         now: Optional[datetime] = None) -> Dict[str, Any]:
    """Complete every active trade whose end date has passed, crediting its stored profit"""
    now = now or get_naive_utc_now()
    results = {"success": True, "processed": 0, "completed": 0, "skipped": 0, "errors": 0}

    session = session_factory()
    try:
        due_ids = [
            trade_id for (trade_id,) in session.query(Trade.id)
            .filter(Trade.status == TradeStatus.ACTIVE.value, Trade.end_date <= now)
            .order_by(Trade.end_date)
            .all()
        ]
        logger.info(f"🔄 Found {len(due_ids)} expired trades to complete")

        service = TradeService(session)
        for trade_id in due_ids:
            results["processed"] += 1
            try:
                trade = session.get(Trade, trade_id)
                if trade is None or trade.status != TradeStatus.ACTIVE.value:
                    results["skipped"] += 1
                    continue
                if service.complete_expired_trade(trade):
                    results["completed"] += 1
                else:
                    results["skipped"] += 1
            except Exception as e:
                session.rollback()
                results["errors"] += 1
                logger.error(f"❌ Error completing trade {trade_id}: {e}", exc_info=True)
    except Exception as e:
        session.rollback()
        results["success"] = False
        logger.error(f"❌ Trade expiry sweep failed: {e}", exc_info=True)
    finally:
        session.close()

    logger.info(
        f"✅ Trade expiry sweep: {results['completed']} completed, "
        f"{results['skipped']} skipped, {results['errors']} errors"
    )
    return results


def sweep_expired_subscriptions(session_factory: Callable[[], Session] = SessionLocal,
                                now: Optional[datetime] = None) -> Dict[str, Any]:
    """Deactivate every entitled subscription whose end date has passed"""
    now = now or get_naive_utc_now()
    results = {"success": True, "processed": 0, "deactivated": 0, "skipped": 0, "errors": 0}

    session = session_factory()
    try:
        due_ids = [
            subscription_id for (subscription_id,) in session.query(BotSubscription.id)
            .filter(BotSubscription.is_active.is_(True), BotSubscription.end_date <= now)
            .all()
        ]
        logger.info(f"🔄 Found {len(due_ids)} expired bot subscriptions to deactivate")

        service = BotSubscriptionService(session)
        for subscription_id in due_ids:
            results["processed"] += 1
            try:
                subscription = session.get(BotSubscription, subscription_id)
                if subscription is not None and service.expire(subscription, now=now):
                    results["deactivated"] += 1
                else:
                    results["skipped"] += 1
            except Exception as e:
                session.rollback()
                results["errors"] += 1
                logger.error(f"❌ Error deactivating bot subscription {subscription_id}: {e}", exc_info=True)
    except Exception as e:
        session.rollback()
        results["success"] = False
        logger.error(f"❌ Subscription expiry sweep failed: {e}", exc_info=True)
    finally:
        session.close()

    logger.info(
        f"✅ Subscription expiry sweep: {results['deactivated']} deactivated, "
        f"{results['skipped']} skipped, {results['errors']} errors"
    )
    return results


async def run_trade_expiry() -> Dict[str, Any]:
    """Scheduler entry point; the sweep's blocking database work runs in a worker thread"""
    return await asyncio.to_thread(sweep_expired_trades)


async def run_subscription_expiry() -> Dict[str, Any]:
    return await asyncio.to_thread(sweep_expired_subscriptions)
