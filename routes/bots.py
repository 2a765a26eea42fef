"""
Bot Routes
Plan catalog, subscription lifecycle, and the admin review queue
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import require_admin, require_verified
from routes.schemas import PurchaseBotRequest, RequestBotSubscriptionRequest, ReviewSubscriptionRequest
from services.bot_subscription_service import BotSubscriptionService, serialize_subscription
from utils.responses import success_response

router = APIRouter(prefix="/bots", tags=["bots"])


@router.get("/plans")
def list_plans():
    return success_response(BotSubscriptionService.list_plans())


@router.get("/subscription")
def get_subscription(user: User = Depends(require_verified), db: Session = Depends(get_db)):
    return success_response(BotSubscriptionService(db).current_subscription(user.id))


@router.post("/request-subscription")
def request_subscription(body: RequestBotSubscriptionRequest, user: User = Depends(require_verified),
                         db: Session = Depends(get_db)):
    subscription = BotSubscriptionService(db).request_subscription(user.id, body.plan_id, body.payment_proof_url)
    return success_response(
        {"requestId": subscription.id},
        message="Bot subscription request submitted successfully. It will be reviewed by our team.",
        status_code=201,
    )


@router.post("/purchase")
def purchase(body: PurchaseBotRequest, user: User = Depends(require_verified), db: Session = Depends(get_db)):
    subscription = BotSubscriptionService(db).purchase(user.id, body.plan_id)
    return success_response(serialize_subscription(subscription), message="Bot plan purchased successfully",
                            status_code=201)


@router.post("/cancel-subscription")
def cancel_subscription(user: User = Depends(require_verified), db: Session = Depends(get_db)):
    subscription = BotSubscriptionService(db).cancel(user.id)
    return success_response(serialize_subscription(subscription), message="Bot subscription cancelled successfully")


@router.get("/admin/subscriptions")
def list_subscriptions(status: Optional[str] = None, admin: User = Depends(require_admin),
                       db: Session = Depends(get_db)):
    subscriptions = BotSubscriptionService(db).list_for_admin(status)
    return success_response([serialize_subscription(s, include_user=True) for s in subscriptions])


@router.put("/admin/subscriptions/{subscription_id}")
def review_subscription(subscription_id: int, body: ReviewSubscriptionRequest,
                        admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    subscription = BotSubscriptionService(db).review(subscription_id, body.action, body.admin_note)
    outcome = "approved" if body.action == "approve" else "rejected"
    return success_response(
        serialize_subscription(subscription),
        message=f"Bot subscription {outcome} successfully",
    )
