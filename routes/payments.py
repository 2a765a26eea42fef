"""
Payment Method Routes
Bank, Easypaisa and JazzCash payees; account numbers are masked except for admins
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import require_admin, require_verified
from routes.schemas import AddPaymentMethodRequest, UpdatePaymentMethodRequest
from services.payment_method_service import PaymentMethodService, serialize_payment_method
from services.user_service import UserService
from utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("")
def list_payment_methods(user: User = Depends(require_verified), db: Session = Depends(get_db)):
    methods = PaymentMethodService(db).list_methods(user.id)
    return success_response([serialize_payment_method(m) for m in methods])


@router.post("")
def add_payment_method(body: AddPaymentMethodRequest, user: User = Depends(require_verified),
                       db: Session = Depends(get_db)):
    method = PaymentMethodService(db).add_method(
        user.id, body.type, body.account_number, body.account_title, bank_name=body.bank_name
    )
    return success_response(
        serialize_payment_method(method),
        message="Payment method added successfully",
        status_code=201,
    )


@router.put("/{method_id}")
def update_payment_method(method_id: int, body: UpdatePaymentMethodRequest, user: User = Depends(require_verified),
                          db: Session = Depends(get_db)):
    method = PaymentMethodService(db).update_method(
        user.id, method_id, account_title=body.account_title, bank_name=body.bank_name
    )
    return success_response(serialize_payment_method(method), message="Payment method updated successfully")


@router.patch("/{method_id}/default")
def set_default_payment_method(method_id: int, user: User = Depends(require_verified),
                               db: Session = Depends(get_db)):
    method = PaymentMethodService(db).set_default(user.id, method_id)
    return success_response(serialize_payment_method(method), message="Default payment method updated successfully")


@router.delete("/{method_id}")
def delete_payment_method(method_id: int, user: User = Depends(require_verified), db: Session = Depends(get_db)):
    PaymentMethodService(db).delete_method(user.id, method_id)
    return success_response(message="Payment method deleted successfully")


@router.get("/user/{user_id}")
def list_user_payment_methods(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Unmasked payees of any user, for settling withdrawals"""
    target = UserService(db).get_user(user_id)
    methods = PaymentMethodService(db).list_methods(target.id)
    logger.info(f"🔍 Admin {admin.id} viewed payment methods of user {target.id}")
    return success_response([serialize_payment_method(m, unmasked=True) for m in methods])
