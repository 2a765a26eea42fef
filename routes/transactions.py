"""
Transaction Routes
Deposit and withdrawal requests; admins settle them through the status endpoint
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import require_admin, require_verified
from routes.schemas import DepositRequest, TransactionStatusRequest, WithdrawalRequest
from services.transaction_service import TransactionService, serialize_transaction
from utils.responses import success_response

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("/deposit")
def create_deposit(body: DepositRequest, user: User = Depends(require_verified), db: Session = Depends(get_db)):
    transaction = TransactionService(db).create_deposit(
        user.id, body.amount, body.payment_method_id, body.transaction_reference
    )
    return success_response(
        serialize_transaction(transaction),
        message="Deposit request created successfully",
        status_code=201,
    )


@router.post("/withdrawal")
def create_withdrawal(body: WithdrawalRequest, user: User = Depends(require_verified),
                      db: Session = Depends(get_db)):
    transaction = TransactionService(db).create_withdrawal(user.id, body.amount, body.payment_method_id)
    return success_response(
        serialize_transaction(transaction),
        message="Withdrawal request submitted successfully",
        status_code=201,
    )


@router.get("")
def list_transactions(
    type: Optional[str] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(require_verified),
    db: Session = Depends(get_db),
):
    result = TransactionService(db).list_transactions(
        user.id, is_admin=user.is_admin, transaction_type=type, status=status, page=page, limit=limit
    )
    return success_response(result)


@router.get("/{transaction_id}")
def get_transaction(transaction_id: int, user: User = Depends(require_verified), db: Session = Depends(get_db)):
    transaction = TransactionService(db).get_transaction(user.id, transaction_id, is_admin=user.is_admin)
    return success_response(serialize_transaction(transaction, include_user=user.is_admin))


@router.put("/{transaction_id}/status")
def update_status(transaction_id: int, body: TransactionStatusRequest, admin: User = Depends(require_admin),
                  db: Session = Depends(get_db)):
    transaction = TransactionService(db).update_status(transaction_id, body.status, body.admin_note)
    return success_response(serialize_transaction(transaction), message=f"Transaction {transaction.status}")
