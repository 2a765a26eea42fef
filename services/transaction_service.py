"""
Transaction Workflow Service
Deposit and withdrawal requests created pending by users and settled by admins.

Only a deposit's first move into `completed` touches the wallet. The move is a
conditional update on the previous status, so two concurrent approvals credit
once.
"""

import logging
import math
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload

from config import Config
from models import (
    PaymentMethod, PaymentMethodType, Transaction, TransactionStatus, TransactionType
)
from services.balance_service import BalanceService
from services.payment_method_service import get_rail
from utils.exceptions import NotFoundError, ValidationError
from utils.state_validator import TransactionStateValidator

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

MANUAL_PAYMENT_METHOD = "manual"

MANUAL_PAYMENT_METHOD_VIEW = {
    "id": MANUAL_PAYMENT_METHOD,
    "type": MANUAL_PAYMENT_METHOD,
    "accountNumber": "N/A",
    "accountTitle": "Manual Deposit",
    "bankName": "N/A",
}


def serialize_transaction(transaction: Transaction, include_user: bool = False) -> Dict[str, Any]:
    method = transaction.payment_method
    if method is None:
        method_view = dict(MANUAL_PAYMENT_METHOD_VIEW)
    else:
        method_view = {
            "id": method.id,
            "type": method.method_type,
            "accountNumber": get_rail(method.method_type).mask(method.account_number),
            "accountTitle": method.account_title,
            "bankName": method.bank_name,
        }

    data = {
        "id": transaction.id,
        "amount": transaction.amount,
        "type": transaction.transaction_type,
        "status": transaction.status,
        "paymentMethod": method_view,
        "paymentMethodType": transaction.payment_method_type,
        "transactionReference": transaction.reference,
        "description": transaction.description,
        "createdAt": transaction.created_at,
    }
    if include_user:
        user = transaction.user
        data["user"] = {
            "id": user.id,
            "fullName": user.full_name,
            "email": user.email,
            "profileImage": user.profile_image,
        } if user is not None else None
    return data


class TransactionService:
    def __init__(self, db: Session):
        self.db = db
        self.balance = BalanceService(db)

    def _validate_amount(self, amount, label: str) -> Decimal:
        amount = Decimal(str(amount))
        if amount != amount.quantize(CENT):
            raise ValidationError(f"{label} amount cannot have more than 2 decimal places")
        if amount < Config.MIN_TRANSACTION_AMOUNT or amount > Config.MAX_TRANSACTION_AMOUNT:
            raise ValidationError(
                f"{label} amount must be between {Config.MIN_TRANSACTION_AMOUNT:,.0f} and "
                f"{Config.MAX_TRANSACTION_AMOUNT:,.0f} {Config.CURRENCY}"
            )
        return amount

    def _resolve_payment_method(self, user_id: int,
                                payment_method_id: Union[int, str]) -> Optional[PaymentMethod]:
        if str(payment_method_id) == MANUAL_PAYMENT_METHOD:
            return None
        try:
            method_id = int(payment_method_id)
        except (TypeError, ValueError):
            raise ValidationError("Invalid payment method ID")

        method = (
            self.db.query(PaymentMethod)
            .filter(PaymentMethod.id == method_id, PaymentMethod.user_id == user_id)
            .first()
        )
        if method is None:
            raise NotFoundError("Payment method not found or not owned by user")
        return method

    def create_deposit(self, user_id: int, amount, payment_method_id: Union[int, str],
                       transaction_reference: Optional[str] = None) -> Transaction:
        """
        Pending deposit; no balance change until an admin completes it.

        Manual deposits need the payment screenshot URL as reference; mobile
        wallet deposits need the wallet's transaction reference number.
        """
        amount = self._validate_amount(amount, "Deposit")
        method = self._resolve_payment_method(user_id, payment_method_id)

        if method is None:
            if not transaction_reference:
                raise ValidationError("Payment screenshot URL is required for manual deposits")
            method_type = PaymentMethodType.BANK.value
        else:
            method_type = method.method_type
            if get_rail(method_type).requires_reference and not transaction_reference:
                raise ValidationError(f"Transaction reference number is required for {method_type} deposits")

        transaction = Transaction(
            user_id=user_id,
            amount=amount,
            transaction_type=TransactionType.DEPOSIT.value,
            status=TransactionStatus.PENDING.value,
            payment_method_id=method.id if method is not None else None,
            payment_method_type=method_type,
            reference=transaction_reference,
            description=(
                f"Deposit of {amount:f} {Config.CURRENCY} via "
                f"{method.method_type if method is not None else 'manual transfer'}"
            ),
        )
        return self._save(transaction)

    def create_withdrawal(self, user_id: int, amount, payment_method_id: Union[int, str]) -> Transaction:
        """
        Pending withdrawal request. Funds are paid out off-platform by an admin;
        the balance is not reserved here.
        """
        amount = self._validate_amount(amount, "Withdrawal")
        method = self._resolve_payment_method(user_id, payment_method_id)

        description = f"Withdrawal of {amount:f} {Config.CURRENCY}"
        if method is not None:
            description += f" via {method.method_type}"

        transaction = Transaction(
            user_id=user_id,
            amount=amount,
            transaction_type=TransactionType.WITHDRAWAL.value,
            status=TransactionStatus.PENDING.value,
            payment_method_id=method.id if method is not None else None,
            payment_method_type=method.method_type if method is not None else PaymentMethodType.BANK.value,
            description=description,
        )
        return self._save(transaction)

    def _save(self, transaction: Transaction) -> Transaction:
        try:
            self.db.add(transaction)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            f"🧾 {transaction.transaction_type.capitalize()} request {transaction.id} created for "
            f"user {transaction.user_id}: {transaction.amount}"
        )
        return transaction

    def update_status(self, transaction_id: int, status: str, admin_note: Optional[str] = None) -> Transaction:
        """
        Admin settlement. Terminal states are final; repeating the current status
        only appends the note.
        """
        try:
            new_status = TransactionStatus(status)
        except ValueError:
            raise ValidationError("Invalid transaction status")

        transaction = self.db.get(Transaction, transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")

        previous_status = TransactionStatus(transaction.status)
        TransactionStateValidator.ensure_transition(previous_status, new_status, transaction.id)

        values = {"status": new_status.value}
        if admin_note:
            # Appended to the row value at update time
            values["description"] = func.coalesce(Transaction.description, "") + f" | Admin Note: {admin_note}"

        try:
            result = self.db.execute(
                update(Transaction)
                .where(Transaction.id == transaction.id, Transaction.status == previous_status.value)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise ValidationError("Transaction status changed concurrently, please retry")

            moved = previous_status != new_status
            if moved and new_status == TransactionStatus.COMPLETED:
                if transaction.transaction_type == TransactionType.DEPOSIT.value:
                    self.balance.credit(transaction.user_id, transaction.amount, reason=f"deposit {transaction.id}")
                else:
                    logger.warning(
                        f"⚠️ Withdrawal {transaction.id} completed for user {transaction.user_id}: "
                        f"no balance change applied"
                    )
            self.db.commit()
        except ValidationError:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(transaction)
        logger.info(f"🛂 Transaction {transaction.id}: {previous_status.value} -> {new_status.value}")
        return transaction

    def list_transactions(self, user_id: int, is_admin: bool = False, transaction_type: Optional[str] = None,
                          status: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        page = max(1, int(page))
        limit = max(1, int(limit))

        query = self.db.query(Transaction)
        if not is_admin:
            query = query.filter(Transaction.user_id == user_id)
        if transaction_type:
            query = query.filter(Transaction.transaction_type == transaction_type)
        if status:
            query = query.filter(Transaction.status == status)

        total = query.count()
        transactions = (
            query.options(joinedload(Transaction.payment_method), joinedload(Transaction.user))
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "transactions": [serialize_transaction(t, include_user=True) for t in transactions],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
            },
        }

    def get_transaction(self, user_id: int, transaction_id: int, is_admin: bool = False) -> Transaction:
        query = self.db.query(Transaction).filter(Transaction.id == transaction_id)
        if not is_admin:
            query = query.filter(Transaction.user_id == user_id)
        transaction = query.first()
        if transaction is None:
            raise NotFoundError("Transaction not found or not owned by user")
        return transaction
