"""
Payment Method Service
Payee descriptors for the local rails: bank account, Easypaisa, JazzCash.

Each rail validates its own fields and masks its own account number. One
method per user is the default; the first one added takes the flag.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from models import PaymentMethod, PaymentMethodType
from utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MOBILE_NUMBER_PATTERN = re.compile(r"^(03\d{9})$")


def mask_bank_number(account_number: str) -> str:
    """Last four digits visible, rest replaced by '*' at full length"""
    return account_number[-4:].rjust(len(account_number), "*")


def mask_mobile_number(account_number: str) -> str:
    return account_number[:4] + "******"


class PaymentRail:
    method_type: PaymentMethodType
    requires_reference = False

    def validate(self, account_number: str, bank_name: Optional[str]) -> None:
        if not account_number:
            raise ValidationError("Account number is required")

    def mask(self, account_number: str) -> str:
        return mask_bank_number(account_number)


class BankRail(PaymentRail):
    method_type = PaymentMethodType.BANK

    def validate(self, account_number, bank_name):
        super().validate(account_number, bank_name)
        if not bank_name:
            raise ValidationError("Bank name is required for bank accounts")


class MobileWalletRail(PaymentRail):
    requires_reference = True

    def __init__(self, method_type: PaymentMethodType):
        self.method_type = method_type

    def validate(self, account_number, bank_name):
        super().validate(account_number, bank_name)
        if not MOBILE_NUMBER_PATTERN.match(account_number):
            raise ValidationError("Invalid mobile number format. Use format: 03XXXXXXXXX")

    def mask(self, account_number):
        return mask_mobile_number(account_number)


PAYMENT_RAILS: Dict[PaymentMethodType, PaymentRail] = {
    PaymentMethodType.BANK: BankRail(),
    PaymentMethodType.EASYPAISA: MobileWalletRail(PaymentMethodType.EASYPAISA),
    PaymentMethodType.JAZZCASH: MobileWalletRail(PaymentMethodType.JAZZCASH),
}


def get_rail(method_type: str) -> PaymentRail:
    try:
        return PAYMENT_RAILS[PaymentMethodType(method_type)]
    except ValueError:
        raise ValidationError("Invalid payment method type")


def serialize_payment_method(method: PaymentMethod, unmasked: bool = False) -> Dict[str, Any]:
    rail = get_rail(method.method_type)
    return {
        "id": method.id,
        "type": method.method_type,
        "accountNumber": method.account_number if unmasked else rail.mask(method.account_number),
        "accountTitle": method.account_title,
        "bankName": method.bank_name,
        "isDefault": method.is_default,
    }


class PaymentMethodService:
    def __init__(self, db: Session):
        self.db = db

    def add_method(self, user_id: int, method_type: str, account_number: str, account_title: str,
                   bank_name: Optional[str] = None) -> PaymentMethod:
        rail = get_rail(method_type)
        account_number = (account_number or "").strip()
        rail.validate(account_number, bank_name)
        if not account_title:
            raise ValidationError("Account title is required")

        is_first = self.db.query(PaymentMethod).filter(PaymentMethod.user_id == user_id).count() == 0
        method = PaymentMethod(
            user_id=user_id,
            method_type=rail.method_type.value,
            account_number=account_number,
            account_title=account_title,
            bank_name=bank_name or None,
            is_default=is_first,
        )
        try:
            self.db.add(method)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🏦 Payment method {method.id} ({method.method_type}) added for user {user_id}")
        return method

    def list_methods(self, user_id: int) -> List[PaymentMethod]:
        return (
            self.db.query(PaymentMethod)
            .filter(PaymentMethod.user_id == user_id)
            .order_by(PaymentMethod.id)
            .all()
        )

    def get_owned(self, user_id: int, method_id: int) -> PaymentMethod:
        method = (
            self.db.query(PaymentMethod)
            .filter(PaymentMethod.id == method_id, PaymentMethod.user_id == user_id)
            .first()
        )
        if method is None:
            raise NotFoundError("Payment method not found or not owned by user")
        return method

    def update_method(self, user_id: int, method_id: int, account_title: Optional[str] = None,
                      bank_name: Optional[str] = None) -> PaymentMethod:
        method = self.get_owned(user_id, method_id)
        if account_title:
            method.account_title = account_title
        if bank_name and method.method_type == PaymentMethodType.BANK.value:
            method.bank_name = bank_name
        self.db.commit()
        return method

    def set_default(self, user_id: int, method_id: int) -> PaymentMethod:
        method = self.get_owned(user_id, method_id)
        try:
            self.db.execute(
                update(PaymentMethod)
                .where(PaymentMethod.user_id == user_id)
                .values(is_default=False)
                .execution_options(synchronize_session="fetch")
            )
            method.is_default = True
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return method

    def delete_method(self, user_id: int, method_id: int) -> None:
        """Delete and, if it held the default flag, promote the oldest remaining method"""
        method = self.get_owned(user_id, method_id)
        was_default = method.is_default
        try:
            self.db.delete(method)
            self.db.flush()
            if was_default:
                successor = (
                    self.db.query(PaymentMethod)
                    .filter(PaymentMethod.user_id == user_id)
                    .order_by(PaymentMethod.id)
                    .first()
                )
                if successor is not None:
                    successor.is_default = True
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"🗑️ Payment method {method_id} deleted for user {user_id}")
