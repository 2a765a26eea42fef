"""Bank accounts saved on the user profile"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import BankAccount
from services.payment_method_service import mask_bank_number
from utils.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DUPLICATE_ACCOUNT_MESSAGE = "This bank account is already added to your profile"


def serialize_bank_account(account: BankAccount) -> Dict[str, Any]:
    return {
        "id": account.id,
        "bankName": account.bank_name,
        "accountNumber": mask_bank_number(account.account_number),
        "accountHolder": account.account_holder,
        "isDefault": account.is_default,
        "createdAt": account.created_at,
    }


class BankAccountService:
    def __init__(self, db: Session):
        self.db = db

    def add_account(self, user_id: int, bank_name: str, account_number: str, account_holder: str) -> BankAccount:
        bank_name = (bank_name or "").strip()
        account_number = (account_number or "").strip()
        account_holder = (account_holder or "").strip()
        if not bank_name or not account_number or not account_holder:
            raise ValidationError("Bank name, account number, and account holder are required")
        if not 10 <= len(account_number) <= 20:
            raise ValidationError("Account number must be between 10 and 20 characters")

        duplicate = (
            self.db.query(BankAccount)
            .filter(BankAccount.user_id == user_id, BankAccount.account_number == account_number)
            .first()
        )
        if duplicate is not None:
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)

        is_first = self.db.query(BankAccount).filter(BankAccount.user_id == user_id).count() == 0
        account = BankAccount(
            user_id=user_id,
            bank_name=bank_name,
            account_number=account_number,
            account_holder=account_holder,
            is_default=is_first,
        )
        try:
            self.db.add(account)
            self.db.commit()
        except IntegrityError:
            # Concurrent insert of the same number
            self.db.rollback()
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🏦 Bank account {account.id} added for user {user_id}")
        return account

    def list_accounts(self, user_id: int) -> List[BankAccount]:
        return (
            self.db.query(BankAccount)
            .filter(BankAccount.user_id == user_id)
            .order_by(BankAccount.id)
            .all()
        )

    def get_owned(self, user_id: int, account_id: int) -> BankAccount:
        account = (
            self.db.query(BankAccount)
            .filter(BankAccount.id == account_id, BankAccount.user_id == user_id)
            .first()
        )
        if account is None:
            raise NotFoundError("Bank account not found or not owned by user")
        return account

    def update_account(self, user_id: int, account_id: int, bank_name: Optional[str] = None,
                       account_holder: Optional[str] = None) -> BankAccount:
        account = self.get_owned(user_id, account_id)
        if bank_name:
            account.bank_name = bank_name.strip()
        if account_holder:
            account.account_holder = account_holder.strip()
        self.db.commit()
        return account

    def set_default(self, user_id: int, account_id: int) -> BankAccount:
        account = self.get_owned(user_id, account_id)
        try:
            self.db.execute(
                update(BankAccount)
                .where(BankAccount.user_id == user_id)
                .values(is_default=False)
                .execution_options(synchronize_session="fetch")
            )
            account.is_default = True
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return account

    def delete_account(self, user_id: int, account_id: int) -> None:
        account = self.get_owned(user_id, account_id)
        was_default = account.is_default
        try:
            self.db.delete(account)
            self.db.flush()
            if was_default:
                successor = (
                    self.db.query(BankAccount)
                    .filter(BankAccount.user_id == user_id)
                    .order_by(BankAccount.id)
                    .first()
                )
                if successor is not None:
                    successor.is_default = True
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"🗑️ Bank account {account_id} deleted for user {user_id}")
