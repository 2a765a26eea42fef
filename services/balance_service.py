"""
Balance Service
The only path by which a user's balance and total profit change.

Every mutation is a single SQL statement against the user row, so concurrent
requests for the same user cannot lose updates. Callers run the mutation in the
same session (and therefore the same database transaction) as the entity state
change it pays for, and commit both together.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from models import User
from utils.exceptions import InsufficientFundsError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class BalanceService:
    """Atomic debit and credit operations on the user wallet"""

    def __init__(self, db: Session):
        self.db = db

    def debit(self, user_id: int, amount: Decimal, reason: str = "") -> None:
        """
        Conditionally subtract `amount` from the balance.

        Raises:
            InsufficientFundsError: balance < amount at the time of the update
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError("Debit amount must be positive")

        result = self.db.execute(
            update(User)
            .where(User.id == user_id, User.balance >= amount)
            .values(balance=User.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if self.db.get(User, user_id) is None:
                raise NotFoundError("User not found")
            logger.info(f"💸 Debit refused for user {user_id}: insufficient balance for {amount} ({reason})")
            raise InsufficientFundsError("Insufficient balance")

        self._expire_user(user_id)
        logger.info(f"💸 Debited {amount} from user {user_id} ({reason})")

    def credit(self, user_id: int, amount: Decimal, profit: Optional[Decimal] = None, reason: str = "") -> None:
        """Atomically add `amount` to the balance and `profit` to the total profit"""
        amount = Decimal(amount)
        profit = Decimal(profit) if profit is not None else Decimal("0")
        if amount < 0 or profit < 0:
            raise ValidationError("Credit amounts must not be negative")

        values = {"balance": User.balance + amount}
        if profit:
            values["total_profit"] = User.total_profit + profit

        result = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")

        self._expire_user(user_id)
        logger.info(f"💰 Credited {amount} (profit {profit}) to user {user_id} ({reason})")

    def get_balance(self, user_id: int) -> Decimal:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.balance

    def _expire_user(self, user_id: int) -> None:
        # Loaded User objects must re-read the columns changed behind the ORM's back
        user = self.db.identity_map.get(self.db.identity_key(User, user_id))
        if user is not None:
            self.db.expire(user, ["balance", "total_profit"])
