"""
Lifecycle State Transition Validator
====================================

Prevents invalid state transitions on trades, bot subscriptions and transactions.
Terminal states (completed trades, rejected subscriptions, settled transactions)
never move again.
"""

import logging
from typing import Dict, Optional, Set, Tuple, Type
from enum import Enum
from models import TradeStatus, BotSubscriptionStatus, TransactionStatus
from utils.exceptions import StateTransitionError

logger = logging.getLogger(__name__)


class LifecycleStateValidator:
    """Base validator; subclasses provide the status enum and transition map"""

    STATUS_ENUM: Type[Enum] = Enum
    ENTITY_NAME = "Entity"
    VALID_TRANSITIONS: Dict[Enum, Set[Enum]] = {}

    @classmethod
    def terminal_states(cls) -> Set[Enum]:
        return {state for state, targets in cls.VALID_TRANSITIONS.items() if not targets}

    @classmethod
    def validate_transition(
        cls,
        from_status: Enum,
        to_status: Enum,
        entity_id: Optional[int] = None
    ) -> Tuple[bool, str]:
        """
        Validate if a state transition is allowed.

        Returns:
            Tuple[bool, str]: (is_valid, reason)
        """
        ref = f"{cls.ENTITY_NAME} {entity_id}" if entity_id is not None else cls.ENTITY_NAME

        if from_status == to_status:
            return True, "No status change required"

        valid_next_states = cls.VALID_TRANSITIONS.get(from_status, set())
        if to_status in valid_next_states:
            logger.debug(f"VALID_TRANSITION: {ref} {from_status.value} -> {to_status.value}")
            return True, "Valid state transition"

        error_msg = (
            f"Invalid transition: {from_status.value} -> {to_status.value}. "
            f"Valid transitions from {from_status.value}: "
            f"{sorted(s.value for s in valid_next_states)}"
        )
        logger.warning(f"⚠️ INVALID_TRANSITION: {ref} {from_status.value} -> {to_status.value}")
        return False, error_msg

    @classmethod
    def ensure_transition(cls, from_status, to_status, entity_id: Optional[int] = None) -> None:
        """Raise StateTransitionError unless the transition is allowed"""
        from_enum = cls.STATUS_ENUM(from_status) if isinstance(from_status, str) else from_status
        to_enum = cls.STATUS_ENUM(to_status) if isinstance(to_status, str) else to_status
        is_valid, reason = cls.validate_transition(from_enum, to_enum, entity_id)
        if not is_valid:
            raise StateTransitionError(reason)


class TradeStateValidator(LifecycleStateValidator):
    STATUS_ENUM = TradeStatus
    ENTITY_NAME = "Trade"
    VALID_TRANSITIONS = {
        TradeStatus.ACTIVE: {TradeStatus.COMPLETED},
        TradeStatus.COMPLETED: set(),
    }


class SubscriptionStateValidator(LifecycleStateValidator):
    STATUS_ENUM = BotSubscriptionStatus
    ENTITY_NAME = "BotSubscription"
    VALID_TRANSITIONS = {
        BotSubscriptionStatus.PENDING: {BotSubscriptionStatus.ACTIVE, BotSubscriptionStatus.REJECTED},
        BotSubscriptionStatus.ACTIVE: {BotSubscriptionStatus.EXPIRED, BotSubscriptionStatus.CANCELLED},
        BotSubscriptionStatus.EXPIRED: set(),
        BotSubscriptionStatus.CANCELLED: set(),
        BotSubscriptionStatus.REJECTED: set(),
    }


class TransactionStateValidator(LifecycleStateValidator):
    STATUS_ENUM = TransactionStatus
    ENTITY_NAME = "Transaction"
    VALID_TRANSITIONS = {
        TransactionStatus.PENDING: {TransactionStatus.COMPLETED, TransactionStatus.FAILED},
        TransactionStatus.COMPLETED: set(),
        TransactionStatus.FAILED: set(),
    }
