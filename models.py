"""
TradeNest Trading Platform - Database Schema
============================================

Schema for the trading-simulation platform:
- User wallets (spendable balance and realized profit)
- Fixed-term trades and bot subscriptions
- Deposit/withdrawal requests reviewed by admins
- Payee details (payment methods, bank accounts) and referrals

Money columns are Numeric and map to Decimal. All timestamps are naive UTC.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import (
    Integer, String, Numeric, DateTime, Boolean, Text,
    ForeignKey, UniqueConstraint, Index, CheckConstraint, func
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# ============================================================================
# ENUMS - Business Logic Constants
# ============================================================================

class TradeStatus(Enum):
    """Trade lifecycle: active -> completed, exactly once"""
    ACTIVE = "active"
    COMPLETED = "completed"


class BotType(Enum):
    BASIC = "basic"
    ADVANCED = "advanced"
    PRO = "pro"


class BotSubscriptionStatus(Enum):
    """Workflow axis of a bot subscription"""
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class DeactivationReason(Enum):
    """Why an entitlement was switched off"""
    NONE = "none"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethodType(Enum):
    BANK = "bank"
    EASYPAISA = "easypaisa"
    JAZZCASH = "jazzcash"


def _enum_values(enum_cls) -> str:
    return ", ".join(f"'{member.value}'" for member in enum_cls)


# ============================================================================
# CORE MODELS
# ============================================================================

class User(Base):
    """Platform user: identity plus wallet"""
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    profile_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Wallet
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    total_profit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)

    # Referral system
    referral_code: Mapped[str] = mapped_column(String(20), nullable=False)
    referred_by_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True
    )
    referral_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Password reset (sha256 of the emailed token)
    reset_password_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    trades: Mapped[list["Trade"]] = relationship("Trade", back_populates="user", cascade="all, delete-orphan")
    bot_subscriptions: Mapped[list["BotSubscription"]] = relationship(
        "BotSubscription", back_populates="user", cascade="all, delete-orphan"
    )
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="user", cascade="all, delete-orphan"
    )
    payment_methods: Mapped[list["PaymentMethod"]] = relationship(
        "PaymentMethod", back_populates="user", cascade="all, delete-orphan"
    )
    bank_accounts: Mapped[list["BankAccount"]] = relationship(
        "BankAccount", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('ix_users_email', 'email', unique=True),
        Index('ix_users_referral_code', 'referral_code', unique=True),
        CheckConstraint('balance >= 0', name='ck_users_balance_non_negative'),
        CheckConstraint('total_profit >= 0', name='ck_users_total_profit_non_negative'),
        CheckConstraint('referral_count >= 0', name='ck_users_referral_count_non_negative'),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', balance={self.balance})>"


class Trade(Base):
    """Fixed-term capital allocation earning a fixed profit percentage"""
    __tablename__ = 'trades'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    profit_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    profit_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=TradeStatus.ACTIVE.value, nullable=False)
    is_bot: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bot_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="trades")

    __table_args__ = (
        Index('ix_trades_user_status', 'user_id', 'status'),
        Index('ix_trades_status_end_date', 'status', 'end_date'),
        CheckConstraint('amount > 0', name='ck_trades_amount_positive'),
        CheckConstraint('profit_amount >= 0', name='ck_trades_profit_non_negative'),
        CheckConstraint(f"status IN ({_enum_values(TradeStatus)})", name='ck_trades_status'),
    )

    def __repr__(self):
        return f"<Trade(id={self.id}, user_id={self.user_id}, amount={self.amount}, status='{self.status}')>"


class BotSubscription(Base):
    """Entitlement to an elevated profit percentage on bot trades"""
    __tablename__ = 'bot_subscriptions'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    bot_type: Mapped[str] = mapped_column(String(20), nullable=False)
    profit_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    # Two axes: workflow status and entitlement flag
    status: Mapped[str] = mapped_column(String(20), default=BotSubscriptionStatus.PENDING.value, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deactivation_reason: Mapped[str] = mapped_column(
        String(20), default=DeactivationReason.NONE.value, nullable=False
    )

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    payment_proof_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    admin_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="bot_subscriptions")

    __table_args__ = (
        Index('ix_bot_subscriptions_user_active', 'user_id', 'is_active'),
        Index('ix_bot_subscriptions_status', 'status'),
        CheckConstraint(f"bot_type IN ({_enum_values(BotType)})", name='ck_bot_subscriptions_bot_type'),
        CheckConstraint(f"status IN ({_enum_values(BotSubscriptionStatus)})", name='ck_bot_subscriptions_status'),
        CheckConstraint(
            f"deactivation_reason IN ({_enum_values(DeactivationReason)})",
            name='ck_bot_subscriptions_deactivation_reason'
        ),
    )

    def __repr__(self):
        return (
            f"<BotSubscription(id={self.id}, user_id={self.user_id}, bot_type='{self.bot_type}', "
            f"status='{self.status}', is_active={self.is_active})>"
        )


class Transaction(Base):
    """Deposit or withdrawal request against an external payment rail"""
    __tablename__ = 'transactions'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=TransactionStatus.PENDING.value, nullable=False)

    # Null payment_method_id means a manual transfer
    payment_method_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey('payment_methods.id', ondelete='SET NULL'), nullable=True
    )
    payment_method_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="transactions")
    payment_method: Mapped[Optional["PaymentMethod"]] = relationship("PaymentMethod")

    __table_args__ = (
        Index('ix_transactions_user_created', 'user_id', 'created_at'),
        Index('ix_transactions_status', 'status'),
        CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
        CheckConstraint(f"transaction_type IN ({_enum_values(TransactionType)})", name='ck_transactions_type'),
        CheckConstraint(f"status IN ({_enum_values(TransactionStatus)})", name='ck_transactions_status'),
    )

    def __repr__(self):
        return (
            f"<Transaction(id={self.id}, type='{self.transaction_type}', amount={self.amount}, "
            f"status='{self.status}')>"
        )


class PaymentMethod(Base):
    """Stored payee descriptor: bank account, Easypaisa or JazzCash number"""
    __tablename__ = 'payment_methods'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    method_type: Mapped[str] = mapped_column(String(20), nullable=False)
    account_number: Mapped[str] = mapped_column(String(50), nullable=False)
    account_title: Mapped[str] = mapped_column(String(120), nullable=False)
    bank_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="payment_methods")

    __table_args__ = (
        Index('ix_payment_methods_user', 'user_id'),
        CheckConstraint(f"method_type IN ({_enum_values(PaymentMethodType)})", name='ck_payment_methods_type'),
    )


class BankAccount(Base):
    """Bank account saved on the user profile"""
    __tablename__ = 'bank_accounts'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(120), nullable=False)
    account_number: Mapped[str] = mapped_column(String(50), nullable=False)
    account_holder: Mapped[str] = mapped_column(String(120), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="bank_accounts")

    __table_args__ = (
        UniqueConstraint('user_id', 'account_number', name='uq_bank_accounts_user_account_number'),
    )


class Referral(Base):
    """Link between a referring user and a user they referred"""
    __tablename__ = 'referrals'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    referrer_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    referred_user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    total_trade_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    is_reward_claimed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    referrer: Mapped["User"] = relationship("User", foreign_keys=[referrer_id])
    referred_user: Mapped["User"] = relationship("User", foreign_keys=[referred_user_id])

    __table_args__ = (
        UniqueConstraint('referrer_id', 'referred_user_id', name='uq_referrals_pair'),
    )


class OTPVerification(Base):
    """Email verification code issued at registration"""
    __tablename__ = 'otp_verifications'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    otp: Mapped[str] = mapped_column(String(6), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class Event(Base):
    """Admin-published announcement"""
    __tablename__ = 'events'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False
    )
