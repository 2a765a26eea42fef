"""
Request bodies for the API routes

Field names follow the client's camelCase JSON; presence and range rules that
carry user-facing messages live in the services.
"""
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# Auth

class RegisterRequest(RequestModel):
    full_name: str = Field(..., alias="fullName")
    email: str
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")
    referral_code: Optional[str] = Field(None, alias="referralCode")


class VerifyOtpRequest(RequestModel):
    email: str
    otp: str


class LoginRequest(RequestModel):
    email: str
    password: str


class ForgotPasswordRequest(RequestModel):
    email: str


class VerifyResetTokenRequest(RequestModel):
    email: str
    token: str


class ResetPasswordRequest(RequestModel):
    email: str
    token: str
    new_password: str = Field(..., alias="newPassword")
    confirm_password: str = Field(..., alias="confirmPassword")


# Trades

class StartTradeRequest(RequestModel):
    amount: Decimal
    is_bot: bool = Field(False, alias="isBot")


class CompleteTradeRequest(RequestModel):
    profit: Optional[Decimal] = None
    profit_percentage: Optional[Decimal] = Field(None, alias="profitPercentage")


# Bots

class PurchaseBotRequest(RequestModel):
    plan_id: str = Field(..., alias="planId")


class RequestBotSubscriptionRequest(RequestModel):
    plan_id: str = Field(..., alias="planId")
    payment_proof_url: Optional[str] = Field(None, alias="paymentProofUrl")


class ReviewSubscriptionRequest(RequestModel):
    action: str
    admin_note: Optional[str] = Field(None, alias="adminNote")


# Transactions

class DepositRequest(RequestModel):
    amount: Decimal
    payment_method_id: Union[int, str] = Field(..., alias="paymentMethodId")
    transaction_reference: Optional[str] = Field(None, alias="transactionReference")


class WithdrawalRequest(RequestModel):
    amount: Decimal
    payment_method_id: Union[int, str] = Field(..., alias="paymentMethodId")


class TransactionStatusRequest(RequestModel):
    status: str
    admin_note: Optional[str] = Field(None, alias="adminNote")


# Banks and payment methods

class AddBankAccountRequest(RequestModel):
    bank_name: Optional[str] = Field(None, alias="bankName")
    account_number: Optional[str] = Field(None, alias="accountNumber")
    account_holder: Optional[str] = Field(None, alias="accountHolder")


class UpdateBankAccountRequest(RequestModel):
    bank_name: Optional[str] = Field(None, alias="bankName")
    account_holder: Optional[str] = Field(None, alias="accountHolder")


class AddPaymentMethodRequest(RequestModel):
    type: str
    account_number: str = Field(..., alias="accountNumber")
    account_title: str = Field(..., alias="accountTitle")
    bank_name: Optional[str] = Field(None, alias="bankName")


class UpdatePaymentMethodRequest(RequestModel):
    account_title: Optional[str] = Field(None, alias="accountTitle")
    bank_name: Optional[str] = Field(None, alias="bankName")


# Users and events

class UpdateProfileRequest(RequestModel):
    full_name: Optional[str] = Field(None, alias="fullName")


class UpdateProfileImageRequest(RequestModel):
    profile_image: Optional[str] = Field(None, alias="profileImage")


class CreateEventRequest(RequestModel):
    title: Optional[str] = None
    description: Optional[str] = None


class UpdateEventRequest(RequestModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")
