"""
Authentication Service
Registration with email OTP, login, and the token-based password reset flow.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Config
from models import OTPVerification, User
from services.email_service import EmailService
from services.referral_service import ReferralService
from utils.datetime_helpers import get_naive_utc_now
from utils.exceptions import (
    AuthenticationError, ConflictError, DependencyError, NotFoundError, ValidationError
)
from utils.security import (
    AuthTokenSecurity, generate_otp, generate_referral_code, generate_reset_token,
    hash_password, hash_reset_token, verify_password
)

logger = logging.getLogger(__name__)

INVALID_RESET_TOKEN_MESSAGE = "Password reset token is invalid or has expired."


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "fullName": user.full_name,
        "email": user.email,
        "isVerified": user.is_verified,
        "isAdmin": user.is_admin,
        "profileImage": user.profile_image,
        "balance": user.balance,
        "totalProfit": user.total_profit,
        "referralCode": user.referral_code,
        "referralCount": user.referral_count,
        "referredBy": user.referred_by_id,
        "createdAt": user.created_at,
    }


class AuthService:
    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        self.db = db
        self._email_service = email_service
        self.referrals = ReferralService(db)

    @property
    def email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = EmailService()
        return self._email_service

    def _validate_new_password(self, password: str, confirm_password: str) -> None:
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        if len(password or "") < Config.MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {Config.MIN_PASSWORD_LENGTH} characters")

    def _unique_referral_code(self, full_name: str) -> str:
        for _ in range(10):
            code = generate_referral_code(full_name)
            if self.db.query(User.id).filter(User.referral_code == code).first() is None:
                return code
        raise ConflictError("Could not allocate a referral code, please retry")

    def register(self, full_name: str, email: str, password: str, confirm_password: str,
                 referral_code: Optional[str] = None, now: Optional[datetime] = None) -> User:
        """
        Create an unverified user after the verification code has been emailed.
        Nothing is persisted if the email cannot be sent.
        """
        now = now or get_naive_utc_now()
        full_name = (full_name or "").strip()
        email = normalize_email(email)
        if not 3 <= len(full_name) <= 50:
            raise ValidationError("Full name must be between 3 and 50 characters")
        if "@" not in email:
            raise ValidationError("Invalid email format")
        self._validate_new_password(password, confirm_password)

        if self.db.query(User).filter(User.email == email).first() is not None:
            raise ConflictError("Email already in use")

        referrer = self.referrals.find_referrer(referral_code)
        if referrer is not None:
            logger.info(f"New user {email} referred by user {referrer.id} (code: {referral_code})")

        otp = generate_otp()
        try:
            self.db.add(OTPVerification(
                email=email,
                otp=otp,
                expires_at=now + timedelta(minutes=Config.OTP_TTL_MINUTES),
                created_at=now,
            ))
            self.db.flush()

            if not self.email_service.send_otp_email(email, full_name, otp):
                raise DependencyError("Failed to send OTP email. Please try again.")

            user = User(
                full_name=full_name,
                email=email,
                password_hash=hash_password(password),
                is_verified=False,
                referral_code=self._unique_referral_code(full_name),
                referred_by_id=referrer.id if referrer is not None else None,
            )
            self.db.add(user)
            if referrer is not None:
                self.db.execute(
                    update(User)
                    .where(User.id == referrer.id)
                    .values(referral_count=User.referral_count + 1)
                    .execution_options(synchronize_session=False)
                )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already in use")
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"👤 User {user.id} registered ({email}), awaiting verification")
        return user

    def verify_otp(self, email: str, otp: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or get_naive_utc_now()
        email = normalize_email(email)

        record = (
            self.db.query(OTPVerification)
            .filter(OTPVerification.email == email)
            .order_by(OTPVerification.created_at.desc(), OTPVerification.id.desc())
            .first()
        )
        if record is None:
            raise ValidationError("No OTP found for this email")
        if now > record.expires_at:
            raise ValidationError("OTP has expired. Please request a new one.")
        if record.otp != (otp or "").strip():
            raise ValidationError("Invalid OTP")

        user = self.db.query(User).filter(User.email == email).first()
        if user is None:
            raise NotFoundError("User not found")

        try:
            user.is_verified = True
            if user.referred_by_id is not None:
                self.referrals.create_referral_once(user.referred_by_id, user.id)
            self.db.query(OTPVerification).filter(OTPVerification.email == email).delete(
                synchronize_session=False
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ User {user.id} verified email")
        return {
            "token": AuthTokenSecurity.issue_token(user.id, now=now),
            "user": {"id": user.id, "fullName": user.full_name, "email": user.email},
        }

    def login(self, email: str, password: str) -> Dict[str, Any]:
        email = normalize_email(email)
        user = self.db.query(User).filter(User.email == email).first()
        if user is None:
            raise AuthenticationError("User not found")
        if not verify_password(password or "", user.password_hash):
            raise AuthenticationError("Invalid email or password")

        return {
            "token": AuthTokenSecurity.issue_token(user.id),
            "user": {
                "id": user.id,
                "fullName": user.full_name,
                "email": user.email,
                "isAdmin": user.is_admin,
            },
        }

    def authenticate_token(self, token: str) -> User:
        claims = AuthTokenSecurity.verify_token(token)
        user = self.db.get(User, claims.user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def forgot_password(self, email: str, now: Optional[datetime] = None) -> None:
        """Email a reset link; the stored token is cleared again if the email fails"""
        now = now or get_naive_utc_now()
        email = normalize_email(email)
        user = self.db.query(User).filter(User.email == email).first()
        if user is None:
            raise NotFoundError("No account found with this email")

        reset_token = generate_reset_token()
        user.reset_password_token = hash_reset_token(reset_token)
        user.reset_password_expires = now + timedelta(minutes=Config.PASSWORD_RESET_TTL_MINUTES)
        self.db.commit()

        reset_url = f"{Config.CLIENT_URL}/reset-password?" + urlencode({"token": reset_token, "email": email})
        if not self.email_service.send_password_reset_email(email, user.full_name, reset_url):
            user.reset_password_token = None
            user.reset_password_expires = None
            self.db.commit()
            raise DependencyError("Failed to send password reset email. Please try again.")

        logger.info(f"🔑 Password reset link issued for user {user.id}")

    def _user_for_reset_token(self, email: str, token: str, now: datetime) -> User:
        user = (
            self.db.query(User)
            .filter(
                User.email == normalize_email(email),
                User.reset_password_token.isnot(None),
                User.reset_password_expires > now,
            )
            .first()
        )
        if user is None:
            raise ValidationError(INVALID_RESET_TOKEN_MESSAGE)
        if user.reset_password_token != hash_reset_token(token or ""):
            raise ValidationError("Invalid reset token.")
        return user

    def verify_reset_token(self, email: str, token: str, now: Optional[datetime] = None) -> bool:
        self._user_for_reset_token(email, token, now or get_naive_utc_now())
        return True

    def reset_password_with_token(self, email: str, token: str, new_password: str, confirm_password: str,
                                  now: Optional[datetime] = None) -> None:
        self._validate_new_password(new_password, confirm_password)
        user = self._user_for_reset_token(email, token, now or get_naive_utc_now())
        try:
            user.password_hash = hash_password(new_password)
            user.reset_password_token = None
            user.reset_password_expires = None
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"🔑 Password reset completed for user {user.id}")
