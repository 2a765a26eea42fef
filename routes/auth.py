"""
Auth Routes
Registration with OTP verification, login, and the password reset flow
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import get_current_user, get_email_service
from routes.schemas import (
    ForgotPasswordRequest, LoginRequest, RegisterRequest, ResetPasswordRequest,
    VerifyOtpRequest, VerifyResetTokenRequest
)
from services.auth_service import AuthService, serialize_user
from services.email_service import EmailService
from utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(db: Session = Depends(get_db),
                     email_service: EmailService = Depends(get_email_service)) -> AuthService:
    return AuthService(db, email_service=email_service)


@router.post("/register")
def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    user = auth.register(
        full_name=body.full_name,
        email=body.email,
        password=body.password,
        confirm_password=body.confirm_password,
        referral_code=body.referral_code,
    )
    return success_response(
        {"userId": user.id, "email": user.email},
        message="Registration successful. Please verify your email with the OTP sent.",
        status_code=201,
    )


@router.post("/verify-otp")
def verify_otp(body: VerifyOtpRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.verify_otp(body.email, body.otp)
    return success_response(result, message="Email verified successfully")


@router.post("/login")
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.login(body.email, body.password)
    return success_response(result, message="Login successful")


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.forgot_password(body.email)
    return success_response(message="Password reset link sent to your email.")


@router.post("/verify-reset-token")
def verify_reset_token(body: VerifyResetTokenRequest, auth: AuthService = Depends(get_auth_service)):
    auth.verify_reset_token(body.email, body.token)
    return success_response(message="Token is valid.")


@router.post("/reset-password-with-token")
def reset_password_with_token(body: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.reset_password_with_token(
        email=body.email,
        token=body.token,
        new_password=body.new_password,
        confirm_password=body.confirm_password,
    )
    return success_response(message="Password has been reset successfully")


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return success_response(serialize_user(user))
