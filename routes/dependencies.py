"""
Shared route dependencies: bearer-token authentication, verification and admin gates
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from database import get_db
from models import User
from services.auth_service import AuthService
from services.email_service import EmailService
from utils.exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

VERIFICATION_REQUIRED_MESSAGE = "Email verification required. Please verify your email to access this resource."


def get_email_service() -> EmailService:
    return EmailService()


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Authentication required. Please log in.")
    token = authorization.split(" ", 1)[1].strip()
    return AuthService(db).authenticate_token(token)


def require_verified(user: User = Depends(get_current_user)) -> User:
    if not user.is_verified:
        raise AuthorizationError(VERIFICATION_REQUIRED_MESSAGE)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        logger.warning(f"🚫 Non-admin user {user.id} attempted an admin action")
        raise AuthorizationError("Access denied. Admin privileges required.")
    return user
