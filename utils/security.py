"""
Credential Security
Password hashing, HMAC-signed bearer tokens, one-time codes and reset tokens
"""

import base64
import hashlib
import hmac
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from config import Config
from utils.datetime_helpers import get_naive_utc_now
from utils.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

PASSWORD_SCHEME = "pbkdf2_sha256"
REFERRAL_ALPHABET = string.ascii_uppercase + string.digits
INVALID_TOKEN_MESSAGE = "Invalid token. Please log in again."
EXPIRED_TOKEN_MESSAGE = "Token has expired. Please log in again."


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Return `scheme$iterations$salt$hash` with urlsafe base64 parts"""
    iterations = iterations or Config.PASSWORD_HASH_ITERATIONS
    salt = secrets.token_bytes(16)
    derived = _kdf(salt, iterations).derive(password.encode("utf-8"))
    return "$".join([
        PASSWORD_SCHEME,
        str(iterations),
        base64.urlsafe_b64encode(salt).decode("ascii"),
        base64.urlsafe_b64encode(derived).decode("ascii"),
    ])


def verify_password(password: str, stored_hash: str) -> bool:
    try:
        scheme, iterations, salt_b64, hash_b64 = stored_hash.split("$")
    except ValueError:
        logger.warning("⚠️ Malformed password hash encountered")
        return False
    if scheme != PASSWORD_SCHEME:
        return False

    salt = base64.urlsafe_b64decode(salt_b64)
    expected = base64.urlsafe_b64decode(hash_b64)
    try:
        _kdf(salt, int(iterations)).verify(password.encode("utf-8"), expected)
        return True
    except InvalidKey:
        return False


@dataclass
class TokenClaims:
    user_id: int
    expires_at: datetime


class AuthTokenSecurity:
    """HMAC-signed bearer tokens: `<user_id>.<expiry_epoch>.<signature>`"""

    @classmethod
    def _sign(cls, message: str) -> str:
        return hmac.new(Config.get_auth_token_secret(), message.encode("utf-8"), hashlib.sha256).hexdigest()

    @classmethod
    def issue_token(cls, user_id: int, now: Optional[datetime] = None) -> str:
        now = now or get_naive_utc_now()
        expires_at = now + timedelta(days=Config.AUTH_TOKEN_TTL_DAYS)
        expiry_epoch = int((expires_at - datetime(1970, 1, 1)).total_seconds())
        message = f"{user_id}.{expiry_epoch}"
        return f"{message}.{cls._sign(message)}"

    @classmethod
    def verify_token(cls, token: str, now: Optional[datetime] = None) -> TokenClaims:
        """
        Validate signature and expiry.

        Raises:
            AuthenticationError: invalid signature or format, or expired
        """
        parts = (token or "").split(".")
        if len(parts) != 3:
            raise AuthenticationError(INVALID_TOKEN_MESSAGE)

        user_id_str, expiry_str, signature = parts
        expected = cls._sign(f"{user_id_str}.{expiry_str}")
        if not hmac.compare_digest(expected, signature):
            raise AuthenticationError(INVALID_TOKEN_MESSAGE)

        try:
            user_id = int(user_id_str)
            expires_at = datetime(1970, 1, 1) + timedelta(seconds=int(expiry_str))
        except ValueError:
            raise AuthenticationError(INVALID_TOKEN_MESSAGE)

        if expires_at <= (now or get_naive_utc_now()):
            raise AuthenticationError(EXPIRED_TOKEN_MESSAGE)
        return TokenClaims(user_id=user_id, expires_at=expires_at)


def generate_otp() -> str:
    """Six-digit numeric code"""
    return f"{secrets.randbelow(900000) + 100000}"


def generate_reset_token() -> str:
    """32 random bytes, hex encoded; only its sha256 is stored"""
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_referral_code(full_name: str) -> str:
    """First three letters of the name, upper-cased, plus six random characters"""
    prefix = "".join(ch for ch in full_name if ch.isalpha())[:3].upper()
    suffix = "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(6))
    return f"{prefix}{suffix}"
