"""Configuration management for the TradeNest backend"""

import os
import logging
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower().strip() in ("1", "true", "yes", "on")


class Config:
    """Application configuration"""

    # Environment detection
    # ENVIRONMENT takes absolute priority, then NODE_ENV for shared deployments
    ENVIRONMENT = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "")).lower().strip()
    IS_PRODUCTION = ENVIRONMENT == "production"
    CURRENT_ENVIRONMENT = "production" if IS_PRODUCTION else "development"

    API_PREFIX = os.getenv("API_PREFIX", "/api")

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tradenest.db")
    DATABASE_SOURCE = (
        "PostgreSQL" if DATABASE_URL.startswith("postgresql")
        else "SQLite" if DATABASE_URL.startswith("sqlite")
        else "Other"
    )

    # Money rules (PKR)
    CURRENCY = os.getenv("CURRENCY", "PKR")
    MIN_TRADE_AMOUNT = Decimal(os.getenv("MIN_TRADE_AMOUNT", "5000"))
    MAX_TRADE_AMOUNT = Decimal(os.getenv("MAX_TRADE_AMOUNT", "50000"))
    MIN_TRANSACTION_AMOUNT = Decimal(os.getenv("MIN_TRANSACTION_AMOUNT", "5000"))
    MAX_TRANSACTION_AMOUNT = Decimal(os.getenv("MAX_TRANSACTION_AMOUNT", "50000"))
    DEFAULT_PROFIT_PERCENTAGE = Decimal(os.getenv("DEFAULT_PROFIT_PERCENTAGE", "10"))
    MIN_PROFIT_PERCENTAGE = Decimal(os.getenv("MIN_PROFIT_PERCENTAGE", "10"))
    MAX_PROFIT_PERCENTAGE = Decimal(os.getenv("MAX_PROFIT_PERCENTAGE", "15"))

    # Manual trade completion accepts caller-supplied profit figures when enabled
    TRUST_CLIENT_PROFIT = _env_bool("TRUST_CLIENT_PROFIT", "true")

    # Expiry sweep (hourly at minute 0 by default)
    EXPIRY_SWEEP_ENABLED = _env_bool("EXPIRY_SWEEP_ENABLED", "true")
    EXPIRY_SWEEP_CRON_MINUTE = os.getenv("EXPIRY_SWEEP_CRON_MINUTE", "0")
    EXPIRY_SWEEP_MISFIRE_GRACE_SECONDS = int(os.getenv("EXPIRY_SWEEP_MISFIRE_GRACE_SECONDS", "600"))

    # Auth
    AUTH_TOKEN_SECRET = os.getenv("AUTH_TOKEN_SECRET", os.getenv("JWT_SECRET"))
    AUTH_TOKEN_TTL_DAYS = int(os.getenv("AUTH_TOKEN_TTL_DAYS", "7"))
    OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "5"))
    PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "3"))
    PASSWORD_HASH_ITERATIONS = int(os.getenv("PASSWORD_HASH_ITERATIONS", "390000"))
    MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))

    CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000")
    FRONTEND_URL = os.getenv("FRONTEND_URL", CLIENT_URL)
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # Email (Brevo)
    BREVO_API_KEY = os.getenv("BREVO_API_KEY")
    FROM_EMAIL = os.getenv("FROM_EMAIL", "noreply@tradenest.app")
    FROM_NAME = os.getenv("FROM_NAME", "TradeNest")

    # Referrals
    REFERRAL_REWARD_THRESHOLD = int(os.getenv("REFERRAL_REWARD_THRESHOLD", "25"))

    @staticmethod
    def get_auth_token_secret() -> bytes:
        """Signing secret for bearer tokens; a fallback is only allowed outside production"""
        secret = Config.AUTH_TOKEN_SECRET
        if not secret:
            if Config.IS_PRODUCTION:
                raise ValueError("AUTH_TOKEN_SECRET must be set in production")
            secret = "dev_fallback_auth_token_secret_32chars"
            logger.warning("⚠️ Using development fallback for AUTH_TOKEN_SECRET")
        return secret.encode("utf-8")

    @staticmethod
    def validate_money_configuration():
        """Validate amount and percentage ranges"""
        errors = []
        if Config.MIN_TRADE_AMOUNT <= 0 or Config.MIN_TRADE_AMOUNT > Config.MAX_TRADE_AMOUNT:
            errors.append(f"Invalid trade range {Config.MIN_TRADE_AMOUNT}-{Config.MAX_TRADE_AMOUNT}")
        if Config.MIN_TRANSACTION_AMOUNT <= 0 or Config.MIN_TRANSACTION_AMOUNT > Config.MAX_TRANSACTION_AMOUNT:
            errors.append(
                f"Invalid transaction range {Config.MIN_TRANSACTION_AMOUNT}-{Config.MAX_TRANSACTION_AMOUNT}"
            )
        if not (Config.MIN_PROFIT_PERCENTAGE <= Config.DEFAULT_PROFIT_PERCENTAGE <= Config.MAX_PROFIT_PERCENTAGE):
            errors.append(
                f"DEFAULT_PROFIT_PERCENTAGE {Config.DEFAULT_PROFIT_PERCENTAGE} outside "
                f"{Config.MIN_PROFIT_PERCENTAGE}-{Config.MAX_PROFIT_PERCENTAGE}"
            )

        if errors:
            for error in errors:
                logger.error(f"❌ Money configuration: {error}")
            raise ValueError("; ".join(errors))

        logger.info("✅ Money configuration validated")
        return True

    @staticmethod
    def validate_production_configuration():
        """Fail fast on settings that must not fall back in production"""
        if not Config.IS_PRODUCTION:
            return True

        missing = []
        if not Config.AUTH_TOKEN_SECRET:
            missing.append("AUTH_TOKEN_SECRET")
        if not os.getenv("DATABASE_URL"):
            missing.append("DATABASE_URL")
        if not Config.BREVO_API_KEY:
            missing.append("BREVO_API_KEY")

        if missing:
            raise ValueError(f"Missing production configuration: {', '.join(missing)}")
        return True

    @staticmethod
    def log_environment_config():
        """Log current environment configuration for debugging"""
        logger.info("🔧 TradeNest Environment Configuration:")
        logger.info(f"   Environment: {Config.CURRENT_ENVIRONMENT.upper()}")
        logger.info(f"   Is Production: {Config.IS_PRODUCTION}")
        logger.info(f"   Database: {Config.DATABASE_SOURCE}")
        logger.info(
            f"   Trade range: {Config.MIN_TRADE_AMOUNT}-{Config.MAX_TRADE_AMOUNT} {Config.CURRENCY}, "
            f"default profit {Config.DEFAULT_PROFIT_PERCENTAGE}%"
        )
        logger.info(f"   Trust client profit: {Config.TRUST_CLIENT_PROFIT}")
        if Config.EXPIRY_SWEEP_ENABLED:
            logger.info(f"   Expiry sweep: hourly at minute {Config.EXPIRY_SWEEP_CRON_MINUTE}")
        else:
            logger.warning("   ⚠️ Expiry sweep disabled")
        if not Config.BREVO_API_KEY:
            logger.warning("   ⚠️ BREVO_API_KEY not configured - emails will fail")
