"""Transactional email via Brevo: verification codes and password reset links"""

import logging
from typing import Optional

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

from config import Config

logger = logging.getLogger(__name__)


def get_otp_email_template(full_name: str, otp: str) -> dict:
    minutes = Config.OTP_TTL_MINUTES
    return {
        "subject": "Verify your TradeNest account",
        "html_content": (
            f"<p>Hi {full_name},</p>"
            f"<p>Your verification code is <strong>{otp}</strong>.</p>"
            f"<p>The code expires in {minutes} minutes.</p>"
        ),
        "text_content": f"Hi {full_name}, your verification code is {otp}. It expires in {minutes} minutes.",
    }


def get_password_reset_email_template(full_name: str, reset_url: str) -> dict:
    minutes = Config.PASSWORD_RESET_TTL_MINUTES
    return {
        "subject": "Reset your TradeNest password",
        "html_content": (
            f"<p>Hi {full_name},</p>"
            f"<p>Use the link below to reset your password. It expires in {minutes} minutes.</p>"
            f'<p><a href="{reset_url}">Reset password</a></p>'
            f"<p>If you did not request this, you can ignore this email.</p>"
        ),
        "text_content": f"Hi {full_name}, reset your password here ({minutes} minutes): {reset_url}",
    }


class EmailService:
    """Brevo transactional email client"""

    def __init__(self):
        api_key = Config.BREVO_API_KEY
        if not api_key:
            logger.warning("BREVO_API_KEY not configured - emails will be skipped")
            self.api_client = None
            return

        configuration = sib_api_v3_sdk.Configuration()
        configuration.api_key["api-key"] = api_key
        self.api_client = sib_api_v3_sdk.ApiClient(configuration)
        self.transactional_emails_api = sib_api_v3_sdk.TransactionalEmailsApi(self.api_client)

    def send_email(self, to_email: str, subject: str, html_content: str,
                   text_content: Optional[str] = None, to_name: Optional[str] = None,
                   tags: Optional[list] = None) -> bool:
        """
        Send one transactional email.

        Returns:
            bool: True if accepted by Brevo, False otherwise
        """
        if not self.api_client:
            logger.warning(f"Email service not configured - skipping '{subject}' to {to_email}")
            return False

        try:
            send_smtp_email = sib_api_v3_sdk.SendSmtpEmail(
                to=[sib_api_v3_sdk.SendSmtpEmailTo(email=to_email, name=to_name)],
                sender=sib_api_v3_sdk.SendSmtpEmailSender(email=Config.FROM_EMAIL, name=Config.FROM_NAME),
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                tags=tags,
            )
            api_response = self.transactional_emails_api.send_transac_email(send_smtp_email)
            logger.info(f"📧 Email '{subject}' sent to {to_email} - Message ID: {api_response.message_id}")
            return True
        except ApiException as e:
            logger.error(f"Error sending email to {to_email}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error sending email to {to_email}: {e}")
            return False

    def send_otp_email(self, to_email: str, full_name: str, otp: str) -> bool:
        template = get_otp_email_template(full_name, otp)
        return self.send_email(
            to_email, template["subject"], template["html_content"],
            text_content=template["text_content"], to_name=full_name, tags=["verification"],
        )

    def send_password_reset_email(self, to_email: str, full_name: str, reset_url: str) -> bool:
        template = get_password_reset_email_template(full_name, reset_url)
        return self.send_email(
            to_email, template["subject"], template["html_content"],
            text_content=template["text_content"], to_name=full_name, tags=["password-reset"],
        )
