"""
Mail Service (SendGrid)

Transactional, bilingual emails for account flows. When SENDGRID_API_KEY is
empty the message is logged instead of sent, which is what development and
the test suite rely on.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from servicedesk.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class MailService:
    """SendGrid v3 mail/send client with a logging fallback."""

    BASE_URL = "https://api.sendgrid.com/v3"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = settings.SENDGRID_API_KEY if api_key is None else api_key
        self.from_email = settings.MAIL_FROM
        self.from_name = settings.MAIL_FROM_NAME

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(self, to_email: str, subject: str, html: str) -> SendResult:
        """Send a single HTML email. Never raises on delivery problems."""
        if not self.enabled:
            logger.info(f"Mail disabled; would send '{subject}' to {to_email}")
            return SendResult(success=True)

        payload = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }

        try:
            async with httpx.AsyncClient(
                timeout=30.0,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            ) as http:
                resp = await http.post(f"{self.BASE_URL}/mail/send", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"SendGrid request failed for {to_email}: {e}")
            return SendResult(success=False, error=str(e))

        if resp.status_code in (200, 202):
            return SendResult(success=True, message_id=resp.headers.get("X-Message-Id"))

        logger.error(f"SendGrid rejected mail to {to_email}: {resp.status_code} - {resp.text}")
        return SendResult(success=False, error=resp.text)

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    async def send_verification_email(self, to_email: str, name: str, token: str) -> SendResult:
        link = f"{settings.FRONTEND_URL}/verify-email?token={token}"
        html = _bilingual(
            f"<p>Hello {name},</p><p>Please confirm your email address:</p>"
            f'<p><a href="{link}">{link}</a></p>'
            f"<p>The link expires in {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours.</p>",
            f"<p>مرحباً {name}،</p><p>يرجى تأكيد بريدك الإلكتروني:</p>"
            f'<p><a href="{link}">{link}</a></p>'
            f"<p>تنتهي صلاحية الرابط خلال {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} ساعة.</p>",
        )
        return await self.send(to_email, "Verify your email | تأكيد البريد الإلكتروني", html)

    async def send_password_reset_email(self, to_email: str, name: str, token: str) -> SendResult:
        link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
        html = _bilingual(
            f"<p>Hello {name},</p><p>Use the link below to reset your password:</p>"
            f'<p><a href="{link}">{link}</a></p>'
            f"<p>The link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
            f"If you did not request this, ignore this email.</p>",
            f"<p>مرحباً {name}،</p><p>استخدم الرابط التالي لإعادة تعيين كلمة المرور:</p>"
            f'<p><a href="{link}">{link}</a></p>'
            f"<p>تنتهي صلاحية الرابط خلال {settings.PASSWORD_RESET_EXPIRE_MINUTES} دقيقة.</p>",
        )
        return await self.send(to_email, "Reset your password | إعادة تعيين كلمة المرور", html)

    async def send_welcome_email(self, to_email: str, name: str) -> SendResult:
        html = _bilingual(
            f"<p>Welcome {name}!</p><p>Your account is ready.</p>",
            f"<p>أهلاً بك {name}!</p><p>تم تفعيل حسابك.</p>",
        )
        return await self.send(to_email, "Welcome | مرحباً بك", html)

    async def send_notification_email(self, to_email: str, title: str, title_ar: str,
                                      message: str, message_ar: str) -> SendResult:
        html = _bilingual(f"<p>{message}</p>", f"<p>{message_ar}</p>")
        return await self.send(to_email, f"{title} | {title_ar}", html)


def _bilingual(english: str, arabic: str) -> str:
    return (
        f'<div dir="ltr" lang="en">{english}</div>'
        f'<hr/>'
        f'<div dir="rtl" lang="ar">{arabic}</div>'
    )


mail_service = MailService()
