"""Email service using Resend."""
import html
import logging
from typing import Optional

import httpx

from ..errors import EmailDeliveryError
from ..models.signup import SignupPurpose

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending transactional emails via the Resend API."""

    base_url = "https://api.resend.com"

    def __init__(
        self,
        api_key: Optional[str],
        from_address: str,
        *,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        """Check if email service is properly configured."""
        return bool(self.api_key)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> None:
        """Send a single email. Raises EmailDeliveryError on any non-2xx answer."""
        if not self.is_configured():
            raise EmailDeliveryError("Resend", message="Resend is not configured")

        payload = {
            "from": self.from_address,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            payload["text"] = text_content

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/emails",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )

        if response.status_code not in (200, 201, 202):
            body = (response.text or "").strip()
            logger.warning("[Email] Failed to send to %s: %s - %s", to_email, response.status_code, body)
            raise EmailDeliveryError("Resend", status_code=response.status_code, body=body)

        logger.info("[Email] Sent email to %s", to_email)

    async def send_signup_code_email(
        self,
        to_email: str,
        code: str,
        purpose: SignupPurpose,
        ttl_minutes: int = 10,
    ) -> None:
        """Send the one-time verification code for owner or employee signup."""
        if purpose == SignupPurpose.EMPLOYEE_SIGNUP:
            subject = "Your SmartCore employee verification code"
        else:
            subject = "Your SmartCore verification code"

        safe_code = html.escape(code)
        html_content = f"""
<div style="font-family:Inter,system-ui,Segoe UI,Arial;line-height:1.6">
    <h2 style="margin:0 0 12px 0">SmartCore Technology</h2>
    <p style="margin:0 0 12px 0">Your verification code is:</p>
    <div style="font-size:28px;font-weight:700;letter-spacing:6px;background:#0b1020;color:#fff;padding:14px 16px;border-radius:12px;display:inline-block;border:1px solid rgba(255,255,255,.12)">
        {safe_code}
    </div>
    <p style="margin:12px 0 0 0;color:#666">This code expires in {ttl_minutes} minutes.</p>
</div>
"""
        text_content = (
            f"Your SmartCore verification code is {code}. "
            f"This code expires in {ttl_minutes} minutes."
        )

        await self.send_email(to_email, subject, html_content, text_content)
