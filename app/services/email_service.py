from typing import Optional

import httpx
import sentry_sdk
import structlog

from app.models.config import EmailConfig

logger = structlog.getLogger(__name__)

LICENSE_SUBJECT = "Your license code"

LICENSE_HTML = """\
<p>Thank you for your purchase!</p>
<p>Your license code is: <strong>{code}</strong></p>
<p>Sign in with this email address to start using the app.</p>
"""

LICENSE_TEXT = "Thank you for your purchase! Your license code is: {code}"


class EmailService:
    """Transactional email over an HTTP API (Resend-compatible payload)."""

    def __init__(self, config: EmailConfig, timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.config.api_key)

    async def send(self, to: str, subject: str, html: str, text: str) -> None:
        async with httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                timeout=self.timeout,
                transport=self._transport,
        ) as client:
            response = await client.post(
                self.config.api_url,
                json={
                    "from": self.config.sender,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                    "text": text,
                }
            )
            response.raise_for_status()

    async def notify_license(self, to: str, code: str) -> bool:
        """Best-effort: failures are logged and reported, never raised."""
        if not self.enabled:
            logger.warning("Email sender not configured, license email skipped", to=to, code=code)
            return False
        try:
            await self.send(to, LICENSE_SUBJECT, LICENSE_HTML.format(code=code), LICENSE_TEXT.format(code=code))
        except Exception as e:
            logger.error("Failed to send license email", to=to, code=code, error=repr(e))
            sentry_sdk.capture_exception(e)
            return False
        logger.info("License email sent", to=to, code=code)
        return True
