"""Outbound email for referral invitations.

The transport is chosen by ``SNX_EMAIL_PROVIDER``: ``stub`` only logs,
``smtp`` delivers through aiosmtplib and ``resend`` through the Resend HTTP
API. Every provider reports delivery as a bool and never raises.
"""

from __future__ import annotations

import hashlib
import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Any

import structlog

from snx.config import Settings, get_settings
from snx.notifications.templates import referral_invitation

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()

RESEND_ENDPOINT = "https://api.resend.com/emails"

_TEMPLATE_REGISTRY: dict[str, Any] = {
    "referral_invitation": referral_invitation,
}


def _sender(settings: Settings) -> str:
    return f"{settings.email_from_name} <{settings.email_from_address}>"


class BaseEmailProvider(ABC):
    name = "base"

    @abstractmethod
    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """Deliver one message. Returns True once the transport accepted it."""
        ...


class StubEmailProvider(BaseEmailProvider):
    """Logs instead of sending. Used in development and tests."""

    name = "stub"

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        logger.info("email_stub", to=to_email, subject=subject, size=len(html_body))
        return True


class SMTPProvider(BaseEmailProvider):
    name = "smtp"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _build_message(self, to_email: str, subject: str, html_body: str, text_body: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = _sender(self.settings)
        message["To"] = to_email
        message["Subject"] = subject
        message.attach(MIMEText(text_body, "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))
        return message

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        import aiosmtplib

        settings = self.settings
        try:
            await aiosmtplib.send(
                self._build_message(to_email, subject, html_body, text_body),
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or None,
                password=settings.smtp_password or None,
                start_tls=settings.smtp_use_tls,
                tls_context=ssl.create_default_context() if settings.smtp_use_tls else None,
            )
        except Exception:
            logger.exception("email_delivery_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_delivered", to=to_email, subject=subject, provider=self.name)
        return True


class ResendProvider(BaseEmailProvider):
    name = "resend"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        import httpx

        payload = {
            "from": _sender(self.settings),
            "to": [to_email],
            "subject": subject,
            "html": html_body,
            "text": text_body,
        }
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(
                    RESEND_ENDPOINT,
                    headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
                    json=payload,
                )
                response.raise_for_status()
        except Exception:
            logger.exception("email_delivery_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_delivered", to=to_email, subject=subject, provider=self.name)
        return True


_PROVIDERS: dict[str, type[BaseEmailProvider]] = {
    "stub": StubEmailProvider,
    "smtp": SMTPProvider,
    "resend": ResendProvider,
}


def create_provider(settings: Settings) -> BaseEmailProvider:
    """Instantiate the configured provider. Raises ValueError for an unknown name."""
    name = settings.email_provider.lower()
    provider_cls = _PROVIDERS.get(name)
    if provider_cls is None:
        msg = f"Unsupported email provider: {name}"
        raise ValueError(msg)
    if provider_cls is StubEmailProvider:
        return StubEmailProvider()
    return provider_cls(settings)  # type: ignore[call-arg]


class EmailService:
    """Renders templates and sends them, capping mail per recipient.

    The cap is a Redis counter per hashed address; without Redis every send
    is allowed.
    """

    def __init__(
        self,
        provider: BaseEmailProvider | None = None,
        redis: Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.provider = provider or create_provider(settings)
        self.rate_limit_max = settings.email_rate_limit_max
        self.rate_limit_window = settings.email_rate_limit_window_seconds
        self._redis = redis

    async def _within_rate_limit(self, email: str) -> bool:
        if self._redis is None:
            return True
        digest = hashlib.sha256(email.lower().encode()).hexdigest()
        key = f"snx:email_rate:{digest}"
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, self.rate_limit_window)
        return count <= self.rate_limit_max

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> bool:
        """Send unless the recipient is over the cap. False if capped or undelivered."""
        if not await self._within_rate_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        return await self.provider.send(to, subject, html_body, text_body)

    async def send_template(self, to: str, template_name: str, context: dict[str, Any]) -> bool:
        """Render ``template_name`` with ``context`` and send it.

        Raises:
            ValueError: Unknown template name.
        """
        render = _TEMPLATE_REGISTRY.get(template_name)
        if render is None:
            msg = f"Unknown template: {template_name}"
            raise ValueError(msg)
        subject, html_body, text_body = render(**context)
        return await self.send_email(to, subject, html_body, text_body)


_email_service: EmailService | None = None


def get_email_service(redis: Redis | None = None) -> EmailService:
    """Process-wide email service, built on first use."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService(redis=redis)
    return _email_service


def reset_email_service() -> None:
    global _email_service  # noqa: PLW0603
    _email_service = None
