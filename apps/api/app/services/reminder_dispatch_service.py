"""
Reminder Dispatch Service - send a rendered reminder through one channel.

Channels:
- email: SMTP relay (smtplib), plain text with an HTML alternative
- sms: Twilio Messages API
- whatsapp: Twilio Messages API, addressed as whatsapp:<E164>

A channel without provider credentials yields an "unavailable" result
instead of raising. Transport failures yield a "failed" result. The
dispatcher holds no business state.
"""

from __future__ import annotations

import html
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Mapping, Protocol

import httpx

from app.core.config import Settings, settings as app_settings
from app.db.enums import DispatchStatus, NotificationChannel
from app.jobs.utils import mask_recipient

logger = logging.getLogger(__name__)

WHATSAPP_PREFIX = "whatsapp:"


class ReminderDispatchError(Exception):
    """Base class for dispatch failures."""


class ChannelUnavailable(ReminderDispatchError):
    """Provider credentials for the channel are not configured."""


class ProviderError(ReminderDispatchError):
    """The external provider rejected the message or the transport failed."""


@dataclass(frozen=True)
class DispatchResult:
    channel: NotificationChannel
    status: DispatchStatus
    error: str | None = None
    provider_message_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == DispatchStatus.SENT


class ReminderTransport(Protocol):
    channel: NotificationChannel

    def is_configured(self) -> bool:
        """True when provider credentials are present."""

    def send(self, recipient: str, subject: str, body: str) -> str | None:
        """Deliver one message; return the provider message id if any."""


def _html_body(body: str) -> str:
    escaped = html.escape(body).replace("\n", "<br>")
    return f"<p>{escaped}</p>"


class SmtpEmailTransport:
    """Email over an SMTP relay."""

    channel = NotificationChannel.EMAIL

    def __init__(self, config: Settings | None = None):
        self.config = config or app_settings

    def is_configured(self) -> bool:
        return self.config.smtp_configured

    def send(self, recipient: str, subject: str, body: str) -> str | None:
        if not self.is_configured():
            raise ChannelUnavailable("SMTP_HOST and EMAIL_FROM must be configured")

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.config.email_from_address
        msg["To"] = recipient
        msg.set_content(body)
        msg.add_alternative(_html_body(body), subtype="html")

        try:
            with smtplib.SMTP(
                self.config.SMTP_HOST,
                self.config.SMTP_PORT,
                timeout=self.config.SMTP_TIMEOUT_SECONDS,
            ) as smtp:
                if self.config.SMTP_USE_TLS:
                    smtp.starttls()
                if self.config.SMTP_USERNAME and self.config.SMTP_PASSWORD:
                    smtp.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise ProviderError(f"SMTP send failed: {exc}") from exc
        return msg.get("Message-ID")


class TwilioTransport(ABC):
    """Shared Twilio Messages API client for SMS and WhatsApp."""

    channel: NotificationChannel

    def __init__(self, config: Settings | None = None, client: httpx.Client | None = None):
        self.config = config or app_settings
        self._client = client

    @property
    @abstractmethod
    def sender(self) -> str:
        """Twilio "From" address for this channel."""

    def format_recipient(self, recipient: str) -> str:
        return recipient

    def is_configured(self) -> bool:
        return self.config.twilio_configured and bool(self.sender)

    def _messages_url(self) -> str:
        base = self.config.TWILIO_API_BASE_URL.rstrip("/")
        return f"{base}/Accounts/{self.config.TWILIO_ACCOUNT_SID}/Messages.json"

    def _post(self, data: Mapping[str, str]) -> httpx.Response:
        auth = (self.config.TWILIO_ACCOUNT_SID, self.config.TWILIO_AUTH_TOKEN)
        if self._client is not None:
            return self._client.post(self._messages_url(), data=data, auth=auth)
        with httpx.Client() as client:
            return client.post(self._messages_url(), data=data, auth=auth)

    def send(self, recipient: str, subject: str, body: str) -> str | None:
        if not self.is_configured():
            raise ChannelUnavailable(f"Twilio is not configured for {self.channel.value}")

        data = {
            "To": self.format_recipient(recipient),
            "From": self.sender,
            "Body": body,
        }
        try:
            response = self._post(data)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Twilio request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            try:
                detail = response.json().get("message")
            except ValueError:
                detail = None
            raise ProviderError(
                f"Twilio returned {response.status_code}: {detail or response.text[:200]}"
            )

        try:
            return response.json().get("sid")
        except ValueError:
            return None


class TwilioSmsTransport(TwilioTransport):
    channel = NotificationChannel.SMS

    @property
    def sender(self) -> str:
        return self.config.TWILIO_PHONE_NUMBER


class TwilioWhatsAppTransport(TwilioTransport):
    channel = NotificationChannel.WHATSAPP

    @property
    def sender(self) -> str:
        sender = self.config.TWILIO_WHATSAPP_FROM
        if sender and not sender.startswith(WHATSAPP_PREFIX):
            sender = f"{WHATSAPP_PREFIX}{sender}"
        return sender

    def format_recipient(self, recipient: str) -> str:
        if recipient.startswith(WHATSAPP_PREFIX):
            return recipient
        return f"{WHATSAPP_PREFIX}{recipient}"


def default_transports() -> dict[NotificationChannel, ReminderTransport]:
    return {
        NotificationChannel.EMAIL: SmtpEmailTransport(),
        NotificationChannel.SMS: TwilioSmsTransport(),
        NotificationChannel.WHATSAPP: TwilioWhatsAppTransport(),
    }


class ReminderDispatcher:
    """Routes a message to the transport registered for its channel."""

    def __init__(self, transports: Mapping[NotificationChannel, ReminderTransport] | None = None):
        self.transports = dict(transports) if transports is not None else default_transports()

    def is_available(self, channel: NotificationChannel) -> bool:
        transport = self.transports.get(NotificationChannel(channel))
        return transport is not None and transport.is_configured()

    def send(
        self,
        channel: NotificationChannel,
        recipient: str,
        subject: str,
        body: str,
    ) -> DispatchResult:
        channel = NotificationChannel(channel)
        transport = self.transports.get(channel)

        if transport is None or not transport.is_configured():
            logger.warning("Reminder channel %s is not configured; skipping", channel.value)
            return DispatchResult(
                channel=channel,
                status=DispatchStatus.UNAVAILABLE,
                error=f"{channel.value} provider not configured",
            )

        try:
            message_id = transport.send(recipient, subject, body)
        except ChannelUnavailable as exc:
            logger.warning("Reminder channel %s unavailable: %s", channel.value, exc)
            return DispatchResult(channel=channel, status=DispatchStatus.UNAVAILABLE, error=str(exc))
        except ProviderError as exc:
            logger.error(
                "Reminder %s to %s failed: %s",
                channel.value,
                mask_recipient(recipient),
                exc,
            )
            return DispatchResult(channel=channel, status=DispatchStatus.FAILED, error=str(exc))

        logger.info(
            "Reminder %s sent to %s (message_id=%s)",
            channel.value,
            mask_recipient(recipient),
            message_id,
        )
        return DispatchResult(
            channel=channel,
            status=DispatchStatus.SENT,
            provider_message_id=message_id,
        )
