from __future__ import annotations

import json
import logging
import os
import smtplib
from collections.abc import Mapping
from email.message import EmailMessage
from typing import Any, Protocol

import requests

from anitrack_backend.config import SmtpSettings
from anitrack_backend.models.reminders import Channel

logger = logging.getLogger(__name__)


class ChannelDeliveryError(RuntimeError):
    def __init__(self, message: str, *, channel: Channel, target: str | None = None) -> None:
        super().__init__(message)
        self.channel = channel
        self.target = target


class EmailSender(Protocol):
    def deliver_email(self, address: str, subject: str, body: str) -> None: ...


class WebhookSender(Protocol):
    def deliver_webhook(self, url: str, payload: Mapping[str, Any]) -> None: ...


class OwnerDirectory(Protocol):
    """Resolves an opaque owner reference to the account email, if any."""

    def email_for_owner(self, owner_ref: str) -> str | None: ...


class MappingOwnerDirectory:
    def __init__(self, emails: Mapping[str, str] | None = None) -> None:
        self._emails = dict(emails or {})

    def email_for_owner(self, owner_ref: str) -> str | None:
        value = (self._emails.get(str(owner_ref)) or "").strip()
        return value or None


class SmtpEmailSender:
    """
    Send plain-text email through SMTP.

    Without complete SMTP credentials the sender runs dry: the message is logged and
    treated as delivered, matching local development setups.
    """

    def __init__(self, settings: SmtpSettings, *, timeout_seconds: float = 10.0) -> None:
        self._settings = settings
        self._timeout_seconds = timeout_seconds

    def _connect(self) -> smtplib.SMTP:
        if self._settings.port == 465:
            return smtplib.SMTP_SSL(self._settings.host, self._settings.port, timeout=self._timeout_seconds)
        client = smtplib.SMTP(self._settings.host, self._settings.port, timeout=self._timeout_seconds)
        client.starttls()
        return client

    def deliver_email(self, address: str, subject: str, body: str) -> None:
        if not address:
            raise ChannelDeliveryError("Email delivery needs an address.", channel=Channel.EMAIL)

        if not self._settings.enabled:
            logger.info(f"[email:dry-run] to={address} subject={subject} message={body}")
            return

        message = EmailMessage()
        message["From"] = self._settings.sender
        message["To"] = address
        message["Subject"] = subject
        message.set_content(body)

        try:
            with self._connect() as client:
                client.login(self._settings.user, self._settings.password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise ChannelDeliveryError(f"SMTP delivery failed: {exc}", channel=Channel.EMAIL, target=address) from exc


class DiscordWebhookSender:
    def __init__(self, *, session: requests.Session | None = None, timeout_seconds: float = 10.0) -> None:
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds

    def deliver_webhook(self, url: str, payload: Mapping[str, Any]) -> None:
        if not url:
            raise ChannelDeliveryError("Webhook delivery needs a URL.", channel=Channel.DISCORD)

        try:
            resp = self._session.post(url, json=dict(payload), timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            raise ChannelDeliveryError(f"Discord webhook request failed: {exc}", channel=Channel.DISCORD, target=url) from exc

        if not 200 <= resp.status_code < 300:
            snippet = (resp.text or "")[:200].replace("\n", " ").strip()
            raise ChannelDeliveryError(
                f"Discord webhook failed ({resp.status_code}): {snippet}",
                channel=Channel.DISCORD,
                target=url,
            )


def parse_owner_emails_json_env() -> dict[str, str] | None:
    """
    Read `OWNER_EMAILS_JSON`, a JSON object mapping owner references to account emails.

    Deployments without the auth service use this as the account-email fallback source.
    """

    raw = (os.getenv("OWNER_EMAILS_JSON") or "").strip()
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("OWNER_EMAILS_JSON must be valid JSON object.") from exc
    if not isinstance(value, dict):
        raise ValueError("OWNER_EMAILS_JSON must be a JSON object.")
    emails: dict[str, str] = {}
    for k, v in value.items():
        if v is None:
            continue
        emails[str(k)] = str(v)
    return emails
