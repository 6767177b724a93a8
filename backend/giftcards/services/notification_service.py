# Overview: Outbound notifications for gift card events; best-effort, never authoritative.

"""
Notification Service

Notifiers accept (recipient_address, subject, body) and report success as a
bool. The lifecycle engine calls notifiers inline, after the store commit, and
treats them as best-effort: a failed email never rolls back a created or
redeemed card.
"""

from __future__ import annotations

import logging

import httpx


logger = logging.getLogger(__name__)


class Notifier:
    """Interface for outbound notifications."""

    def send(self, recipient_address: str, subject: str, body: str) -> bool:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes notifications to the log. Used when no mail API is configured."""

    def send(self, recipient_address: str, subject: str, body: str) -> bool:
        logger.info("Notification to %s: %s", recipient_address, subject)
        return True


class SendGridNotifier(Notifier):
    """Plain-text mail through the SendGrid v3 mail/send API."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str | None = None,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "content-type": "application/json",
            },
        )

    def build_payload(self, recipient_address: str, subject: str, body: str) -> dict:
        sender = {"email": self.from_email}
        if self.from_name:
            sender["name"] = self.from_name
        return {
            "personalizations": [
                {"to": [{"email": recipient_address}]}
            ],
            "from": sender,
            "subject": subject,
            "content": [
                {
                    "type": "text/plain",
                    "value": body,
                }
            ],
        }

    def send(self, recipient_address: str, subject: str, body: str) -> bool:
        payload = self.build_payload(recipient_address, subject, body)
        try:
            with self._get_client() as client:
                resp = client.post(self.api_url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Mail API rejected message to %s: HTTP %s %s",
                         recipient_address, exc.response.status_code, exc.response.text[:500])
            return False
        except httpx.HTTPError as exc:
            logger.error("Mail API request failed for %s: %s", recipient_address, exc)
            return False

        logger.info("Sent e-mail to %s", recipient_address)
        return True


# =============================================================================
# MESSAGES
# =============================================================================

def _format_amount(card) -> str:
    symbol = card.currency_symbol or ""
    amount = f"{card.amount:,.2f}".rstrip("0").rstrip(".")
    return f"{symbol}{amount} {card.currency}".strip()


def giftcard_issued_message(card) -> tuple[str, str]:
    """Subject and body for the person receiving the card."""
    greeting = f"Hi {card.recipient_name}," if card.recipient_name else "Hi,"
    lines = [
        greeting,
        "",
        f"{card.sender_email} sent you a LIKE gift card worth {_format_amount(card)}.",
    ]
    if card.message:
        lines.extend(["", f"Message: {card.message}"])
    lines.extend([
        "",
        f"Your gift card code: {card.code}",
        "",
        "Keep this code private. Anyone holding it can redeem the card.",
    ])
    return "You received a LIKE gift card", "\n".join(lines)


def giftcard_receipt_message(card) -> tuple[str, str]:
    """Subject and body confirming the purchase to the sender."""
    to = card.recipient_email or card.recipient_name or "the recipient"
    lines = [
        f"Your LIKE gift card worth {_format_amount(card)} was created for {to}.",
        "",
        f"Gift card code: {card.code}",
    ]
    if card.payment_id:
        lines.append(f"Payment reference: {card.payment_id}")
    return f"Gift card {card.code} created", "\n".join(lines)


def redemption_received_message(card) -> tuple[str, str]:
    details = card.redemption_details or {}
    lines = [
        f"We received your redemption request for gift card {card.code}.",
        "",
        f"Amount: {_format_amount(card)}",
        f"Withdrawal method: {details.get('withdrawalMethod')}",
        "",
        "Your payout will be processed shortly.",
    ]
    return f"Redemption request for {card.code}", "\n".join(lines)


def redemption_ops_message(card) -> tuple[str, str]:
    details = card.redemption_details or {}
    lines = [
        f"Gift card {card.code} was redeemed.",
        "",
        f"Amount: {_format_amount(card)}",
        f"Sender: {card.sender_email}",
    ]
    for key in sorted(details):
        lines.append(f"{key}: {details[key]}")
    return f"[Payout] {card.code} redeemed", "\n".join(lines)


def build_notifier(config) -> Notifier:
    """SendGrid when an API key is configured, log-only otherwise."""
    api_key = config.get("SENDGRID_API_KEY")
    if not api_key:
        logger.warning("SENDGRID_API_KEY not set; notifications will only be logged.")
        return LogNotifier()
    return SendGridNotifier(
        api_key=api_key,
        from_email=config.get("MAIL_FROM_EMAIL"),
        from_name=config.get("MAIL_FROM_NAME"),
        api_url=config.get("SENDGRID_API_URL", "https://api.sendgrid.com/v3/mail/send"),
        timeout=config.get("MAIL_TIMEOUT_SECONDS", 10.0),
    )
