# Overview: Gift card lifecycle engine; issuance after verified payment and exactly-once redemption.

"""
Gift Card Lifecycle Service

================================================================================
PURPOSE: Mint gift cards from verified payments and redeem each card once
================================================================================

STATE MACHINE:
    active -> redeemed   (redeem)
    active -> expired    (expire)

    active:   issued, redeemable
    redeemed: TERMINAL, redeemed_at + redemption_details recorded
    expired:  TERMINAL

RULES (NON-NEGOTIABLE):
1. Initial status is always active; callers cannot choose it
2. No transition out of redeemed or expired
3. A card is minted from a payment only after its signature verifies
4. Every transition goes through GiftCardStore.compare_and_transition,
   never read-then-write. No application lock is held across store I/O.
5. Notifications are best-effort and sent inline after the commit. A failed
   email never reverts or fails the card operation that triggered it.

RESULTS:
Public operations return GiftCardResult: the card on success, otherwise one
of the ERROR_* kinds below. They never raise to the transport layer.
================================================================================
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from flask import current_app

from ..models import GiftCard
from ..models.giftcards import (
    STATUS_ACTIVE,
    STATUS_REDEEMED,
    STATUS_EXPIRED,
    DENOM_FIXED,
    DENOM_MULTI,
    VALID_DENOM_TYPES,
)
from ..time_utils import utcnow
from ..validation import (
    ValidationError,
    require_email,
    optional_email,
    optional_text,
    require_text,
    parse_amount,
    require_currency,
    parse_choice,
)
from .code_generator import (
    DEFAULT_CODE_PREFIX,
    generate_code,
    is_well_formed_code,
    mask_code,
    normalize_code,
    validate_code_prefix,
)
from .giftcard_store import (
    GiftCardStore,
    CodeCollision,
    PaymentAlreadyRecorded,
    CardNotFound,
    TransitionConflict,
    StoreUnavailable,
)
from .notification_service import (
    Notifier,
    LogNotifier,
    giftcard_issued_message,
    giftcard_receipt_message,
    redemption_received_message,
    redemption_ops_message,
)
from .signature_service import verify_payment_signature


logger = logging.getLogger(__name__)


# =============================================================================
# RESULT KINDS (CONSTANTS)
# =============================================================================

ERROR_VALIDATION = "VALIDATION_ERROR"
ERROR_INVALID_SIGNATURE = "INVALID_SIGNATURE"
ERROR_NOT_FOUND = "NOT_FOUND"
ERROR_ALREADY_REDEEMED = "ALREADY_REDEEMED"
ERROR_NOT_ACTIVE = "NOT_ACTIVE"
ERROR_CODE_SPACE_EXHAUSTED = "CODE_SPACE_EXHAUSTED"
ERROR_PERSISTENCE_UNAVAILABLE = "PERSISTENCE_UNAVAILABLE"

DEFAULT_MAX_CODE_ATTEMPTS = 10

# Payment fields are only honored through create_from_payment
PAYMENT_FIELDS = {
    "razorpay_order_id",
    "razorpay_payment_id",
    "razorpay_signature",
    "paymentOrderId",
    "paymentId",
}

MAX_REDEMPTION_FIELDS = 20


class CodeSpaceExhausted(Exception):
    """Every attempt to find an unused code collided."""

    def __init__(self, attempts: int):
        super().__init__(f"No unique gift card code found after {attempts} attempts")
        self.attempts = attempts


@dataclass(frozen=True)
class PaymentReference:
    order_id: str | None
    payment_id: str | None
    signature: str | None


@dataclass(frozen=True)
class GiftCardResult:
    card: GiftCard | None = None
    error: str | None = None
    message: str | None = None
    # True when a repeated payment confirmation returned the existing card
    replayed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, card: GiftCard, *, replayed: bool = False) -> "GiftCardResult":
        return cls(card=card, replayed=replayed)

    @classmethod
    def failure(cls, error: str, message: str) -> "GiftCardResult":
        return cls(error=error, message=message)


# =============================================================================
# REQUEST VALIDATION
# =============================================================================

def _validate_create_request(data: Mapping[str, Any]) -> dict:
    """Translate a camelCase creation request into GiftCard column values."""
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")

    amount = parse_amount(data.get("amount"))
    denom_type = parse_choice(data.get("denomType"), "denomType", VALID_DENOM_TYPES, DENOM_FIXED)

    return {
        "sender_email": require_email(data.get("senderEmail"), "senderEmail"),
        "recipient_email": optional_email(data.get("recipientEmail"), "recipientEmail"),
        "recipient_name": optional_text(data.get("recipient"), "recipient"),
        "message": optional_text(data.get("message"), "message", max_length=1000),
        "amount": amount,
        "currency": require_currency(data.get("currency")),
        "currency_symbol": optional_text(data.get("currencySymbol"), "currencySymbol", max_length=8),
        "denom_type": denom_type,
        "balance": amount if denom_type == DENOM_MULTI else None,
    }


def _validate_redemption_request(data: Mapping[str, Any]) -> dict:
    """
    Build the redemption_details payload.

    withdrawalMethod and email are required. Other scalar fields (UPI id,
    account number, ...) are kept as given for the payout team.
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")

    details = {
        "withdrawalMethod": require_text(data.get("withdrawalMethod"), "withdrawalMethod", max_length=64),
        "email": require_email(data.get("email"), "email"),
    }
    for key, value in data.items():
        if key in details or key == "code":
            continue
        if not isinstance(key, str) or len(key) > 64:
            raise ValidationError("Redemption field names must be short strings")
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise ValidationError(f"{key} must be a scalar value")
        if isinstance(value, str) and len(value) > 255:
            raise ValidationError(f"{key} must be at most 255 characters")
        details[key] = value
    if len(details) > MAX_REDEMPTION_FIELDS:
        raise ValidationError("Too many redemption fields")
    return details


def _require_code(code: Any) -> str:
    """
    Return the normalized code.

    Raises ValidationError when no code was given and CardNotFound when the
    value cannot be a gift card code at all, without touching the store.
    """
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("code is required")
    if not is_well_formed_code(code, prefix=None):
        raise CardNotFound(code)
    return normalize_code(code)


# =============================================================================
# LIFECYCLE ENGINE
# =============================================================================

class GiftCardService:
    def __init__(
        self,
        store: GiftCardStore,
        notifier: Notifier | None = None,
        *,
        code_prefix: str = DEFAULT_CODE_PREFIX,
        max_code_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS,
        payment_secret: str | None = None,
        redemption_notify_email: str | None = None,
        code_generator: Callable[[], str] | None = None,
    ):
        self.store = store
        self.notifier = notifier or LogNotifier()
        self.max_code_attempts = max_code_attempts
        self.payment_secret = payment_secret
        self.redemption_notify_email = redemption_notify_email
        self.code_prefix = validate_code_prefix(code_prefix)
        self.generate_code = code_generator or functools.partial(generate_code, self.code_prefix)

    # -------------------------------------------------------------------------
    # ISSUANCE
    # -------------------------------------------------------------------------

    def create(self, request: Mapping[str, Any]) -> GiftCardResult:
        """
        Issue a gift card without a payment (administrative issuance).

        Requests carrying payment fields are rejected: they must go through
        create_from_payment so the signature is checked.
        """
        if isinstance(request, Mapping) and PAYMENT_FIELDS.intersection(request):
            return GiftCardResult.failure(
                ERROR_VALIDATION,
                "Payment confirmations must be submitted through payment verification",
            )
        return self._create(request, payment=None)

    def create_from_payment(self, payment_ref: PaymentReference, request: Mapping[str, Any]) -> GiftCardResult:
        """
        Issue a gift card for a verified payment.

        A replayed confirmation for a payment that already minted a card
        returns that card (replayed=True) and sends no new notifications.
        """
        if not verify_payment_signature(
            payment_ref.order_id,
            payment_ref.payment_id,
            payment_ref.signature,
            self.payment_secret,
        ):
            logger.warning("Rejected payment confirmation with invalid signature (order %r)",
                           payment_ref.order_id)
            return GiftCardResult.failure(ERROR_INVALID_SIGNATURE, "Invalid signature")

        return self._create(request, payment=payment_ref)

    def _create(self, request, payment: PaymentReference | None) -> GiftCardResult:
        try:
            fields = _validate_create_request(request)
        except ValidationError as exc:
            return GiftCardResult.failure(ERROR_VALIDATION, str(exc))

        if payment is not None:
            fields["payment_order_id"] = payment.order_id
            fields["payment_id"] = payment.payment_id

        try:
            card = self._insert_with_unique_code(fields)
        except PaymentAlreadyRecorded as exc:
            logger.info("Payment %s already minted gift card %s; returning it",
                        payment.payment_id, mask_code(exc.card.code))
            return GiftCardResult.success(exc.card, replayed=True)
        except CodeSpaceExhausted as exc:
            logger.error("Gift card code space exhausted: %s", exc)
            return GiftCardResult.failure(ERROR_CODE_SPACE_EXHAUSTED, "Could not allocate a gift card code")
        except StoreUnavailable as exc:
            return GiftCardResult.failure(ERROR_PERSISTENCE_UNAVAILABLE, str(exc))

        logger.info("Issued gift card %s (%s %s, %s)",
                    mask_code(card.code), card.amount, card.currency, card.denom_type)
        self._notify_created(card)
        return GiftCardResult.success(card)

    def _insert_with_unique_code(self, fields: dict) -> GiftCard:
        for attempt in range(1, self.max_code_attempts + 1):
            card = GiftCard(
                code=self.generate_code(),
                status=STATUS_ACTIVE,
                created_at=utcnow(),
                **fields,
            )
            try:
                return self.store.insert_unique(card)
            except CodeCollision:
                logger.warning("Gift card code collision (attempt %d/%d)", attempt, self.max_code_attempts)
        raise CodeSpaceExhausted(self.max_code_attempts)

    # -------------------------------------------------------------------------
    # LOOKUP
    # -------------------------------------------------------------------------

    def find_by_code(self, code: str) -> GiftCardResult:
        try:
            card = self.store.find_by_code(_require_code(code))
        except ValidationError as exc:
            return GiftCardResult.failure(ERROR_VALIDATION, str(exc))
        except CardNotFound:
            return GiftCardResult.failure(ERROR_NOT_FOUND, "Gift card not found")
        except StoreUnavailable as exc:
            return GiftCardResult.failure(ERROR_PERSISTENCE_UNAVAILABLE, str(exc))
        return GiftCardResult.success(card)

    # -------------------------------------------------------------------------
    # TRANSITIONS
    # -------------------------------------------------------------------------

    def redeem(self, code: str, redemption_request: Mapping[str, Any]) -> GiftCardResult:
        """
        Redeem an active card (active -> redeemed).

        Exactly one of any number of concurrent calls for the same code
        succeeds; the others get ALREADY_REDEEMED. Never retried here.
        """
        try:
            code = _require_code(code)
            details = _validate_redemption_request(redemption_request)
        except ValidationError as exc:
            return GiftCardResult.failure(ERROR_VALIDATION, str(exc))
        except CardNotFound:
            return GiftCardResult.failure(ERROR_NOT_FOUND, "Gift card not found")

        result = self._transition(
            code,
            STATUS_REDEEMED,
            {"redeemed_at": utcnow(), "redemption_details": details},
        )
        if not result.ok:
            return result

        card = result.card
        logger.info("Redeemed gift card %s via %s", mask_code(card.code), details["withdrawalMethod"])
        self._notify(details["email"], redemption_received_message(card))
        if self.redemption_notify_email:
            self._notify(self.redemption_notify_email, redemption_ops_message(card))
        return result

    def expire(self, code: str) -> GiftCardResult:
        """Expire an active card (active -> expired)."""
        try:
            code = _require_code(code)
        except ValidationError as exc:
            return GiftCardResult.failure(ERROR_VALIDATION, str(exc))
        except CardNotFound:
            return GiftCardResult.failure(ERROR_NOT_FOUND, "Gift card not found")

        result = self._transition(code, STATUS_EXPIRED, {})
        if result.ok:
            logger.info("Expired gift card %s", mask_code(result.card.code))
        return result

    def _transition(self, code: str, to_status: str, changes: dict) -> GiftCardResult:
        try:
            card = self.store.compare_and_transition(code, STATUS_ACTIVE, to_status, changes)
        except CardNotFound:
            return GiftCardResult.failure(ERROR_NOT_FOUND, "Gift card not found")
        except TransitionConflict as exc:
            if exc.current_status == STATUS_REDEEMED:
                return GiftCardResult.failure(ERROR_ALREADY_REDEEMED, "Gift card has already been redeemed")
            return GiftCardResult.failure(ERROR_NOT_ACTIVE, f"Gift card is {exc.current_status}")
        except StoreUnavailable as exc:
            return GiftCardResult.failure(ERROR_PERSISTENCE_UNAVAILABLE, str(exc))
        return GiftCardResult.success(card)

    # -------------------------------------------------------------------------
    # NOTIFICATIONS
    # -------------------------------------------------------------------------

    def _notify_created(self, card: GiftCard) -> None:
        self._notify(card.recipient_email or card.sender_email, giftcard_issued_message(card))
        if card.recipient_email and card.recipient_email != card.sender_email:
            self._notify(card.sender_email, giftcard_receipt_message(card))

    def _notify(self, address: str, message: tuple[str, str]) -> None:
        """
        Deliver one message inline, after the card change is committed.

        The caller waits for the notifier (up to MAIL_TIMEOUT_SECONDS per
        message with SendGrid). Failures are logged and never change the
        result of the operation.
        """
        subject, body = message
        try:
            delivered = self.notifier.send(address, subject, body)
        except Exception:
            logger.exception("Notification to %s failed", address)
            return
        if not delivered:
            logger.warning("Notification to %s was not delivered", address)


# =============================================================================
# APPLICATION WIRING
# =============================================================================

def init_giftcard_service(app, store: GiftCardStore | None = None, notifier: Notifier | None = None) -> GiftCardService:
    """Build the service from app config and register it on the app."""
    from .giftcard_store import SqlGiftCardStore
    from .notification_service import build_notifier

    service = GiftCardService(
        store or SqlGiftCardStore(),
        notifier or build_notifier(app.config),
        code_prefix=app.config.get("GIFTCARD_CODE_PREFIX", DEFAULT_CODE_PREFIX),
        max_code_attempts=app.config.get("GIFTCARD_MAX_CODE_ATTEMPTS", DEFAULT_MAX_CODE_ATTEMPTS),
        payment_secret=app.config.get("RAZORPAY_KEY_SECRET"),
        redemption_notify_email=app.config.get("REDEMPTION_NOTIFY_EMAIL"),
    )
    app.extensions["giftcards"] = service
    return service


def get_giftcard_service() -> GiftCardService:
    return current_app.extensions["giftcards"]
