# Overview: Payment signature verification for Razorpay-style checkout confirmations.

"""
Payment Signature Verification

The payment processor signs "<order_id>|<payment_id>" with the merchant key
secret (HMAC-SHA256, lowercase hex). A gift card may only be minted from a
payment whose signature verifies.

The secret is configuration (RAZORPAY_KEY_SECRET). Never log it.
"""

from __future__ import annotations

import hashlib
import hmac


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Expected signature for an order/payment pair."""
    body = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id, payment_id, signature, secret) -> bool:
    """
    Constant-time check of a payment confirmation signature.

    Returns False (never raises) on mismatch or malformed input, including
    an unconfigured secret.
    """
    values = (order_id, payment_id, signature, secret)
    if not all(isinstance(v, str) and v for v in values):
        return False

    expected = compute_payment_signature(order_id, payment_id, secret)
    try:
        return hmac.compare_digest(expected, signature)
    except TypeError:
        # compare_digest rejects non-ASCII str arguments
        return False
