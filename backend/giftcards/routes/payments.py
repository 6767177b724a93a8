# Overview: Flask API routes for payment confirmations; mints gift cards from verified payments.

# backend/giftcards/routes/payments.py
"""
Payment Confirmation API Routes

The checkout page posts the processor's confirmation (order id, payment id,
signature) together with the gift card details. A card is created only when
the signature verifies against RAZORPAY_KEY_SECRET.

Provider-side order creation is not handled here.
"""

from flask import Blueprint, jsonify

from ..services.giftcard_service import get_giftcard_service, PaymentReference, ERROR_VALIDATION
from .giftcards import error_response, internal_error, json_body


payments_bp = Blueprint("payments", __name__, url_prefix="/api/razorpay")


@payments_bp.post("/verify")
def verify_payment_route():
    """
    Verify a payment confirmation and create its gift card.

    Request body:
    {
        "razorpay_order_id": "order_...",
        "razorpay_payment_id": "pay_...",
        "razorpay_signature": "<hex>",
        "senderEmail": "a@x.com",
        "amount": 50,
        "currency": "INR",
        ... (same gift card fields as /api/giftcards/create)
    }

    Returns:
        201: Gift card created ({"success": true, "code": ..., "data": ...})
        200: Confirmation replayed; the existing card is returned
        400: Invalid signature or invalid gift card fields
    """
    try:
        data = json_body()
        if data is None:
            return error_response(ERROR_VALIDATION, "Request body must be a JSON object")

        payment_ref = PaymentReference(
            order_id=data.get("razorpay_order_id"),
            payment_id=data.get("razorpay_payment_id"),
            signature=data.get("razorpay_signature"),
        )
        # The signature binds order and payment ids only. amount comes from the
        # client and is not checked against the paid order amount.
        giftcard_fields = {
            key: value for key, value in data.items()
            if not key.startswith("razorpay_")
        }

        result = get_giftcard_service().create_from_payment(payment_ref, giftcard_fields)
        if not result.ok:
            return error_response(result.error, result.message)

        return jsonify({
            "success": True,
            "code": result.card.code,
            "data": result.card.to_dict(),
        }), 200 if result.replayed else 201
    except Exception:
        return internal_error("Failed to verify payment")
