# Overview: Flask API routes for gift card operations; parses input and returns JSON responses.

# backend/giftcards/routes/giftcards.py
"""
Gift Card API Routes

DESIGN:
- Lookup is public but returns the public view only (no e-mails, no payout details)
- Redemption is public: holding the code is the credential
- Issuance without payment and expiry require the admin token
- Service results map onto HTTP statuses in one place (result_response)
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_admin_token
from ..services.giftcard_service import (
    get_giftcard_service,
    ERROR_VALIDATION,
    ERROR_INVALID_SIGNATURE,
    ERROR_NOT_FOUND,
    ERROR_ALREADY_REDEEMED,
    ERROR_NOT_ACTIVE,
    ERROR_CODE_SPACE_EXHAUSTED,
    ERROR_PERSISTENCE_UNAVAILABLE,
)


giftcards_bp = Blueprint("giftcards", __name__, url_prefix="/api/giftcards")


HTTP_STATUS_BY_ERROR = {
    ERROR_VALIDATION: 400,
    ERROR_INVALID_SIGNATURE: 400,
    ERROR_NOT_FOUND: 404,
    ERROR_ALREADY_REDEEMED: 409,
    ERROR_NOT_ACTIVE: 409,
    ERROR_CODE_SPACE_EXHAUSTED: 500,
    ERROR_PERSISTENCE_UNAVAILABLE: 503,
}


def error_response(error: str, message: str, status: int | None = None):
    return jsonify({
        "success": False,
        "error": error,
        "message": message,
    }), status or HTTP_STATUS_BY_ERROR.get(error, 500)


def result_response(result, success_status: int = 200, include_private: bool = True):
    if not result.ok:
        return error_response(result.error, result.message)
    return jsonify({
        "success": True,
        "data": result.card.to_dict(include_private=include_private),
    }), success_status


def json_body() -> dict | None:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def internal_error(log_message: str):
    current_app.logger.exception(log_message)
    return error_response("INTERNAL_ERROR", "Internal server error", 500)


# =============================================================================
# ISSUANCE (ADMIN)
# =============================================================================

@giftcards_bp.post("/create")
@require_admin_token
def create_giftcard_route():
    """
    Issue a gift card without a payment.

    Request body:
    {
        "senderEmail": "a@x.com",
        "recipientEmail": "b@y.com",   (optional)
        "recipient": "Bea",            (optional)
        "amount": 50,
        "currency": "INR",
        "currencySymbol": "₹",         (optional)
        "message": "Happy birthday",   (optional)
        "denomType": "fixed"           (optional: fixed | multi)
    }

    Returns:
        201: Gift card created
        400: Invalid input
        401/403: Missing or invalid admin token
    """
    try:
        data = json_body()
        if data is None:
            return error_response(ERROR_VALIDATION, "Request body must be a JSON object")

        result = get_giftcard_service().create(data)
        return result_response(result, success_status=201)
    except Exception:
        return internal_error("Failed to create gift card")


# =============================================================================
# LOOKUP
# =============================================================================

@giftcards_bp.get("/<code>")
def get_giftcard_route(code: str):
    """
    Look up a gift card by code (case-insensitive).

    Returns:
        200: Public view of the card
        404: Unknown code
    """
    try:
        result = get_giftcard_service().find_by_code(code)
        return result_response(result, include_private=False)
    except Exception:
        return internal_error("Failed to load gift card")


# =============================================================================
# TRANSITIONS
# =============================================================================

@giftcards_bp.post("/redeem")
def redeem_giftcard_route():
    """
    Redeem a gift card into a payout request.

    Request body:
    {
        "code": "LIKE-ABCD-EFGH-JKLM",
        "withdrawalMethod": "upi",
        "email": "payee@example.com",
        "upiId": "payee@bank"          (any further payout fields are kept)
    }

    Returns:
        200: Card redeemed
        400: Invalid input
        404: Unknown code
        409: Card already redeemed or not active
    """
    try:
        data = json_body()
        if data is None:
            return error_response(ERROR_VALIDATION, "Request body must be a JSON object")

        result = get_giftcard_service().redeem(data.get("code"), data)
        return result_response(result, include_private=False)
    except Exception:
        return internal_error("Failed to redeem gift card")


@giftcards_bp.post("/<code>/expire")
@require_admin_token
def expire_giftcard_route(code: str):
    """
    Expire an active gift card.

    Returns:
        200: Card expired
        404: Unknown code
        409: Card already redeemed or expired
    """
    try:
        result = get_giftcard_service().expire(code)
        return result_response(result)
    except Exception:
        return internal_error("Failed to expire gift card")
