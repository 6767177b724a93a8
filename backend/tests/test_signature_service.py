import hashlib
import hmac

import pytest

from giftcards.services.signature_service import (
    compute_payment_signature,
    verify_payment_signature,
)


ORDER_ID = "order_Rt6rTO0QIYWaVk"
PAYMENT_ID = "pay_29QQoUBi66xm2f"
SECRET = "KfOmHp6IAJ70ij5opQ0HnC3"


def _reference(order_id, payment_id, secret):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def _mutate(value: str) -> str:
    return value[:-1] + ("X" if value[-1] != "X" else "Y")


def test_signature_is_lowercase_hex_hmac_sha256():
    signature = compute_payment_signature(ORDER_ID, PAYMENT_ID, SECRET)
    assert signature == _reference(ORDER_ID, PAYMENT_ID, SECRET)
    assert len(signature) == 64
    assert signature == signature.lower()


def test_valid_signature_verifies():
    signature = _reference(ORDER_ID, PAYMENT_ID, SECRET)
    assert verify_payment_signature(ORDER_ID, PAYMENT_ID, signature, SECRET) is True


@pytest.mark.parametrize("field", ["order_id", "payment_id", "secret"])
def test_single_character_mutation_fails(field):
    signature = _reference(ORDER_ID, PAYMENT_ID, SECRET)
    args = {"order_id": ORDER_ID, "payment_id": PAYMENT_ID, "secret": SECRET}
    args[field] = _mutate(args[field])

    assert verify_payment_signature(args["order_id"], args["payment_id"], signature, args["secret"]) is False


def test_tampered_signature_fails():
    signature = _reference(ORDER_ID, PAYMENT_ID, SECRET)
    tampered = ("0" if signature[0] != "0" else "1") + signature[1:]
    assert verify_payment_signature(ORDER_ID, PAYMENT_ID, tampered, SECRET) is False


def test_upper_case_signature_does_not_match():
    signature = _reference(ORDER_ID, PAYMENT_ID, SECRET).upper()
    assert verify_payment_signature(ORDER_ID, PAYMENT_ID, signature, SECRET) is False


@pytest.mark.parametrize("order_id,payment_id,signature,secret", [
    (None, PAYMENT_ID, "abc", SECRET),
    (ORDER_ID, None, "abc", SECRET),
    (ORDER_ID, PAYMENT_ID, None, SECRET),
    (ORDER_ID, PAYMENT_ID, "", SECRET),
    (ORDER_ID, PAYMENT_ID, 12345, SECRET),
    (ORDER_ID, PAYMENT_ID, "abc", None),
    (ORDER_ID, PAYMENT_ID, "abc", ""),
    (ORDER_ID, PAYMENT_ID, "ßignature", SECRET),
])
def test_malformed_input_returns_false(order_id, payment_id, signature, secret):
    assert verify_payment_signature(order_id, payment_id, signature, secret) is False
