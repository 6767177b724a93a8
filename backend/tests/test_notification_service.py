import json

import httpx

from giftcards.services.notification_service import (
    LogNotifier,
    SendGridNotifier,
    build_notifier,
    giftcard_issued_message,
    giftcard_receipt_message,
    redemption_ops_message,
    redemption_received_message,
)


API_URL = "https://mail.test/v3/mail/send"


def notifier_with(handler):
    return SendGridNotifier(
        api_key="SG.test",
        from_email="noreply@like.local",
        from_name="LIKE",
        api_url=API_URL,
        transport=httpx.MockTransport(handler),
    )


class TestSendGridNotifier:
    def test_accepted_message(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(202)

        assert notifier_with(handler).send("b@y.com", "Hello", "Body") is True

        request = seen[0]
        assert str(request.url) == API_URL
        assert request.headers["Authorization"] == "Bearer SG.test"
        payload = json.loads(request.content)
        assert payload["personalizations"] == [{"to": [{"email": "b@y.com"}]}]
        assert payload["from"] == {"email": "noreply@like.local", "name": "LIKE"}
        assert payload["subject"] == "Hello"
        assert payload["content"] == [{"type": "text/plain", "value": "Body"}]

    def test_rejected_message(self):
        notifier = notifier_with(lambda request: httpx.Response(500, text="boom"))
        assert notifier.send("b@y.com", "Hello", "Body") is False

    def test_unreachable_api(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert notifier_with(handler).send("b@y.com", "Hello", "Body") is False

    def test_payload_without_sender_name(self):
        notifier = SendGridNotifier(api_key="SG.test", from_email="noreply@like.local")
        assert notifier.build_payload("b@y.com", "s", "b")["from"] == {"email": "noreply@like.local"}


def test_build_notifier_without_api_key():
    assert isinstance(build_notifier({"SENDGRID_API_KEY": None}), LogNotifier)


def test_build_notifier_with_api_key():
    notifier = build_notifier({
        "SENDGRID_API_KEY": "SG.key",
        "MAIL_FROM_EMAIL": "noreply@like.local",
        "MAIL_FROM_NAME": "LIKE",
        "MAIL_TIMEOUT_SECONDS": 5.0,
    })

    assert isinstance(notifier, SendGridNotifier)
    assert notifier.from_email == "noreply@like.local"
    assert notifier.timeout == 5.0


def test_log_notifier_always_succeeds():
    assert LogNotifier().send("b@y.com", "Hello", "Body") is True


class TestMessages:
    def test_issued_message(self, make_card):
        card = make_card(recipient_name="Bea", message="Happy birthday")

        subject, body = giftcard_issued_message(card)

        assert "gift card" in subject
        assert body.startswith("Hi Bea,")
        assert "LIKE-ABCD-EFGH-JKLM" in body
        assert "₹50 INR" in body
        assert "Happy birthday" in body

    def test_receipt_mentions_payment(self, make_card):
        card = make_card(recipient_email="b@y.com", payment_id="pay_1")

        subject, body = giftcard_receipt_message(card)

        assert "LIKE-ABCD-EFGH-JKLM" in subject
        assert "b@y.com" in body
        assert "pay_1" in body

    def test_redemption_messages(self, make_card):
        card = make_card(redemption_details={"withdrawalMethod": "upi", "email": "payee@x.com", "upiId": "p@bank"})

        _, payee_body = redemption_received_message(card)
        ops_subject, ops_body = redemption_ops_message(card)

        assert "upi" in payee_body
        assert ops_subject.startswith("[Payout]")
        assert "upiId: p@bank" in ops_body
        assert "Sender: a@x.com" in ops_body
