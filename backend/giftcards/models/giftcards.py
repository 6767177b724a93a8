from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


STATUS_ACTIVE = "active"
STATUS_REDEEMED = "redeemed"
STATUS_EXPIRED = "expired"

DENOM_FIXED = "fixed"
DENOM_MULTI = "multi"
VALID_DENOM_TYPES = {DENOM_FIXED, DENOM_MULTI}


def _money(value):
    return float(value) if value is not None else None


class GiftCard(db.Model):
    """
    A value-bearing, uniquely coded redeemable token.

    STATE MACHINE:
        active -> redeemed   (terminal)
        active -> expired    (terminal)

    Cards are never deleted. redeemed_at and redemption_details are only
    ever written together with the active -> redeemed transition.
    """
    __tablename__ = "gift_cards"
    __table_args__ = (
        db.Index("ix_gift_cards_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)  # LIKE-XXXX-XXXX-XXXX

    sender_email = db.Column(db.String(255), nullable=False)
    recipient_email = db.Column(db.String(255), nullable=True)
    recipient_name = db.Column(db.String(255), nullable=True)
    message = db.Column(db.Text, nullable=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(8), nullable=False)
    currency_symbol = db.Column(db.String(8), nullable=True)
    denom_type = db.Column(db.String(16), nullable=False, default=DENOM_FIXED)
    balance = db.Column(db.Numeric(12, 2), nullable=True)  # multi only

    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE)

    # Payment the card was minted from (NULL for administrative issuance)
    payment_order_id = db.Column(db.String(64), nullable=True)
    payment_id = db.Column(db.String(64), nullable=True, unique=True)

    created_at = db.Column(db.DateTime, nullable=False)
    redeemed_at = db.Column(db.DateTime, nullable=True)
    redemption_details = db.Column(db.JSON, nullable=True)

    def to_dict(self, include_private: bool = True) -> dict:
        data = {
            "code": self.code,
            "recipient": self.recipient_name,
            "message": self.message,
            "amount": _money(self.amount),
            "currency": self.currency,
            "currencySymbol": self.currency_symbol,
            "denomType": self.denom_type,
            "balance": _money(self.balance),
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
            "redeemedAt": to_utc_z(self.redeemed_at),
        }
        if include_private:
            data.update({
                "senderEmail": self.sender_email,
                "recipientEmail": self.recipient_email,
                "paymentOrderId": self.payment_order_id,
                "paymentId": self.payment_id,
                "redemptionDetails": self.redemption_details,
            })
        return data

    def __repr__(self) -> str:
        return f"<GiftCard {self.code} {self.status}>"
