# Overview: Persistence boundary for gift cards; the single source of truth for card state.

"""
Gift Card Store

WHY: Redemption must happen exactly once even when several server instances
receive the same request at the same time. That guarantee lives HERE, in
atomic store operations, not in application locks:

- insert_unique: unique index on code (and payment_id)
- compare_and_transition: one conditional UPDATE ... WHERE status = :from,
  decided by the affected-row count

SqlGiftCardStore is the production store. InMemoryGiftCardStore is a test
double; its lock only covers a single process.
"""

from __future__ import annotations

import copy
import logging
import threading

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from ..extensions import db
from ..models import GiftCard
from .code_generator import normalize_code
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for gift card store errors."""


class CodeCollision(StoreError):
    """Raised when a card with the same code already exists."""

    def __init__(self, code: str):
        super().__init__(f"Gift card code {code} already exists")
        self.code = code


class PaymentAlreadyRecorded(StoreError):
    """Raised when the payment already minted a card. Carries that card."""

    def __init__(self, card: GiftCard):
        super().__init__(f"Payment {card.payment_id} already minted gift card {card.code}")
        self.card = card


class CardNotFound(StoreError):
    def __init__(self, code: str):
        super().__init__(f"Gift card {code} not found")
        self.code = code


class TransitionConflict(StoreError):
    """Raised when the card is not in the expected status. Nothing was written."""

    def __init__(self, code: str, current_status: str, expected_status: str):
        super().__init__(
            f"Gift card {code} is '{current_status}', expected '{expected_status}'"
        )
        self.code = code
        self.current_status = current_status
        self.expected_status = expected_status


class StoreUnavailable(StoreError):
    """Backend unreachable. Distinct from CardNotFound on purpose."""


class GiftCardStore:
    """Interface shared by every gift card store backend."""

    def insert_unique(self, card: GiftCard) -> GiftCard:
        raise NotImplementedError

    def find_by_code(self, code: str) -> GiftCard:
        raise NotImplementedError

    def find_by_payment_id(self, payment_id: str) -> GiftCard | None:
        raise NotImplementedError

    def compare_and_transition(
        self,
        code: str,
        from_status: str,
        to_status: str,
        changes: dict | None = None,
    ) -> GiftCard:
        raise NotImplementedError


class SqlGiftCardStore(GiftCardStore):
    """Flask-SQLAlchemy backed store. Requires an application context."""

    def _run(self, func):
        try:
            return run_with_retry(func)
        except (OperationalError, InterfaceError) as exc:
            db.session.rollback()
            logger.error("Gift card store unavailable: %s", type(exc).__name__)
            raise StoreUnavailable("Gift card store is unavailable") from exc

    def insert_unique(self, card: GiftCard) -> GiftCard:
        card.code = normalize_code(card.code)

        def _op():
            db.session.add(card)
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                if db.session.query(GiftCard.id).filter_by(code=card.code).first():
                    raise CodeCollision(card.code)
                if card.payment_id:
                    existing = self.find_by_payment_id(card.payment_id)
                    if existing is not None:
                        raise PaymentAlreadyRecorded(existing)
                raise
            db.session.refresh(card)
            return card

        return self._run(_op)

    def find_by_code(self, code: str) -> GiftCard:
        normalized = normalize_code(code)

        def _op():
            card = db.session.query(GiftCard).filter_by(code=normalized).first()
            if card is None:
                raise CardNotFound(normalized)
            return card

        return self._run(_op)

    def find_by_payment_id(self, payment_id: str) -> GiftCard | None:
        return self._run(
            lambda: db.session.query(GiftCard).filter_by(payment_id=payment_id).first()
        )

    def compare_and_transition(self, code, from_status, to_status, changes=None):
        normalized = normalize_code(code)
        values = dict(changes or {})
        values["status"] = to_status

        def _op():
            stmt = (
                update(GiftCard)
                .where(GiftCard.code == normalized, GiftCard.status == from_status)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = db.session.execute(stmt)
            if result.rowcount == 1:
                db.session.commit()
                return None
            db.session.rollback()
            return self.find_by_code(normalized)

        current = self._run(_op)
        if current is not None:
            raise TransitionConflict(normalized, current.status, from_status)
        return self.find_by_code(normalized)


class InMemoryGiftCardStore(GiftCardStore):
    """
    Process-local store for tests.

    NOT a production store: the lock cannot give atomicity across server
    instances.
    """

    def __init__(self):
        self._cards: dict[str, GiftCard] = {}
        self._lock = threading.Lock()

    def insert_unique(self, card: GiftCard) -> GiftCard:
        card.code = normalize_code(card.code)
        with self._lock:
            if card.code in self._cards:
                raise CodeCollision(card.code)
            if card.payment_id:
                for existing in self._cards.values():
                    if existing.payment_id == card.payment_id:
                        raise PaymentAlreadyRecorded(existing)
            self._cards[card.code] = card
        return card

    def find_by_code(self, code: str) -> GiftCard:
        normalized = normalize_code(code)
        with self._lock:
            card = self._cards.get(normalized)
        if card is None:
            raise CardNotFound(normalized)
        return card

    def find_by_payment_id(self, payment_id: str) -> GiftCard | None:
        with self._lock:
            for card in self._cards.values():
                if card.payment_id == payment_id:
                    return card
        return None

    def compare_and_transition(self, code, from_status, to_status, changes=None):
        normalized = normalize_code(code)
        with self._lock:
            card = self._cards.get(normalized)
            if card is None:
                raise CardNotFound(normalized)
            if card.status != from_status:
                raise TransitionConflict(normalized, card.status, from_status)
            for key, value in (changes or {}).items():
                setattr(card, key, copy.deepcopy(value))
            card.status = to_status
        return card

    def __len__(self) -> int:
        with self._lock:
            return len(self._cards)
