from .giftcards import GiftCard

__all__ = [
    'GiftCard',
]
