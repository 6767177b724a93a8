# Overview: Service-layer operations for gift card codes; generation and normalization.

"""
Gift Card Code Generator

FORMAT: PREFIX-XXXX-XXXX-XXXX

Each X is drawn uniformly from a 32 symbol alphabet with the visually
confusable glyphs removed (0/O, 1/I). 12 symbols * 5 bits = 60 bits of
entropy per code.

Uniqueness is NOT guaranteed here. The store enforces it and the lifecycle
engine retries on collision.
"""

from __future__ import annotations

import re
import secrets


CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_GROUPS = 3
CODE_GROUP_LENGTH = 4
DEFAULT_CODE_PREFIX = "LIKE"

# Matches the gift_cards.code column width
MAX_CODE_LENGTH = 32
MAX_PREFIX_LENGTH = MAX_CODE_LENGTH - CODE_GROUPS * (CODE_GROUP_LENGTH + 1)

PREFIX_PATTERN = re.compile(f"^[A-Z0-9]{{1,{MAX_PREFIX_LENGTH}}}$")


def validate_code_prefix(prefix: str) -> str:
    """
    Return the upper-cased prefix, or raise ValueError.

    Cards minted with a prefix that does not fit the code column could
    never be looked up again.
    """
    if not isinstance(prefix, str):
        raise ValueError("Gift card code prefix must be a string")
    normalized = prefix.strip().upper()
    if not PREFIX_PATTERN.match(normalized):
        raise ValueError(
            f"Gift card code prefix {prefix!r} must be 1-{MAX_PREFIX_LENGTH} characters of A-Z or 0-9"
        )
    return normalized


def generate_code(prefix: str = DEFAULT_CODE_PREFIX) -> str:
    """
    Generate a new gift card code.

    Uses the secrets CSPRNG: predictable codes would let an attacker
    redeem cards they never bought.
    """
    groups = [
        "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_GROUP_LENGTH))
        for _ in range(CODE_GROUPS)
    ]
    return "-".join([prefix.upper(), *groups])


def normalize_code(value: str) -> str:
    """Normalize to uppercase, no surrounding whitespace."""
    return value.strip().upper()


def code_pattern(prefix: str | None = DEFAULT_CODE_PREFIX) -> re.Pattern:
    """Format regex; prefix=None accepts any valid prefix."""
    group = f"[{CODE_ALPHABET}]{{{CODE_GROUP_LENGTH}}}"
    head = f"[A-Z0-9]{{1,{MAX_PREFIX_LENGTH}}}" if prefix is None else re.escape(prefix.upper())
    return re.compile(
        "^" + head + "".join(f"-{group}" for _ in range(CODE_GROUPS)) + "$"
    )


def is_well_formed_code(value: str, prefix: str | None = DEFAULT_CODE_PREFIX) -> bool:
    """True if value has the PREFIX-XXXX-XXXX-XXXX shape over the code alphabet."""
    if not isinstance(value, str):
        return False
    return code_pattern(prefix).match(normalize_code(value)) is not None


def mask_code(code: str) -> str:
    """Log-safe form of a code: only the prefix and last group are kept."""
    parts = normalize_code(code).split("-")
    if len(parts) <= 2:
        return "****"
    return "-".join([parts[0], *("****" for _ in parts[1:-1]), parts[-1]])
