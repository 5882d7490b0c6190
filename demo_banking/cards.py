"""
Card Brand Classification

Maps a card number to its brand using ordered prefix rules. The first
matching rule wins, so a shorter prefix must never sit above a longer
prefix it would swallow.
"""

from enum import Enum
from typing import List, Tuple


class CardBrand(Enum):
    """Card networks accepted for funding"""
    VISA = "Visa"
    MASTERCARD = "Mastercard"
    AMEX = "American Express"
    DISCOVER = "Discover"
    UNKNOWN = "Unknown"


CARD_PREFIX_RULES: List[Tuple[str, CardBrand]] = [
    ("4", CardBrand.VISA),
    ("5", CardBrand.MASTERCARD),
    ("34", CardBrand.AMEX),
    ("37", CardBrand.AMEX),
    ("6011", CardBrand.DISCOVER),
    ("65", CardBrand.DISCOVER),
]


def check_rule_order(rules: List[Tuple[str, CardBrand]]) -> None:
    """
    Raise ValueError if an earlier prefix shadows a later one.

    A later rule is unreachable when an earlier rule's prefix is a prefix
    of it, because every number matching the later rule matches the
    earlier one first.
    """
    for index, (prefix, brand) in enumerate(rules):
        for earlier_prefix, earlier_brand in rules[:index]:
            if prefix.startswith(earlier_prefix):
                raise ValueError(
                    f"Card rule {prefix}->{brand.value} is shadowed by "
                    f"{earlier_prefix}->{earlier_brand.value}"
                )


check_rule_order(CARD_PREFIX_RULES)


def detect_card_brand(card_number: str) -> CardBrand:
    """Return the brand for a card number, or CardBrand.UNKNOWN"""
    number = card_number.replace(" ", "").replace("-", "")
    for prefix, brand in CARD_PREFIX_RULES:
        if number.startswith(prefix):
            return brand
    return CardBrand.UNKNOWN


def mask_card_number(card_number: str) -> str:
    """Show only the last four digits, e.g. ``****1111``"""
    number = card_number.replace(" ", "").replace("-", "")
    return f"****{number[-4:]}"
