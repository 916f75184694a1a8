"""
Keyword classification of free-form category and description text.

Both classifiers are pure lookups over ordered keyword tables: the first row
with a keyword contained in the lower-cased text wins.
"""
from enum import Enum
from typing import Optional, Sequence, Tuple, TypeVar


class SpendCategory(str, Enum):
    SHOPPING = "shopping"
    FOOD = "food"
    HEALTHCARE = "healthcare"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    TRANSPORT = "transport"
    OTHER = "other"


class ShoppingItem(str, Enum):
    FOOTWEAR = "footwear"
    BAG = "bag"
    CLOTHING = "clothing"
    OTHER = "other"


CATEGORY_KEYWORDS: Tuple[Tuple[SpendCategory, Tuple[str, ...]], ...] = (
    (SpendCategory.SHOPPING, ("shopping", "clothing", "footwear")),
    (SpendCategory.FOOD, ("food", "grocery", "groceries")),
    (SpendCategory.HEALTHCARE, ("health", "medical")),
    (SpendCategory.UTILITIES, ("utility", "utilities", "bill")),
    (SpendCategory.ENTERTAINMENT, ("entertainment",)),
    (SpendCategory.TRANSPORT, ("transport", "fuel")),
)

ITEM_KEYWORDS: Tuple[Tuple[ShoppingItem, Tuple[str, ...]], ...] = (
    (ShoppingItem.FOOTWEAR, ("shoe", "sneaker", "footwear")),
    (ShoppingItem.BAG, ("bag", "purse", "backpack")),
    (ShoppingItem.CLOTHING, ("shirt", "pant", "cloth", "dress")),
)

T = TypeVar("T")


def _first_match(text: Optional[str], table: Sequence[Tuple[T, Tuple[str, ...]]], default: T) -> T:
    lowered = (text or "").lower()
    for variant, keywords in table:
        if any(keyword in lowered for keyword in keywords):
            return variant
    return default


def classify_category(category: Optional[str]) -> SpendCategory:
    return _first_match(category, CATEGORY_KEYWORDS, SpendCategory.OTHER)


def classify_item(description: Optional[str]) -> ShoppingItem:
    return _first_match(description, ITEM_KEYWORDS, ShoppingItem.OTHER)
