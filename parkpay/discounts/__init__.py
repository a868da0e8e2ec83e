"""
Module 'discounts' (feature-first): moteur de remises unifié et endpoint de prévisualisation.
"""

from .engine import (
    CATEGORIES,
    DiscountResult,
    calculate_discounts,
    from_cents,
    is_early_bird_open,
    parse_deadline,
    to_cents,
)
from .schemas import AppliedDiscounts, ValidateDiscountsRequest

__all__ = [
    "CATEGORIES",
    "DiscountResult",
    "calculate_discounts",
    "from_cents",
    "is_early_bird_open",
    "parse_deadline",
    "to_cents",
    "AppliedDiscounts",
    "ValidateDiscountsRequest",
]
