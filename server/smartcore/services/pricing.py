"""Module catalogue and subscription price calculator for owner signup.

Prices are monthly, in GBP, before VAT.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

CURRENCY = "GBP"

# Monthly list price per module
MODULE_PRICING: dict[str, Decimal] = {
    "rota": Decimal("19.00"),
    "timesheets": Decimal("15.00"),
    "holidays": Decimal("12.00"),
    "documents": Decimal("9.00"),
    "training": Decimal("14.00"),
    "reporting": Decimal("11.00"),
}

# Company-size band -> price multiplier
COMPANY_SIZE_MULTIPLIERS: dict[str, Decimal] = {
    "1-9": Decimal("1.00"),
    "10-49": Decimal("1.50"),
    "50-249": Decimal("2.50"),
    "250+": Decimal("4.00"),
}

# Unknown or free-text bands are priced as the smallest band
DEFAULT_MULTIPLIER = Decimal("1.00")


def unknown_modules(module_ids: Iterable[str]) -> list[str]:
    return [module_id for module_id in module_ids if module_id not in MODULE_PRICING]


def size_multiplier(company_size: str | None) -> Decimal:
    key = (company_size or "").strip().replace(" ", "")
    return COMPANY_SIZE_MULTIPLIERS.get(key, DEFAULT_MULTIPLIER)


def calculate_subscription_price(module_ids: Iterable[str], company_size: str | None) -> Decimal:
    """Monthly price for the selected modules, scaled by company size and rounded to pennies."""
    unknown = unknown_modules(module_ids)
    if unknown:
        raise ValueError(f"Unknown module: {unknown[0]}")

    subtotal = sum((MODULE_PRICING[module_id] for module_id in module_ids), Decimal("0"))
    total = subtotal * size_multiplier(company_size)
    return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
