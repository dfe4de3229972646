# Overview: Sell-price derivation from metal rates, making charge and profit margin.

"""
Pricing Engine

Pure functions: no session access, no logging, no side effects. Callers
load the product, its category and the shop's MetalRate and pass them in.

FORMULA:
    metal_value = weight * (gold_rate if category is Gold else silver_rate)
    making_cost = making_charge * weight   (per_gram)
                | making_charge            (per_piece, flat per product line)
    cost        = metal_value + making_cost
    price       = cost * (1 + profit_percent / 100)

A missing category prices to 0 instead of raising, so price displays keep
working over inconsistent catalog data. Callers that need a strict check
look the category up themselves.

The precise price keeps full float precision; display_price rounds half-up
to whole currency units.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from ..measures import round_currency
from ..models import MakingChargeType, MetalType
from ..time_utils import to_utc_z, utcnow


@dataclass(frozen=True)
class PriceQuote:
    metal_value: float
    making_cost: float
    cost: float
    price: float
    display_price: int
    rate_per_gram: float
    rate_updated_at: Optional[datetime] = None
    rate_is_stale: bool = False

    def to_dict(self) -> dict:
        return {
            "metal_value": self.metal_value,
            "making_cost": self.making_cost,
            "cost": self.cost,
            "price": self.price,
            "display_price": self.display_price,
            "rate_per_gram": self.rate_per_gram,
            "rate_updated_at": to_utc_z(self.rate_updated_at),
            "rate_is_stale": self.rate_is_stale,
        }


ZERO_QUOTE = PriceQuote(
    metal_value=0.0,
    making_cost=0.0,
    cost=0.0,
    price=0.0,
    display_price=0,
    rate_per_gram=0.0,
)


def rate_for_metal(metal_rate, metal_type: str) -> float:
    """Per-gram rate of the metal that prices a category."""
    if metal_rate is None:
        return 0.0
    if metal_type == MetalType.GOLD.value:
        return float(metal_rate.gold_rate or 0.0)
    return float(metal_rate.silver_rate or 0.0)


def is_rate_stale(metal_rate, *, now: datetime | None = None, max_age: timedelta | None = None) -> bool:
    """True when the rate was never set or is older than max_age."""
    if metal_rate is None or metal_rate.updated_at is None:
        return True
    if max_age is None:
        return False
    updated_at = metal_rate.updated_at
    if updated_at.tzinfo is not None:
        updated_at = updated_at.replace(tzinfo=None)
    return (now or utcnow()) - updated_at > max_age


def compute_price(
    *,
    weight: float,
    rate_per_gram: float,
    making_charge: float,
    making_charge_type: str,
    profit_percent: float,
) -> PriceQuote:
    weight = float(weight or 0.0)
    making_charge = float(making_charge or 0.0)

    metal_value = weight * float(rate_per_gram or 0.0)
    if making_charge_type == MakingChargeType.PER_GRAM.value:
        making_cost = making_charge * weight
    else:
        making_cost = making_charge
    cost = metal_value + making_cost
    price = cost * (1 + float(profit_percent or 0.0) / 100)

    return PriceQuote(
        metal_value=metal_value,
        making_cost=making_cost,
        cost=cost,
        price=price,
        display_price=round_currency(price),
        rate_per_gram=float(rate_per_gram or 0.0),
    )


def quote_price(
    product,
    category,
    metal_rate,
    *,
    now: datetime | None = None,
    max_age: timedelta | None = None,
) -> PriceQuote:
    """
    Full price breakdown for a product.

    category must be the row product.category_id points to; None (dangling
    or missing category) yields ZERO_QUOTE.
    """
    if category is None or category.id != product.category_id:
        return ZERO_QUOTE

    quote = compute_price(
        weight=product.weight,
        rate_per_gram=rate_for_metal(metal_rate, category.type),
        making_charge=product.making_charge,
        making_charge_type=product.making_charge_type,
        profit_percent=product.profit_percent,
    )
    return replace(
        quote,
        rate_updated_at=metal_rate.updated_at if metal_rate is not None else None,
        rate_is_stale=is_rate_stale(metal_rate, now=now, max_age=max_age),
    )


def calculate_price(product, category, metal_rate) -> int:
    """Display price (whole currency units) of a product; 0 when its category is missing."""
    return quote_price(product, category, metal_rate).display_price
