# Overview: Numeric resolution rules for weights (milligram) and display prices (whole currency units).

import math

WEIGHT_DECIMALS = 3


def round_weight(value: float) -> float:
    """Normalize a gram amount to milligram resolution."""
    return round(float(value), WEIGHT_DECIMALS)


def round_currency(value: float) -> int:
    """Round half-up to a whole currency unit."""
    return int(math.floor(float(value) + 0.5))
