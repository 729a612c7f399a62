"""Beverage Weighting - Pure functions for effective hydration volume.

Factors are approximate retention multipliers relative to plain water, based
on beverage hydration index literature. Alcohol contributes nothing.
"""

from .models import BeverageType, IntakeEvent

HYDRATION_FACTORS: dict[BeverageType, float] = {
    BeverageType.WATER: 1.0,
    BeverageType.ELECTROLYTE: 1.15,
    BeverageType.MILK: 1.5,
    BeverageType.COFFEE: 0.95,
    BeverageType.BEER: 0.0,
    BeverageType.WINE: 0.0,
    BeverageType.COCKTAIL: 0.0,
    BeverageType.SODA: 0.9,
    BeverageType.JUICE: 1.1,
    BeverageType.OTHER: 1.0,
}


def hydration_factor(beverage_type: BeverageType | str | None) -> float:
    """Retention factor for a beverage; unknown types count as water."""
    if isinstance(beverage_type, BeverageType):
        return HYDRATION_FACTORS[beverage_type]
    try:
        key = BeverageType(str(beverage_type or "other").lower())
    except ValueError:
        return 1.0
    return HYDRATION_FACTORS[key]


def effective_volume_ml(intake: IntakeEvent) -> float:
    return intake.volume_ml * hydration_factor(intake.beverage_type)


def sum_effective_ml(intakes: list[IntakeEvent]) -> float:
    """Total intake weighted by beverage retention factors.

    Args:
        intakes: Intake events for a day

    Returns:
        Weighted volume in milliliters (0 for an empty list)
    """
    return sum(effective_volume_ml(i) for i in intakes)
