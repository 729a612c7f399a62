"""Unit conversions between milliliters and US fluid ounces."""

ML_PER_OZ = 29.5735


def ml_to_oz(ml: float) -> float:
    return ml / ML_PER_OZ


def format_volume(ml: float, imperial: bool = True) -> str:
    """Human readable volume, e.g. '68 oz' or '2000 ml'."""
    if imperial:
        return f"{round(ml_to_oz(ml))} oz"
    return f"{round(ml)} ml"
