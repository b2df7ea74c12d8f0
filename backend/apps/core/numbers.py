"""
Rounding helpers shared by progress and analytics.

Python's built-in round() uses banker's rounding (round(2.5) == 2); every
displayed number here rounds halves up towards positive infinity instead,
so 2.5 -> 3 and -2.5 -> -2.
"""

from decimal import ROUND_FLOOR, Decimal

HALF = Decimal("0.5")


def round_half_up(value, places=0):
    """
    Round ``value`` half-up to ``places`` decimals.

    Returns an int when ``places`` is 0, otherwise a float.
    """
    scale = Decimal(10) ** places
    scaled = (Decimal(str(value)) * scale + HALF).to_integral_value(rounding=ROUND_FLOOR)
    if places == 0:
        return int(scaled)
    return float(scaled / scale)


def average(values, places=1):
    """
    Mean of the non-null ``values`` rounded to ``places`` decimals.

    An empty input yields 0, never None or NaN.
    """
    present = [v for v in values if v is not None]
    if not present:
        return 0
    return round_half_up(sum(present) / len(present), places)
