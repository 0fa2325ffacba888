"""
Currency rounding and formatting utilities.

WHAT: Whole-rupee rounding and display formatting for prices
WHY: Every offer and quote is stored in whole rupees
HOW: Half-up rounding (not banker's rounding) and thousands separators
"""

import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest whole unit, halves rounding up.

    Python's round() uses banker's rounding, so 2.5 would become 2.
    Prices here always round .5 towards positive infinity.

    Args:
        value: Amount to round

    Returns:
        Rounded integer amount
    """
    return int(math.floor(value + 0.5))


def format_rupees(amount: float) -> str:
    """Format an amount as a rupee string, e.g. ₹54,000."""
    return f"₹{round_half_up(amount):,}"
