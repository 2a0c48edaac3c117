"""
Odds math for parlay payouts.

American odds:
- Positive (+150): profit on a 100 stake
- Negative (-110): stake needed to profit 100

Decimal odds are total return per unit staked, so a parlay's return is the
stake times the product of its legs' decimal odds.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

CENT = Decimal("0.01")


def american_to_decimal(odds: Union[int, float, Decimal]) -> Decimal:
    """
    Convert American odds to decimal odds.

    Args:
        odds: American odds, |odds| >= 100

    Returns:
        Decimal odds

    Raises:
        ValueError: If odds are inside (-100, 100)

    Examples:
        >>> american_to_decimal(150)
        Decimal('2.5')
        >>> american_to_decimal(-200)
        Decimal('1.5')
    """
    value = Decimal(str(odds))
    if abs(value) < 100:
        raise ValueError(f"invalid American odds: {odds}")
    if value > 0:
        return value / 100 + 1
    return Decimal(100) / abs(value) + 1


def parlay_decimal_odds(prices: Iterable[Union[int, float, Decimal]]) -> Decimal:
    """Combined decimal odds of a set of legs (1 for no legs)."""
    combined = Decimal(1)
    for price in prices:
        combined *= american_to_decimal(price)
    return combined


def to_cents(amount: Decimal) -> float:
    """Round a money amount to cents."""
    return float(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def parlay_payout(stake: Union[float, Decimal], prices: Iterable[Union[int, float, Decimal]]) -> float:
    """
    Total return of a winning parlay, rounded to cents.

    Examples:
        >>> parlay_payout(100, [-110, -110])
        364.46
    """
    return to_cents(Decimal(str(stake)) * parlay_decimal_odds(prices))
