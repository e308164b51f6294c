from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Optional

KOBO_PER_NAIRA = 100


def naira_to_kobo(value) -> int:
    """Convert a naira amount (number or numeric string) to whole kobo, rounding down."""
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return int((amount * KOBO_PER_NAIRA).to_integral_value(rounding=ROUND_FLOOR))


def kobo_to_naira(value: int) -> str:
    """Display string for a kobo amount, e.g. 1015000 -> '10150.00'."""
    return str((Decimal(value) / KOBO_PER_NAIRA).quantize(Decimal("0.01")))


def parse_minor_units(value, scale=1) -> Optional[int]:
    """
    Whole minor units from an untrusted amount, rounding down.

    ``scale`` converts from the unit the value is expressed in (100 for naira).
    Returns ``None`` when the value is missing or not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value)) * scale
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return int(amount.to_integral_value(rounding=ROUND_FLOOR))
