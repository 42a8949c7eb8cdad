"""Money rounding and display."""

from decimal import ROUND_HALF_UP, Decimal

from taxregistry.records.constants import CURRENCY_SYMBOL

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | float | int | str | None) -> Decimal:
    """Round a value half-up to two decimal places.

    ``None`` is treated as zero, which is what aggregate queries return over
    empty sets.
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: Decimal | float | int) -> str:
    """Format an amount in naira, e.g. ``₦220,000.00``.

    Display only; callers never parse this back.
    """
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}"
