"""Exact monetary arithmetic helpers.

Amounts are persisted on the aggregate as 2-decimal floats (the storage
convention used across the platform) but every computation goes through
``Decimal``: values are read back with ``to_money`` which goes via ``str`` and
quantizes to cents, so repeated additions never accumulate binary drift.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Convert a float, int, str or Decimal to a Decimal rounded half-up to cents."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def as_stored(amount: Decimal) -> float:
    """Representation persisted in ``Float`` fields."""
    return float(to_money(amount))


def parse_optional_money(value) -> Decimal | None:
    """Parse an optional amount coming from a command; blank means "not provided"."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_money(value)
