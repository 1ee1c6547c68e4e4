"""Pricing engine — pure functions over order lines and a destination region.

All arithmetic is done with ``Decimal`` and rounded half-up to cents. Lines
are any objects (or mappings) exposing ``unit_price`` and ``quantity``.

Rates are a fixed rule table standing in for a tax/shipping service:

    tax:       10% default; alberta 5%, ontario 13%, quebec 14.975%
    shipping:  15.00 flat; free once subtotal >= 100.00; "remote" regions x1.5
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from orders.shared.money import CENT, ZERO, to_money

DEFAULT_TAX_RATE = Decimal("0.10")

# Matched in order against the lower-cased destination region
REGIONAL_TAX_RATES = (
    ("alberta", Decimal("0.05")),  # GST
    ("ontario", Decimal("0.13")),  # HST
    ("quebec", Decimal("0.14975")),  # GST + QST
)

FLAT_SHIPPING_RATE = Decimal("15.00")
FREE_SHIPPING_THRESHOLD = Decimal("100.00")
REMOTE_REGION_MARKER = "remote"
REMOTE_SURCHARGE_MULTIPLIER = Decimal("1.5")


@dataclass(frozen=True)
class DiscountRule:
    code: str
    percentage: Decimal | None = None
    flat_amount: Decimal | None = None

    def amount_for(self, subtotal: Decimal) -> Decimal:
        if self.percentage is not None:
            raw = subtotal * self.percentage
        else:
            raw = self.flat_amount or ZERO
        # Never discount more than the goods are worth
        return min(to_money(raw), to_money(subtotal))


DISCOUNT_CODES = {
    rule.code: rule
    for rule in (
        DiscountRule("SAVE10", percentage=Decimal("0.10")),
        DiscountRule("SAVE20", percentage=Decimal("0.20")),
        DiscountRule("WELCOME15", percentage=Decimal("0.15")),
        DiscountRule("FLAT25", flat_amount=Decimal("25.00")),
    )
}


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal

    def as_fields(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "tax_amount": float(self.tax),
            "shipping_amount": float(self.shipping),
            "discount_amount": float(self.discount),
            "total_amount": float(self.total),
        }


def _field(line, name):
    if isinstance(line, dict):
        return line[name]
    return getattr(line, name)


def line_amount(unit_price, quantity) -> Decimal:
    return to_money(to_money(unit_price) * int(quantity))


def subtotal(lines) -> Decimal:
    """Sum of ``unit_price x quantity`` over all lines."""
    amount = sum(
        (to_money(_field(line, "unit_price")) * int(_field(line, "quantity")) for line in lines),
        ZERO,
    )
    return to_money(amount)


def tax_rate_for(region: str | None) -> Decimal:
    if region:
        lowered = region.lower()
        for marker, rate in REGIONAL_TAX_RATES:
            if marker in lowered:
                return rate
    return DEFAULT_TAX_RATE


def tax(subtotal_amount, region: str | None) -> Decimal:
    return (to_money(subtotal_amount) * tax_rate_for(region)).quantize(CENT, rounding=ROUND_HALF_UP)


def shipping(lines, region: str | None) -> Decimal:
    """Flat rate, waived once the subtotal reaches the free-shipping threshold."""
    if subtotal(lines) >= FREE_SHIPPING_THRESHOLD:
        return ZERO

    amount = FLAT_SHIPPING_RATE
    if region and REMOTE_REGION_MARKER in region.lower():
        amount = FLAT_SHIPPING_RATE * REMOTE_SURCHARGE_MULTIPLIER
    return to_money(amount)


def cap_discount(discount_amount, subtotal_amount) -> Decimal:
    return min(to_money(discount_amount), to_money(subtotal_amount))


def total(subtotal_amount, tax_amount, shipping_amount, discount_amount) -> Decimal:
    discount_amount = cap_discount(discount_amount, subtotal_amount)
    return to_money(
        to_money(subtotal_amount) + to_money(tax_amount) + to_money(shipping_amount) - discount_amount
    )


def discount_rule(code: str | None) -> DiscountRule | None:
    if not code or not code.strip():
        return None
    return DISCOUNT_CODES.get(code.strip().upper())


def discount_for(code: str | None, subtotal_amount) -> Decimal:
    """Discount granted by ``code`` on ``subtotal_amount``; zero for unknown codes."""
    rule = discount_rule(code)
    if rule is None:
        return ZERO
    return rule.amount_for(to_money(subtotal_amount))


def price(lines, region: str | None, tax_override=None, shipping_override=None, discount_override=None):
    """Compute a full breakdown; explicit overrides replace the computed component."""
    lines = list(lines)
    sub = subtotal(lines)
    tax_amount = to_money(tax_override) if tax_override is not None else tax(sub, region)
    shipping_amount = to_money(shipping_override) if shipping_override is not None else shipping(lines, region)
    discount_amount = cap_discount(discount_override, sub) if discount_override is not None else ZERO

    for name, value in (("tax", tax_amount), ("shipping", shipping_amount), ("discount", discount_amount)):
        if value < ZERO:
            raise ValueError(f"{name} amount must be non-negative")

    return PriceBreakdown(
        subtotal=sub,
        tax=tax_amount,
        shipping=shipping_amount,
        discount=discount_amount,
        total=total(sub, tax_amount, shipping_amount, discount_amount),
    )
