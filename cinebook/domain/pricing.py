from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


CONVENIENCE_FEE_RATE = Decimal("0.05")
TAX_RATE = Decimal("0.18")

_CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    convenience_fee: Decimal
    tax: Decimal
    total: Decimal


class PricingCalculator:
    """Derives the amounts charged for a seat selection. Stateless."""

    @staticmethod
    def compute(ticket_price, seat_count: int) -> PriceBreakdown:
        if isinstance(seat_count, bool) or not isinstance(seat_count, int):
            raise TypeError(f"seat_count must be an int, got {type(seat_count)}")
        if seat_count <= 0:
            raise ValueError("seat_count must be positive")

        price = Decimal(str(ticket_price))
        if price < 0:
            raise ValueError("ticket_price cannot be negative")

        base_price = _money(price * seat_count)
        convenience_fee = _money(base_price * CONVENIENCE_FEE_RATE)
        tax = _money(base_price * TAX_RATE)

        # total is the sum of the rounded parts.
        return PriceBreakdown(
            base_price=base_price,
            convenience_fee=convenience_fee,
            tax=tax,
            total=base_price + convenience_fee + tax,
        )


def to_minor_units(amount: Decimal) -> int:
    # Payment providers take integer paise.
    return int(_money(Decimal(str(amount))) * 100)
