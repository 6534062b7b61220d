"""Reading price responses that name the same field in several ways.

The pricing API has shipped several field names for the same values over
time. Priority order, first present wins:

    final price: finalPrice, total, totalPrice
    base price:  basePrice, base, then the final price

A payload may wrap everything in a "pricing" envelope. A payload with none of
the final-price names is not an error: it is the "could not price" state,
reported as None so callers can block submission without failing the flow.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from centrobook.services.pricing import to_decimal

FINAL_PRICE_KEYS = ("finalPrice", "total", "totalPrice")
BASE_PRICE_KEYS = ("basePrice", "base")


@dataclass(frozen=True)
class PriceQuote:
    base: Decimal
    final: Decimal
    breakdown: list[dict] = field(default_factory=list)
    tax_rate: Decimal | None = None
    tax_amount: Decimal | None = None


def _first_present(payload: Mapping, keys: tuple[str, ...]):
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _number(value) -> Decimal | None:
    if value is None:
        return None
    try:
        number = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return number if number.is_finite() else None


def read_pricing_response(payload: Mapping | None) -> PriceQuote | None:
    if not isinstance(payload, Mapping):
        return None
    pricing = payload.get("pricing")
    body = pricing if isinstance(pricing, Mapping) else payload

    final = _number(_first_present(body, FINAL_PRICE_KEYS))
    if final is None:
        return None
    base = _number(_first_present(body, BASE_PRICE_KEYS))

    breakdown = body.get("breakdown")
    return PriceQuote(
        base=base if base is not None else final,
        final=final,
        breakdown=list(breakdown) if isinstance(breakdown, list) else [],
        tax_rate=_number(body.get("taxRate")),
        tax_amount=_number(body.get("taxAmount")),
    )
