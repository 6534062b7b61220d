"""Pricing service for reservation price calculation.

Computes the base amount from the court's hourly rate, applies the court's
pricing rules (multipliers, member discount), adds lighting and applies the
center's tax configuration. Money is Decimal end to end; values are rounded
to cents only when the breakdown is built, never between steps.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from centrobook.services.operating_hours import SEGMENT_NIGHT, OperatingHoursConfig, classify_segment
from centrobook.services.time_normalizer import get_zone, to_minutes

CENT = Decimal("0.01")

# Manual override bounds, as a percent of the computed final total
MAX_OVERRIDE_PERCENT = 20
MAX_OVERRIDE_ABSOLUTE = Decimal("100000")
MIN_OVERRIDE_REASON_LENGTH = 5
MAX_OVERRIDE_REASON_LENGTH = 500

LIGHTING_DESCRIPTION = "Iluminación nocturna"
LIGHTING_DAY_DESCRIPTION = "Iluminación"
MEMBER_DISCOUNT_DESCRIPTION = "Descuento de miembro"

# Lighting policy: mandatory and charged at night, the customer's choice by day
LIGHTING_INCLUDED_NIGHT = "INCLUDED_NIGHT"
LIGHTING_OPTIONAL_DAY = "OPTIONAL_DAY"
LIGHTING_UNAVAILABLE = "UNAVAILABLE"


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        return Decimal(str(value))
    return Decimal(value)


def money(value) -> Decimal:
    """Round to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _fmt_hours(hours: Decimal) -> str:
    return f"{hours.normalize():f}" if hours == hours.to_integral_value() else f"{hours:.2f}"


def _fmt_number(value: Decimal) -> str:
    return f"{value.normalize():f}"


@dataclass(frozen=True)
class CourtRate:
    """The pricing-relevant part of a court record."""

    id: int
    hourly_rate: Decimal
    has_lighting: bool = False
    lighting_extra_per_hour: Decimal | None = None
    center_id: int | None = None

    @classmethod
    def from_court(cls, court: object) -> "CourtRate":
        return cls(
            id=court.id,
            hourly_rate=to_decimal(court.hourly_rate),
            has_lighting=bool(court.has_lighting),
            lighting_extra_per_hour=(
                to_decimal(court.lighting_extra_per_hour) if court.lighting_extra_per_hour is not None else None
            ),
            center_id=getattr(court, "center_id", None),
        )


@dataclass(frozen=True)
class TaxConfig:
    rate: Decimal
    included: bool = False

    @classmethod
    def from_settings(cls, center_settings: Mapping | None) -> "TaxConfig | None":
        """Read {"taxes": {"rate": 21, "included": true}} from center settings."""
        taxes = (center_settings or {}).get("taxes") or {}
        rate = to_decimal(taxes.get("rate") or 0)
        if rate <= 0:
            return None
        return cls(rate=rate, included=bool(taxes.get("included")))


@dataclass(frozen=True)
class PricingRule:
    """A conditional adjustment: peak hours, weekends, high season.

    days_of_week uses ISO numbering (1 = Monday, 7 = Sunday); empty means
    every day. The season only restricts when both bounds are set. Times are
    center wall clock; a missing start or end means the start or end of the day.
    """

    name: str
    price_multiplier: Decimal = Decimal(1)
    member_discount: Decimal = Decimal(0)
    days_of_week: tuple[int, ...] = ()
    time_start: str | None = None
    time_end: str | None = None
    season_start: date | None = None
    season_end: date | None = None

    @classmethod
    def from_row(cls, row: object) -> "PricingRule":
        multiplier = getattr(row, "price_multiplier", None)
        return cls(
            name=row.name,
            price_multiplier=to_decimal(multiplier) if multiplier is not None else Decimal(1),
            member_discount=to_decimal(getattr(row, "member_discount", None)),
            days_of_week=tuple(int(d) for d in (getattr(row, "days_of_week", None) or ())),
            time_start=getattr(row, "time_start", None),
            time_end=getattr(row, "time_end", None),
            season_start=getattr(row, "season_start", None),
            season_end=getattr(row, "season_end", None),
        )

    def applies(self, local_start: datetime, duration_minutes: int) -> bool:
        if self.days_of_week and local_start.isoweekday() not in self.days_of_week:
            return False
        if self.season_start and self.season_end:
            if not self.season_start <= local_start.date() <= self.season_end:
                return False
        rule_start = to_minutes(self.time_start or "00:00")
        rule_end = to_minutes(self.time_end or "23:59")
        booking_start = local_start.hour * 60 + local_start.minute
        return booking_start < rule_end and booking_start + duration_minutes > rule_start


def court_rules(court: object) -> tuple[PricingRule, ...]:
    """Active pricing rules of a court row, by name."""
    rows = getattr(court, "pricing_rules", None) or ()
    rules = [PricingRule.from_row(r) for r in rows if getattr(r, "is_active", True)]
    return tuple(sorted(rules, key=lambda r: r.name))


def is_member(customer: object | None, on: date) -> bool:
    """Whether the customer's club membership covers `on`."""
    member_until = getattr(customer, "member_until", None)
    return member_until is not None and member_until >= on


@dataclass(frozen=True)
class LineItem:
    description: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {"description": self.description, "amount": float(self.amount)}


@dataclass(frozen=True)
class PriceBreakdown:
    base_amount: Decimal
    line_items: tuple[LineItem, ...]
    final_total: Decimal
    duration_minutes: int
    hourly_rate: Decimal
    tax_rate: Decimal | None = None
    tax_amount: Decimal | None = None
    tax_included: bool = False
    applied_rules: tuple[str, ...] = ()
    multiplier: Decimal = Decimal(1)
    member_discount: Decimal = Decimal(0)
    lighting_policy: str = LIGHTING_UNAVAILABLE
    lighting_selected: bool = False
    lighting_extra: Decimal = Decimal("0.00")

    def to_pricing_dict(self) -> dict:
        """The {basePrice, finalPrice, breakdown, taxRate?, taxAmount?} shape of the pricing API."""
        hours = Decimal(self.duration_minutes) / 60
        breakdown = [
            {
                "description": f"Base price ({_fmt_hours(hours)}h × {self.hourly_rate:.2f})",
                "amount": float(self.base_amount),
            }
        ]
        breakdown.extend(item.to_dict() for item in self.line_items)
        out: dict = {
            "basePrice": float(self.base_amount),
            "finalPrice": float(self.final_total),
            "breakdown": breakdown,
            "multiplier": float(self.multiplier),
            "memberDiscount": float(self.member_discount),
            "appliedRules": list(self.applied_rules),
            "lighting": {
                "selected": self.lighting_selected,
                "extra": float(self.lighting_extra),
                "policy": self.lighting_policy,
            },
        }
        if self.tax_rate is not None:
            label = "Tax included" if self.tax_included else "Tax"
            breakdown.append({"description": f"{label} ({self.tax_rate.normalize():f}%)", "amount": float(self.tax_amount)})
            out["taxRate"] = float(self.tax_rate)
            out["taxAmount"] = float(self.tax_amount)
        return out


def _presented(parts: list[Decimal], total: Decimal) -> list[Decimal]:
    """Round each part to cents; the last one absorbs the difference so they add up to the rounded total."""
    shown = [money(p) for p in parts]
    shown[-1] += money(total) - sum(shown, Decimal(0))
    return shown


def calculate(
    court: CourtRate,
    start: datetime,
    duration_minutes: int,
    config: OperatingHoursConfig,
    taxes: TaxConfig | None = None,
    rules: Iterable[PricingRule] = (),
    member: bool = False,
    lighting_selected: bool = False,
) -> PriceBreakdown:
    """Calculate the price of booking `court` from `start` for `duration_minutes`.

    Base = hourly_rate * duration / 60. Each matching rule multiplies the
    running amount and shows its effect as "<name> (Nx)"; a member gets the
    largest member discount among the matching rules. Lighting is charged for
    the whole booking: always when the local start falls in the night segment,
    by day only when the customer asked for it. Tax excluded from the rates is
    added on top of the subtotal; tax included is reported but never added
    again. The presented base, lines and tax add up to the final total.
    """
    if duration_minutes <= 0:
        raise ValueError("Duration must be a positive number of minutes.")
    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)

    hours = Decimal(duration_minutes) / Decimal(60)
    base = to_decimal(court.hourly_rate) * hours
    local_start = start.astimezone(get_zone(config.timezone))

    items: list[tuple[str, Decimal]] = []
    applied: list[str] = []
    multiplier = Decimal(1)
    discount_rate = Decimal(0)
    amount = base
    for rule in sorted(rules, key=lambda r: r.name):
        if not rule.applies(local_start, duration_minutes):
            continue
        applied.append(rule.name)
        if rule.price_multiplier != 1:
            effect = amount * (rule.price_multiplier - 1)
            items.append((f"{rule.name} ({_fmt_number(rule.price_multiplier)}x)", effect))
            amount += effect
            multiplier *= rule.price_multiplier
        if member:
            discount_rate = max(discount_rate, rule.member_discount)

    if discount_rate > 0:
        discount = amount * discount_rate
        items.append((f"{MEMBER_DISCOUNT_DESCRIPTION} ({_fmt_number(discount_rate * 100)}%)", -discount))
        amount -= discount

    policy = LIGHTING_UNAVAILABLE
    lit = False
    lighting_index = None
    extra = to_decimal(court.lighting_extra_per_hour)
    if court.has_lighting:
        if classify_segment(local_start.strftime("%H:%M"), config) == SEGMENT_NIGHT:
            policy, lit, description = LIGHTING_INCLUDED_NIGHT, True, LIGHTING_DESCRIPTION
        else:
            policy, lit, description = LIGHTING_OPTIONAL_DAY, lighting_selected, LIGHTING_DAY_DESCRIPTION
        if lit and extra > 0:
            lighting_index = len(items)
            items.append((description, extra * hours))
            amount += extra * hours

    subtotal = amount
    tax_amount = None
    final = subtotal
    if taxes is not None and taxes.rate > 0:
        rate = taxes.rate / 100
        if taxes.included:
            tax_amount = subtotal - subtotal / (1 + rate)
        else:
            tax_amount = subtotal * rate
            final = subtotal + tax_amount

    added_tax = tax_amount is not None and not taxes.included
    shown = _presented([base, *(a for _, a in items), *([tax_amount] if added_tax else [])], final)
    shown_items = shown[1 : len(items) + 1]

    if tax_amount is None:
        shown_tax = None
    else:
        shown_tax = shown[-1] if added_tax else money(tax_amount)

    return PriceBreakdown(
        base_amount=shown[0],
        line_items=tuple(LineItem(desc, value) for (desc, _), value in zip(items, shown_items)),
        final_total=money(final),
        duration_minutes=duration_minutes,
        hourly_rate=to_decimal(court.hourly_rate),
        tax_rate=taxes.rate if tax_amount is not None else None,
        tax_amount=shown_tax,
        tax_included=bool(taxes and taxes.included),
        applied_rules=tuple(applied),
        multiplier=multiplier,
        member_discount=discount_rate,
        lighting_policy=policy,
        lighting_selected=lit,
        lighting_extra=shown_items[lighting_index] if lighting_index is not None else Decimal("0.00"),
    )


def missing_pricing_inputs(
    court_id: object, day: object, hhmm: str | None, duration_minutes: int | None
) -> list[str]:
    """What still has to be filled in before a price can be calculated. Empty = ready."""
    missing = []
    if not court_id:
        missing.append("Select a court.")
    if not day:
        missing.append("Select a date.")
    if not hhmm:
        missing.append("Select a start time.")
    if not duration_minutes or duration_minutes <= 0:
        missing.append("Select a duration.")
    return missing


# ---------------------------------------------------------------------------
# Manual override
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OverrideCheck:
    is_valid: bool
    error: str | None = None
    max_allowed: Decimal | None = None


def validate_price_override(delta, base_total, max_percent: int = MAX_OVERRIDE_PERCENT) -> OverrideCheck:
    """Bounds check for a signed override delta against the computed total.

    Invalid when |delta| exceeds max_percent of base_total, when the total is
    zero or negative and a non-zero delta is requested, or when the delta is
    outside the absolute bounds. The reason check is separate
    (validate_override_reason) and runs first.
    """
    try:
        delta = to_decimal(delta)
        base_total = to_decimal(base_total)
    except (InvalidOperation, TypeError, ValueError):
        return OverrideCheck(False, "Override amount and price must be numbers.")
    if not delta.is_finite() or not base_total.is_finite():
        return OverrideCheck(False, "Override amount and price must be numbers.")

    if abs(delta) > MAX_OVERRIDE_ABSOLUTE:
        return OverrideCheck(
            False, f"Override must be between -{MAX_OVERRIDE_ABSOLUTE} and {MAX_OVERRIDE_ABSOLUTE}."
        )

    if base_total <= 0:
        if delta != 0:
            return OverrideCheck(False, f"Cannot override a price of {money(base_total)}.", Decimal(0))
        return OverrideCheck(True, max_allowed=Decimal(0))

    max_allowed = base_total * max_percent / 100
    if abs(delta) > max_allowed:
        applied = abs(delta) / base_total * 100
        return OverrideCheck(
            False,
            f"Override of {money(delta)} ({applied:.1f}%) exceeds the allowed limit of "
            f"{max_percent}% ({money(max_allowed)}).",
            money(max_allowed),
        )

    return OverrideCheck(True, max_allowed=money(max_allowed))


def validate_override_reason(reason: str | None) -> str | None:
    """Return an error message, or None if the justification is acceptable."""
    text = (reason or "").strip()
    if len(text) < MIN_OVERRIDE_REASON_LENGTH:
        return f"Override reason must be at least {MIN_OVERRIDE_REASON_LENGTH} characters."
    if len(text) > MAX_OVERRIDE_REASON_LENGTH:
        return f"Override reason cannot exceed {MAX_OVERRIDE_REASON_LENGTH} characters."
    return None


def apply_override(breakdown: PriceBreakdown, delta) -> Decimal:
    """Amount to charge once a validated override delta is applied."""
    return money(breakdown.final_total + to_decimal(delta))
