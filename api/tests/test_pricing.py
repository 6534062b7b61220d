"""Pricing engine, override validation and the response adapter (pure functions, no DB)."""

from datetime import UTC, date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from centrobook.services.operating_hours import normalize_config
from centrobook.services.pricing import (
    LIGHTING_DAY_DESCRIPTION,
    LIGHTING_DESCRIPTION,
    LIGHTING_INCLUDED_NIGHT,
    LIGHTING_OPTIONAL_DAY,
    LIGHTING_UNAVAILABLE,
    MEMBER_DISCOUNT_DESCRIPTION,
    CourtRate,
    LineItem,
    PricingRule,
    TaxConfig,
    apply_override,
    calculate,
    court_rules,
    is_member,
    missing_pricing_inputs,
    validate_override_reason,
    validate_price_override,
)
from centrobook.services.pricing_adapter import read_pricing_response

CONFIG = normalize_config({"timezone": "UTC", "day_start": "06:00", "night_start": "18:00"})
PEAK = PricingRule(
    name="Hora punta",
    price_multiplier=Decimal("1.25"),
    member_discount=Decimal("0.10"),
    days_of_week=(1, 2, 3, 4, 5),
    time_start="18:00",
    time_end="22:00",
)


def _court(rate="20", lighting=None):
    return CourtRate(
        id=1,
        hourly_rate=Decimal(rate),
        has_lighting=lighting is not None,
        lighting_extra_per_hour=Decimal(lighting) if lighting is not None else None,
    )


def _at(hour, minute=0):
    return datetime(2030, 6, 3, hour, minute, tzinfo=UTC)


class TestCalculate:
    def test_one_hour_no_lighting(self):
        for _ in range(3):
            breakdown = calculate(_court(), _at(10), 60, CONFIG)
            assert breakdown.final_total == Decimal("20.00")
            assert breakdown.line_items == ()

    def test_lighting_at_night(self):
        breakdown = calculate(_court(lighting="5"), _at(19), 60, CONFIG)
        assert breakdown.final_total == Decimal("25.00")
        assert [i.description for i in breakdown.line_items] == [LIGHTING_DESCRIPTION]

    def test_no_lighting_item_by_day(self):
        breakdown = calculate(_court(lighting="5"), _at(10), 60, CONFIG)
        assert breakdown.final_total == Decimal("20.00")
        assert breakdown.line_items == ()

    def test_zero_lighting_extra_adds_nothing(self):
        breakdown = calculate(_court(lighting="0"), _at(20), 60, CONFIG)
        assert breakdown.line_items == ()

    def test_segment_uses_center_timezone(self):
        madrid = normalize_config({"timezone": "Europe/Madrid"})
        # 17:00 UTC is 19:00 in Madrid
        assert calculate(_court(lighting="5"), _at(17), 60, madrid).final_total == Decimal("25.00")

    def test_partial_hours(self):
        breakdown = calculate(_court(), _at(10), 90, CONFIG)
        assert breakdown.final_total == Decimal("30.00")
        assert breakdown.to_pricing_dict()["breakdown"][0]["description"] == "Base price (1.50h × 20.00)"

    def test_no_intermediate_rounding(self):
        # 5.015 + 0.015 = 5.03; rounding each line first would give 5.02 + 0.02
        breakdown = calculate(_court(rate="10.03", lighting="0.03"), _at(19), 30, CONFIG)
        assert breakdown.final_total == Decimal("5.03")
        assert breakdown.base_amount == Decimal("5.02")
        assert breakdown.line_items[-1].amount == Decimal("0.01")

    @pytest.mark.parametrize(
        "rate, lighting, minutes, tax",
        [
            ("12.25", "2.25", 90, None),
            ("10.03", "0.03", 30, TaxConfig(rate=Decimal("21"))),
            ("17.35", "3.15", 75, TaxConfig(rate=Decimal("7"))),
        ],
    )
    def test_presented_lines_add_up_to_total(self, rate, lighting, minutes, tax):
        breakdown = calculate(_court(rate=rate, lighting=lighting), _at(19), minutes, CONFIG, tax)
        lines = breakdown.base_amount + sum(i.amount for i in breakdown.line_items)
        if tax is not None:
            lines += breakdown.tax_amount
        assert lines == breakdown.final_total

    def test_tax_excluded_added_on_top(self):
        breakdown = calculate(_court(), _at(10), 60, CONFIG, TaxConfig(rate=Decimal("21")))
        assert breakdown.tax_amount == Decimal("4.20")
        assert breakdown.final_total == Decimal("24.20")

    def test_tax_included_only_reported(self):
        breakdown = calculate(_court(rate="24.20"), _at(10), 60, CONFIG, TaxConfig(rate=Decimal("21"), included=True))
        assert breakdown.tax_amount == Decimal("4.20")
        assert breakdown.final_total == Decimal("24.20")

    def test_pricing_dict_shape(self):
        out = calculate(_court(lighting="5"), _at(19), 60, CONFIG, TaxConfig(rate=Decimal("10"))).to_pricing_dict()
        assert out["basePrice"] == 20.0
        assert out["finalPrice"] == 27.5
        assert out["taxRate"] == 10.0
        assert out["taxAmount"] == 2.5
        assert [line["description"] for line in out["breakdown"]] == [
            "Base price (1h × 20.00)",
            LIGHTING_DESCRIPTION,
            "Tax (10%)",
        ]

    def test_naive_start_read_as_utc(self):
        naive = datetime(2030, 6, 3, 19, 0)
        assert calculate(_court(lighting="5"), naive, 60, CONFIG).final_total == Decimal("25.00")

    def test_non_positive_duration(self):
        with pytest.raises(ValueError):
            calculate(_court(), _at(10), 0, CONFIG)

    def test_from_orm_row(self):
        row = SimpleNamespace(id=3, hourly_rate=18.5, has_lighting=True, lighting_extra_per_hour=None, center_id=1)
        rate = CourtRate.from_court(row)
        assert rate.hourly_rate == Decimal("18.5")
        assert rate.lighting_extra_per_hour is None

    # Pricing rules, member discount and the lighting policy

    def test_rule_multiplier_line_item(self):
        breakdown = calculate(_court(), _at(19), 60, CONFIG, rules=[PEAK])
        assert [(i.description, i.amount) for i in breakdown.line_items] == [("Hora punta (1.25x)", Decimal("5.00"))]
        assert breakdown.final_total == Decimal("25.00")
        assert breakdown.applied_rules == ("Hora punta",)
        assert breakdown.multiplier == Decimal("1.25")

    def test_rule_time_range_overlap(self):
        # 17:30-18:30 overlaps 18:00-22:00; 16:00-17:00 does not
        assert calculate(_court(), _at(17, 30), 60, CONFIG, rules=[PEAK]).applied_rules == ("Hora punta",)
        assert calculate(_court(), _at(16), 60, CONFIG, rules=[PEAK]).final_total == Decimal("20.00")

    def test_rule_day_of_week(self):
        weekend = PricingRule(name="Fin de semana", price_multiplier=Decimal("1.10"), days_of_week=(6, 7))
        # 2030-06-03 is a Monday
        breakdown = calculate(_court(), _at(10), 60, CONFIG, rules=[weekend])
        assert breakdown.applied_rules == ()
        assert breakdown.final_total == Decimal("20.00")

    def test_rule_season(self):
        summer = PricingRule(
            name="Verano", price_multiplier=Decimal("1.5"), season_start=date(2030, 7, 1), season_end=date(2030, 8, 31)
        )
        assert calculate(_court(), _at(10), 60, CONFIG, rules=[summer]).final_total == Decimal("20.00")
        in_season = datetime(2030, 7, 15, 10, tzinfo=UTC)
        assert calculate(_court(), in_season, 60, CONFIG, rules=[summer]).final_total == Decimal("30.00")

    def test_rules_compound_and_lines_add_up(self):
        rules = [
            PricingRule(name="B", price_multiplier=Decimal("2")),
            PricingRule(name="A", price_multiplier=Decimal("1.5")),
        ]
        breakdown = calculate(_court(), _at(10), 60, CONFIG, rules=rules)
        assert [(i.description, i.amount) for i in breakdown.line_items] == [
            ("A (1.5x)", Decimal("10.00")),
            ("B (2x)", Decimal("30.00")),
        ]
        assert breakdown.final_total == Decimal("60.00")
        assert breakdown.multiplier == Decimal("3")

    def test_member_discount(self):
        breakdown = calculate(_court(), _at(19), 60, CONFIG, rules=[PEAK], member=True)
        assert breakdown.line_items[-1] == LineItem(f"{MEMBER_DISCOUNT_DESCRIPTION} (10%)", Decimal("-2.50"))
        assert breakdown.final_total == Decimal("22.50")
        assert breakdown.member_discount == Decimal("0.10")

    def test_member_discount_needs_membership(self):
        breakdown = calculate(_court(), _at(19), 60, CONFIG, rules=[PEAK], member=False)
        assert breakdown.final_total == Decimal("25.00")
        assert breakdown.member_discount == 0

    def test_largest_member_discount_wins(self):
        rules = [PEAK, PricingRule(name="Socios", member_discount=Decimal("0.20"))]
        breakdown = calculate(_court(), _at(19), 60, CONFIG, rules=rules, member=True)
        # 25.00 after the peak multiplier, minus 20%
        assert breakdown.final_total == Decimal("20.00")

    def test_lighting_is_not_discounted(self):
        breakdown = calculate(_court(lighting="5"), _at(19), 60, CONFIG, rules=[PEAK], member=True)
        assert breakdown.final_total == Decimal("27.50")

    def test_day_lighting_only_when_selected(self):
        unlit = calculate(_court(lighting="5"), _at(10), 60, CONFIG)
        assert (unlit.lighting_policy, unlit.lighting_selected, unlit.final_total) == (
            LIGHTING_OPTIONAL_DAY,
            False,
            Decimal("20.00"),
        )
        lit = calculate(_court(lighting="5"), _at(10), 60, CONFIG, lighting_selected=True)
        assert [i.description for i in lit.line_items] == [LIGHTING_DAY_DESCRIPTION]
        assert lit.lighting_extra == Decimal("5.00")
        assert lit.final_total == Decimal("25.00")

    def test_night_lighting_is_mandatory(self):
        breakdown = calculate(_court(lighting="5"), _at(19), 60, CONFIG, lighting_selected=False)
        assert breakdown.lighting_policy == LIGHTING_INCLUDED_NIGHT
        assert breakdown.lighting_selected is True
        assert breakdown.to_pricing_dict()["lighting"] == {"selected": True, "extra": 5.0, "policy": "INCLUDED_NIGHT"}

    def test_court_without_lighting(self):
        breakdown = calculate(_court(), _at(19), 60, CONFIG, lighting_selected=True)
        assert breakdown.lighting_policy == LIGHTING_UNAVAILABLE
        assert breakdown.line_items == ()


class TestPricingRules:
    def test_court_rules_skips_inactive_and_sorts(self):
        court = SimpleNamespace(
            pricing_rules=[
                SimpleNamespace(name="Verano", is_active=True, price_multiplier=Decimal("1.2"), member_discount=0),
                SimpleNamespace(name="Antiguo", is_active=False, price_multiplier=Decimal("3"), member_discount=0),
                SimpleNamespace(
                    name="Hora punta",
                    is_active=True,
                    price_multiplier=Decimal("1.25"),
                    member_discount=Decimal("0.1"),
                    days_of_week=[1, 2, 3, 4, 5],
                    time_start="18:00",
                    time_end="22:00",
                    season_start=None,
                    season_end=None,
                ),
            ]
        )
        rules = court_rules(court)
        assert [r.name for r in rules] == ["Hora punta", "Verano"]
        assert rules[0].days_of_week == (1, 2, 3, 4, 5)
        assert rules[1].time_start is None

    def test_court_without_rules(self):
        assert court_rules(SimpleNamespace(id=1)) == ()

    def test_membership(self):
        assert is_member(SimpleNamespace(member_until=date(2030, 6, 3)), date(2030, 6, 3))
        assert not is_member(SimpleNamespace(member_until=date(2030, 6, 2)), date(2030, 6, 3))
        assert not is_member(SimpleNamespace(id=1), date(2030, 6, 3))
        assert not is_member(None, date(2030, 6, 3))


class TestTaxConfig:
    def test_missing_or_zero_rate_means_no_tax(self):
        assert TaxConfig.from_settings(None) is None
        assert TaxConfig.from_settings({"taxes": {"rate": 0}}) is None

    def test_reads_settings(self):
        assert TaxConfig.from_settings({"taxes": {"rate": 21, "included": True}}) == TaxConfig(Decimal(21), True)


class TestMissingInputs:
    def test_all_missing(self):
        assert len(missing_pricing_inputs(None, None, None, None)) == 4

    def test_ready(self):
        assert missing_pricing_inputs(7, "2030-06-03", "10:00", 60) == []

    def test_zero_duration(self):
        assert missing_pricing_inputs(7, "2030-06-03", "10:00", 0) == ["Select a duration."]


class TestOverride:
    def test_minus_100_on_20_exceeds_limit(self):
        check = validate_price_override(-100, 20, 20)
        assert not check.is_valid
        assert check.max_allowed == Decimal("4.00")

    def test_within_limit(self):
        assert validate_price_override(4, 20).is_valid
        assert validate_price_override("-4", Decimal("20")).is_valid

    def test_just_over_limit(self):
        assert not validate_price_override(Decimal("4.01"), 20).is_valid

    def test_zero_price(self):
        assert validate_price_override(0, 0).is_valid
        assert not validate_price_override(1, 0).is_valid

    def test_not_a_number(self):
        assert not validate_price_override("lots", 20).is_valid
        assert not validate_price_override(float("nan"), 20).is_valid

    def test_absolute_bound(self):
        assert not validate_price_override(100001, 10_000_000).is_valid

    def test_reason(self):
        assert validate_override_reason(None) is not None
        assert validate_override_reason("  ok  ") is not None
        assert validate_override_reason("Cliente habitual") is None
        assert validate_override_reason("x" * 501) is not None

    def test_apply(self):
        breakdown = calculate(_court(), _at(10), 60, CONFIG)
        assert apply_override(breakdown, "-2.5") == Decimal("17.50")


class TestPricingAdapter:
    def test_final_price_first(self):
        quote = read_pricing_response({"finalPrice": 25, "total": 99, "basePrice": 20})
        assert (quote.final, quote.base) == (Decimal(25), Decimal(20))

    def test_synonyms(self):
        assert read_pricing_response({"total": 30}).final == Decimal(30)
        assert read_pricing_response({"totalPrice": "12.50"}).final == Decimal("12.50")

    def test_base_falls_back(self):
        assert read_pricing_response({"base": 10, "total": 12}).base == Decimal(10)
        assert read_pricing_response({"total": 12}).base == Decimal(12)

    def test_null_skipped_zero_kept(self):
        assert read_pricing_response({"finalPrice": None, "total": 12}).final == Decimal(12)
        assert read_pricing_response({"finalPrice": 0, "total": 12}).final == Decimal(0)

    def test_pricing_envelope(self):
        quote = read_pricing_response(
            {"pricing": {"basePrice": 20, "finalPrice": 25, "breakdown": [{"description": "x", "amount": 5}]}}
        )
        assert quote.final == Decimal(25)
        assert len(quote.breakdown) == 1

    def test_no_usable_total(self):
        assert read_pricing_response({}) is None
        assert read_pricing_response(None) is None
        assert read_pricing_response({"finalPrice": "n/a"}) is None
        assert read_pricing_response({"basePrice": 20}) is None
