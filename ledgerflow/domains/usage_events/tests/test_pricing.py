"""Tests for gateway call pricing."""

from decimal import Decimal

import pytest

from ledgerflow.domains.usage_events.pricing import (
    ModelPricing,
    calculate_cost_units,
    calculate_cost_usd,
)


def test_internal_call_pays_model_cost_plus_internal_margin():
    usd = calculate_cost_usd("openai/gpt-4o-mini", 1000, 500, is_internal=True)

    assert usd == Decimal("0.00545")


def test_external_call_adds_transport_fee_for_both_messages():
    usd = calculate_cost_usd("openai/gpt-4o-mini", 1000, 500, is_internal=False)

    assert usd == Decimal("0.02045")


def test_unknown_model_costs_margin_only():
    assert calculate_cost_usd("acme/unknown", 10_000, 10_000, is_internal=False) == Decimal(
        "0.02"
    )


def test_cost_units_round_half_up():
    # 2 + 8 + 0.005 USD = 1000.5 cents
    assert calculate_cost_units("openai/gpt-4.1", 1_000_000, 1_000_000, is_internal=True) == 1001


def test_cost_units_scale():
    units = calculate_cost_units(
        "openai/gpt-4o-mini", 1000, 500, is_internal=True, units_per_usd=1_000_000
    )

    assert units == 5450


def test_custom_pricing_sheet():
    sheet = {"local/model": ModelPricing(input=Decimal("1"), output=Decimal("1"))}

    units = calculate_cost_units(
        "local/model", 1_000_000, 0, is_internal=True, units_per_usd=1000, pricing_sheet=sheet
    )

    assert units == 1005


def test_negative_tokens_rejected():
    with pytest.raises(ValueError):
        calculate_cost_units("openai/gpt-4.1", -1, 0, is_internal=True)
