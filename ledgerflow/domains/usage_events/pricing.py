"""Cost of one AI gateway call, in integer cost units.

Prices are USD per one million tokens. On top of the model cost every call
carries a flat margin; calls reaching end users through an external channel
also pay the transport fee for both the inbound and the outbound message.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

TOKENS_PER_PRICE_UNIT = Decimal(1_000_000)

MARGIN_INTERNAL_USD = Decimal("0.005")
MARGIN_EXTERNAL_USD = Decimal("0.01")
TRANSPORT_FEE_USD = Decimal("0.005")


@dataclass(frozen=True)
class ModelPricing:
    """USD per one million input and output tokens."""

    input: Decimal
    output: Decimal


DEFAULT_PRICING_SHEET: dict[str, ModelPricing] = {
    "openai/gpt-4.1": ModelPricing(input=Decimal("2.0"), output=Decimal("8.0")),
    "openai/gpt-4o-mini": ModelPricing(input=Decimal("0.15"), output=Decimal("0.6")),
    "qwen/qwen3-235b-a22b-2507:free": ModelPricing(input=Decimal("0.15"), output=Decimal("0.6")),
}


def calculate_cost_usd(
    model: str,
    input_tokens: int,
    output_tokens: int,
    is_internal: bool,
    pricing_sheet: Optional[Mapping[str, ModelPricing]] = None,
) -> Decimal:
    """Exact USD cost of one call. Unknown models cost the margin only."""
    sheet = DEFAULT_PRICING_SHEET if pricing_sheet is None else pricing_sheet
    pricing = sheet.get(model)

    model_cost = Decimal(0)
    if pricing is not None:
        model_cost = (
            Decimal(input_tokens) / TOKENS_PER_PRICE_UNIT * pricing.input
            + Decimal(output_tokens) / TOKENS_PER_PRICE_UNIT * pricing.output
        )
    else:
        logger.warning("No pricing for model %s; charging margin only", model)

    if is_internal:
        margin = MARGIN_INTERNAL_USD
    else:
        margin = MARGIN_EXTERNAL_USD + 2 * TRANSPORT_FEE_USD
    return model_cost + margin


def calculate_cost_units(
    model: str,
    input_tokens: int,
    output_tokens: int,
    is_internal: bool,
    units_per_usd: int = 100,
    pricing_sheet: Optional[Mapping[str, ModelPricing]] = None,
) -> int:
    """Cost of one call rounded half-up to whole cost units."""
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError("Token counts cannot be negative")
    usd = calculate_cost_usd(model, input_tokens, output_tokens, is_internal, pricing_sheet)
    return int((usd * units_per_usd).quantize(Decimal(1), rounding=ROUND_HALF_UP))
