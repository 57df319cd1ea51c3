"""Usage tracker — token and cost estimates for AI calls.

Token counts are estimates (a fixed three characters per token), not the
provider's tokenizer output.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal

from notework.models.session import ApiUsage
from notework.orchestrator.state import EngineState

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 3

# USD per million tokens: (input, output)
PRICING: dict[str, tuple[Decimal, Decimal]] = {
    "claude": (Decimal("3.00"), Decimal("15.00")),
    "openai": (Decimal("0.15"), Decimal("0.60")),
    "gemini": (Decimal("0.10"), Decimal("0.40")),
}

DISPLAY_NAMES = {
    "claude": "Claude Sonnet 4",
    "openai": "GPT-4o Mini",
    "gemini": "Gemini 2.0 Flash",
}


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def cost(model: str, input_tokens: int, output_tokens: int) -> Decimal:
    input_rate, output_rate = PRICING.get(model, (Decimal("0"), Decimal("0")))
    return (input_tokens * input_rate + output_tokens * output_rate) / Decimal(1_000_000)


class UsageTracker:
    def __init__(self, state: EngineState) -> None:
        self.state = state

    @property
    def last_usage(self) -> ApiUsage | None:
        return self.state.last_usage

    @property
    def total_cost(self) -> Decimal:
        return self.state.total_cost

    def record(self, model: str, input_text: str, output_text: str) -> ApiUsage:
        """Estimate the call, keep it as the latest usage and add to the total."""
        input_tokens = estimate_tokens(input_text)
        output_tokens = estimate_tokens(output_text)
        usage = ApiUsage(
            model=DISPLAY_NAMES.get(model, model),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost(model, input_tokens, output_tokens),
        )
        self.state.last_usage = usage
        self.state.total_cost += usage.cost
        logger.debug(
            "%s usage: %d in / %d out tokens, $%s",
            model, input_tokens, output_tokens, usage.cost,
        )
        return usage
