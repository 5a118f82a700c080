"""
Usage estimation module.

Token counts are estimated from character length rather than reported by
providers, so every family is measured the same way.
"""

import math
from typing import Optional

from ..config.constants import CHARS_PER_TOKEN


def estimate_tokens(text: Optional[str]) -> int:
    """Estimate tokens as ``ceil(len(text) / 4)``."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def calculate_cost(tokens_in: int, tokens_out: int, cost_per_1k_tokens: Optional[float]) -> float:
    """
    Calculate the cost of a turn.

    Args:
        tokens_in: Estimated prompt tokens
        tokens_out: Estimated completion tokens
        cost_per_1k_tokens: Skill price per 1k tokens, in cents

    Returns:
        Cost in dollars: ``(tokens_in + tokens_out) / 1000 * cents / 100``
    """
    if not cost_per_1k_tokens:
        return 0.0
    return ((tokens_in + tokens_out) / 1000) * (cost_per_1k_tokens / 100)
