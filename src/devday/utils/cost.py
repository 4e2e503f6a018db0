"""Model pricing table and cost estimation."""

from dataclasses import dataclass
from typing import Optional

from devday.types.messages import TokenUsage


@dataclass(frozen=True)
class ModelPricing:
    input_per_million: float
    output_per_million: float
    cache_read_per_million: Optional[float] = None
    cache_write_per_million: Optional[float] = None


# Per 1M tokens
MODEL_PRICING: dict[str, ModelPricing] = {
    # Anthropic
    "claude-opus-4-6": ModelPricing(5, 25, 0.5, 6.25),
    "claude-opus-4-5": ModelPricing(5, 25, 0.5, 6.25),
    "claude-opus-4-1": ModelPricing(15, 75, 1.5, 18.75),
    "claude-opus-4-20250514": ModelPricing(15, 75, 1.5, 18.75),
    "claude-sonnet-4-5": ModelPricing(3, 15, 0.3, 3.75),
    "claude-sonnet-4-20250514": ModelPricing(3, 15, 0.3, 3.75),
    "claude-haiku-4-5": ModelPricing(1, 5, 0.1, 1.25),
    "claude-3-5-sonnet-20241022": ModelPricing(3, 15, 0.3, 3.75),
    "claude-3-5-haiku-20241022": ModelPricing(0.8, 4, 0.08, 1),
    "claude-3-opus-20240229": ModelPricing(15, 75),

    # OpenAI
    "gpt-5": ModelPricing(1.25, 10, 0.125),
    "gpt-5-mini": ModelPricing(0.25, 2, 0.025),
    "gpt-5-codex": ModelPricing(1.25, 10, 0.125),
    "gpt-4.1": ModelPricing(2, 8, 0.5),
    "gpt-4.1-mini": ModelPricing(0.4, 1.6, 0.1),
    "gpt-4o": ModelPricing(2.5, 10),
    "gpt-4o-mini": ModelPricing(0.15, 0.6),
    "gpt-4-turbo": ModelPricing(10, 30),
    "o1": ModelPricing(15, 60),
    "o1-mini": ModelPricing(3, 12),
    "o3": ModelPricing(2, 8),
    "o3-mini": ModelPricing(1.1, 4.4),
    "o4-mini": ModelPricing(1.1, 4.4),

    # Google
    "gemini-2.5-pro": ModelPricing(1.25, 10),
    "gemini-2.5-flash": ModelPricing(0.3, 2.5),
    "gemini-2.0-flash": ModelPricing(0.1, 0.4),
    "gemini-2.0-pro": ModelPricing(1.25, 10),
    "gemini-1.5-pro": ModelPricing(1.25, 5),

    # DeepSeek
    "deepseek-chat": ModelPricing(0.27, 1.1),
    "deepseek-reasoner": ModelPricing(0.55, 2.19),
}

# Generic mid-tier rate for unknown models
FALLBACK_PRICING = ModelPricing(3, 15)

CACHE_READ_FACTOR = 0.1
CACHE_WRITE_FACTOR = 1.25


def find_pricing(model: str | None) -> ModelPricing:
    """Match a model id to its pricing: exact, then substring, then fallback.

    Substring matching works in either direction and prefers the longest key,
    so "gpt-4o-mini-2024-07-18" resolves to gpt-4o-mini rather than gpt-4o.
    """
    normalized = (model or "").strip().lower()
    if not normalized:
        return FALLBACK_PRICING

    exact = MODEL_PRICING.get(normalized)
    if exact is not None:
        return exact

    for key in sorted(MODEL_PRICING, key=len, reverse=True):
        if key in normalized or normalized in key:
            return MODEL_PRICING[key]

    return FALLBACK_PRICING


def estimate_cost(model: str | None, tokens: TokenUsage) -> float:
    """Estimate cost in USD for the given usage and model.

    Reasoning tokens are not billed separately: upstream accounting already
    folds them into output.
    """
    pricing = find_pricing(model)
    cache_read_rate = pricing.cache_read_per_million
    if cache_read_rate is None:
        cache_read_rate = pricing.input_per_million * CACHE_READ_FACTOR
    cache_write_rate = pricing.cache_write_per_million
    if cache_write_rate is None:
        cache_write_rate = pricing.input_per_million * CACHE_WRITE_FACTOR

    return (
        max(0, tokens.input) * pricing.input_per_million
        + max(0, tokens.output) * pricing.output_per_million
        + max(0, tokens.cache_read) * cache_read_rate
        + max(0, tokens.cache_write) * cache_write_rate
    ) / 1_000_000


def sum_tokens(*usages: TokenUsage) -> TokenUsage:
    total = TokenUsage()
    for usage in usages:
        total = total + usage
    return total
