"""
Model metadata and pricing.

Provides typed model definitions with tiered pricing and context window
information. The ModelRegistry is the pricing source for cost accounting:
it looks models up by ID and turns token counts into dollars.

Example:
    from draftsmith.model_registry import ModelRegistry

    registry = ModelRegistry()
    registry.load_defaults()  # Load built-in model catalog

    model = registry.get("claude-sonnet-4-5")
    print(model.context_window)          # 1000000
    print(model.pricing.standard.input)  # 3.0 ($/million tokens)

    cost = registry.calculate_cost("claude-sonnet-4-5", 1000, 500)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from draftsmith.config import FALLBACK_INPUT_RATE, FALLBACK_OUTPUT_RATE, LONG_CONTEXT_THRESHOLD
from draftsmith.logging import get_logger

logger = get_logger("model_registry")


@dataclass(frozen=True)
class PricingTier:
    """Pricing per million tokens."""

    input: float = 0.0
    output: float = 0.0

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens * self.input + output_tokens * self.output) / 1_000_000


FALLBACK_TIER = PricingTier(input=FALLBACK_INPUT_RATE, output=FALLBACK_OUTPUT_RATE)


@dataclass(frozen=True)
class ModelPricing:
    """A standard tier plus an optional tier for very long prompts."""

    standard: PricingTier = field(default_factory=PricingTier)
    long_context: PricingTier | None = None

    def tier_for(
        self, input_tokens: int, threshold: int = LONG_CONTEXT_THRESHOLD
    ) -> PricingTier:
        """Pick the tier that applies to a request with ``input_tokens``."""
        if input_tokens > threshold and self.long_context is not None:
            return self.long_context
        return self.standard


@dataclass
class TokenUsage:
    """Token counts for a single LLM request."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


@dataclass
class CostBreakdown:
    """Dollar cost breakdown for a request."""

    input: float = 0.0
    output: float = 0.0
    total: float = 0.0
    tier: str = "standard"  # "standard", "long_context" or "fallback"


@dataclass
class ModelDefinition:
    """
    Metadata for an LLM model.

    Attributes:
        id: Model identifier (e.g., "gpt-4o", "claude-sonnet-4-5"). Also
            matches dated variants it prefixes ("claude-sonnet-4-5-20250929").
        provider: Provider name (e.g., "openai", "anthropic").
        display_name: Human-readable name for UI display.
        description: One-line summary shown in model pickers.
        context_window: Maximum input tokens the model accepts.
        max_output_tokens: Maximum tokens the model can generate.
        pricing: Standard and optional long-context pricing.
    """

    id: str
    provider: str = ""
    display_name: str = ""
    description: str = ""
    context_window: int = 200_000
    max_output_tokens: int = 8192
    pricing: ModelPricing = field(default_factory=ModelPricing)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.id


class ModelRegistry:
    """
    Registry of model definitions.

    Lookups try the exact ID first, then the longest registered ID that the
    requested ID starts with, so provider-dated IDs resolve to their family.
    Unknown models price at a fixed fallback rate rather than failing.

    Example:
        registry = ModelRegistry()
        registry.load_defaults()

        registry.get("claude-sonnet-4-5-20250929").id  # "claude-sonnet-4-5"
        registry.calculate_cost("gpt-4o", 1000, 500)
    """

    def __init__(
        self,
        long_context_threshold: int = LONG_CONTEXT_THRESHOLD,
        fallback: PricingTier = FALLBACK_TIER,
    ) -> None:
        self._models: dict[str, ModelDefinition] = {}
        self.long_context_threshold = long_context_threshold
        self.fallback = fallback

    def register(self, model: ModelDefinition) -> None:
        """Register a model definition. Overwrites any existing entry with the same ID."""
        self._models[model.id] = model

    def unregister(self, model_id: str) -> bool:
        """Remove a model by ID. Returns True if it existed."""
        return self._models.pop(model_id, None) is not None

    def get(self, model_id: str) -> ModelDefinition | None:
        """Get a model by exact ID, else by the longest registered ID prefix."""
        model = self._models.get(model_id)
        if model is not None:
            return model
        candidates = [m for mid, m in self._models.items() if model_id.startswith(mid)]
        if not candidates:
            return None
        return max(candidates, key=lambda m: len(m.id))

    def find(self, query: str) -> list[ModelDefinition]:
        """Find models whose ID or display_name contains the query (case-insensitive)."""
        q = query.lower()
        return [
            m
            for m in self._models.values()
            if q in m.id.lower() or q in m.display_name.lower()
        ]

    def list_by_provider(self, provider: str) -> list[ModelDefinition]:
        """List all models from a given provider."""
        return [m for m in self._models.values() if m.provider == provider]

    def all(self) -> list[ModelDefinition]:
        """Return all registered models."""
        return list(self._models.values())

    @property
    def count(self) -> int:
        return len(self._models)

    def cost_breakdown(
        self, model_id: str, input_tokens: int, output_tokens: int
    ) -> CostBreakdown:
        """Price a request, reporting which tier was used."""
        model = self.get(model_id)
        if model is None:
            logger.debug("No pricing for model %r, using fallback rates", model_id)
            tier, tier_name = self.fallback, "fallback"
        else:
            tier = model.pricing.tier_for(input_tokens, self.long_context_threshold)
            tier_name = "long_context" if tier is model.pricing.long_context else "standard"

        input_cost = input_tokens * tier.input / 1_000_000
        output_cost = output_tokens * tier.output / 1_000_000
        return CostBreakdown(
            input=input_cost,
            output=output_cost,
            total=tier.cost(input_tokens, output_tokens),
            tier=tier_name,
        )

    def calculate_cost(self, model_id: str, input_tokens: int, output_tokens: int) -> float:
        """Dollar cost of a request."""
        return self.cost_breakdown(model_id, input_tokens, output_tokens).total

    def cost_for_usage(self, model_id: str, usage: TokenUsage) -> float:
        return self.calculate_cost(model_id, usage.input_tokens, usage.output_tokens)

    def load_defaults(self) -> int:
        """
        Load built-in model definitions from the catalog.

        Returns the number of models loaded.
        """
        from draftsmith.models_catalog import get_default_models

        models = get_default_models()
        for model in models:
            self.register(model)
        return len(models)

    def load_from_dicts(self, model_dicts: list[dict[str, Any]]) -> int:
        """
        Load models from a list of dictionaries (e.g., from JSON/YAML config).

        Each dict should have keys matching ModelDefinition fields, with
        ``pricing`` shaped as ``{"standard": {...}, "long_context": {...}}``.
        Returns the number of models loaded.
        """
        count = 0
        for d in model_dicts:
            pricing_data = d.get("pricing", {})
            long_context = pricing_data.get("long_context")
            model = ModelDefinition(
                id=d["id"],
                provider=d.get("provider", ""),
                display_name=d.get("display_name", ""),
                description=d.get("description", ""),
                context_window=d.get("context_window", d.get("max_context", 200_000)),
                max_output_tokens=d.get("max_output_tokens", 8192),
                pricing=ModelPricing(
                    standard=_tier_from_dict(pricing_data.get("standard", {})),
                    long_context=_tier_from_dict(long_context) if long_context else None,
                ),
            )
            self.register(model)
            count += 1
        return count

    def load_from_yaml(self, path: Path) -> int:
        """Load models from a YAML file with a top-level ``models`` list."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        count = self.load_from_dicts(data.get("models", []))
        logger.debug("Loaded %d model(s) from %s", count, path)
        return count


def _tier_from_dict(data: dict[str, Any]) -> PricingTier:
    return PricingTier(
        input=float(data.get("input", 0.0)),
        output=float(data.get("output", 0.0)),
    )
