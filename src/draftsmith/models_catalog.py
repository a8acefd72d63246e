"""
Built-in model catalog.

Contains definitions for the providers the bundled executors talk to. All
prices are in $/million tokens. IDs are family names; dated provider IDs
resolve to them through prefix lookup. Override or extend the table with a
YAML models file (see ``ModelRegistry.load_from_yaml``).
"""

from __future__ import annotations

from draftsmith.model_registry import ModelDefinition, ModelPricing, PricingTier


def get_default_models() -> list[ModelDefinition]:
    """Return the built-in model definitions."""
    return [
        # ---------------------------------------------------------------
        # Anthropic
        # ---------------------------------------------------------------
        ModelDefinition(
            id="claude-opus-4-1",
            provider="anthropic",
            display_name="Claude Opus 4.1",
            description="Most capable; best for complex revision passes",
            context_window=200_000,
            max_output_tokens=32_000,
            pricing=ModelPricing(standard=PricingTier(input=15.0, output=75.0)),
        ),
        ModelDefinition(
            id="claude-opus-4",
            provider="anthropic",
            display_name="Claude Opus 4",
            context_window=200_000,
            max_output_tokens=32_000,
            pricing=ModelPricing(standard=PricingTier(input=15.0, output=75.0)),
        ),
        ModelDefinition(
            id="claude-sonnet-4-5",
            provider="anthropic",
            display_name="Claude Sonnet 4.5",
            description="Balanced quality and cost; the default for drafting",
            context_window=1_000_000,
            max_output_tokens=64_000,
            pricing=ModelPricing(
                standard=PricingTier(input=3.0, output=15.0),
                long_context=PricingTier(input=6.0, output=22.5),
            ),
        ),
        ModelDefinition(
            id="claude-sonnet-4",
            provider="anthropic",
            display_name="Claude Sonnet 4",
            context_window=1_000_000,
            max_output_tokens=64_000,
            pricing=ModelPricing(
                standard=PricingTier(input=3.0, output=15.0),
                long_context=PricingTier(input=6.0, output=22.5),
            ),
        ),
        ModelDefinition(
            id="claude-haiku-4-5",
            provider="anthropic",
            display_name="Claude Haiku 4.5",
            description="Fast and cheap; good for summaries and brainstorming",
            context_window=200_000,
            max_output_tokens=64_000,
            pricing=ModelPricing(standard=PricingTier(input=1.0, output=5.0)),
        ),
        # ---------------------------------------------------------------
        # OpenAI
        # ---------------------------------------------------------------
        ModelDefinition(
            id="gpt-4o",
            provider="openai",
            display_name="GPT-4o",
            context_window=128_000,
            max_output_tokens=16_384,
            pricing=ModelPricing(standard=PricingTier(input=2.50, output=10.0)),
        ),
        ModelDefinition(
            id="gpt-4o-mini",
            provider="openai",
            display_name="GPT-4o Mini",
            context_window=128_000,
            max_output_tokens=16_384,
            pricing=ModelPricing(standard=PricingTier(input=0.15, output=0.60)),
        ),
        ModelDefinition(
            id="gpt-4.1",
            provider="openai",
            display_name="GPT-4.1",
            context_window=1_047_576,
            max_output_tokens=32_768,
            pricing=ModelPricing(standard=PricingTier(input=2.0, output=8.0)),
        ),
    ]
