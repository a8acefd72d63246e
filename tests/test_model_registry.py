"""Tests for model_registry module."""

from textwrap import dedent

import pytest

from draftsmith.model_registry import (
    ModelDefinition,
    ModelPricing,
    ModelRegistry,
    PricingTier,
    TokenUsage,
)


# ---------------------------------------------------------------------------
# TokenUsage / PricingTier
# ---------------------------------------------------------------------------


class TestTokenUsage:
    def test_total_tokens(self):
        assert TokenUsage(input_tokens=100, output_tokens=50).total_tokens == 150

    def test_add(self):
        a = TokenUsage(input_tokens=100, output_tokens=50)
        c = a + TokenUsage(input_tokens=200, output_tokens=100)
        assert (c.input_tokens, c.output_tokens) == (300, 150)
        # Original unchanged
        assert a.input_tokens == 100


class TestPricing:
    def test_tier_cost(self):
        tier = PricingTier(input=3.0, output=15.0)
        assert tier.cost(1_000_000, 500_000) == pytest.approx(10.5)

    def test_tier_for_uses_strict_threshold(self):
        pricing = ModelPricing(
            standard=PricingTier(input=3.0, output=15.0),
            long_context=PricingTier(input=6.0, output=22.5),
        )
        assert pricing.tier_for(200_000) is pricing.standard
        assert pricing.tier_for(200_001) is pricing.long_context

    def test_tier_for_without_long_context(self):
        pricing = ModelPricing(standard=PricingTier(input=1.0, output=2.0))
        assert pricing.tier_for(1_000_000) is pricing.standard


# ---------------------------------------------------------------------------
# ModelRegistry
# ---------------------------------------------------------------------------


class TestModelRegistry:
    def test_register_and_get(self):
        reg = ModelRegistry()
        model = ModelDefinition(id="m1", provider="p")
        reg.register(model)
        assert reg.get("m1") is model
        assert model.display_name == "m1"

    def test_get_missing(self):
        assert ModelRegistry().get("nope") is None

    def test_prefix_lookup_prefers_longest(self):
        reg = ModelRegistry()
        reg.register(ModelDefinition(id="claude-sonnet-4"))
        reg.register(ModelDefinition(id="claude-sonnet-4-5"))
        assert reg.get("claude-sonnet-4-5-20250929").id == "claude-sonnet-4-5"
        assert reg.get("claude-sonnet-4-20250514").id == "claude-sonnet-4"

    def test_unregister(self):
        reg = ModelRegistry()
        reg.register(ModelDefinition(id="m1"))
        assert reg.unregister("m1") is True
        assert reg.unregister("m1") is False
        assert reg.count == 0

    def test_find_and_list_by_provider(self):
        reg = ModelRegistry()
        reg.register(ModelDefinition(id="gpt-4o", provider="openai", display_name="GPT-4o"))
        reg.register(ModelDefinition(id="claude-haiku-4-5", provider="anthropic"))
        assert [m.id for m in reg.find("gpt")] == ["gpt-4o"]
        assert [m.id for m in reg.list_by_provider("anthropic")] == ["claude-haiku-4-5"]
        assert len(reg.all()) == 2


class TestCostCalculation:
    def test_standard_pricing(self, registry):
        expected = (1000 * 3.0 + 500 * 15.0) / 1_000_000
        assert registry.calculate_cost("test-model", 1000, 500) == pytest.approx(expected)

    def test_large_input_without_long_context_tier(self, registry):
        breakdown = registry.cost_breakdown("test-model", 250_000, 1000)
        assert breakdown.tier == "standard"
        assert breakdown.total == pytest.approx((250_000 * 3.0 + 1000 * 15.0) / 1_000_000)

    def test_long_context_tier(self, registry):
        breakdown = registry.cost_breakdown("tiered-model", 250_000, 1000)
        assert breakdown.tier == "long_context"
        assert breakdown.input == pytest.approx(1.5)
        assert breakdown.output == pytest.approx(0.0225)
        assert breakdown.total == pytest.approx(1.5225)

    def test_at_threshold_is_standard(self, registry):
        assert registry.cost_breakdown("tiered-model", 200_000, 0).tier == "standard"

    def test_unknown_model_uses_fallback(self, registry):
        breakdown = registry.cost_breakdown("mystery-model", 1000, 500)
        assert breakdown.tier == "fallback"
        assert breakdown.total == pytest.approx((1000 * 3.0 + 500 * 15.0) / 1_000_000)

    def test_custom_threshold_and_fallback(self):
        reg = ModelRegistry(long_context_threshold=10, fallback=PricingTier(input=1.0, output=1.0))
        reg.register(
            ModelDefinition(
                id="m",
                pricing=ModelPricing(
                    standard=PricingTier(input=1.0, output=1.0),
                    long_context=PricingTier(input=2.0, output=2.0),
                ),
            )
        )
        assert reg.calculate_cost("m", 11, 0) == pytest.approx(22 / 1_000_000)
        assert reg.calculate_cost("other", 1_000_000, 0) == pytest.approx(1.0)

    def test_dated_id_prices_as_family(self, registry):
        assert registry.calculate_cost("test-model-2025", 1000, 500) == registry.calculate_cost(
            "test-model", 1000, 500
        )

    def test_zero_tokens(self, registry):
        assert registry.calculate_cost("test-model", 0, 0) == 0.0

    def test_cost_for_usage(self, registry):
        usage = TokenUsage(input_tokens=1000, output_tokens=500)
        assert registry.cost_for_usage("test-model", usage) == registry.calculate_cost(
            "test-model", 1000, 500
        )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoading:
    def test_load_defaults(self):
        reg = ModelRegistry()
        assert reg.load_defaults() == reg.count
        sonnet = reg.get("claude-sonnet-4-5-20250929")
        assert sonnet.id == "claude-sonnet-4-5"
        assert sonnet.pricing.long_context is not None
        assert reg.get("claude-opus-4-1-20250805").id == "claude-opus-4-1"
        assert reg.get("gpt-4o-mini").pricing.standard.input == pytest.approx(0.15)

    def test_load_from_dicts(self):
        reg = ModelRegistry()
        count = reg.load_from_dicts(
            [
                {
                    "id": "custom",
                    "provider": "local",
                    "max_context": 32_000,
                    "pricing": {
                        "standard": {"input": 1, "output": 2},
                        "long_context": {"input": 3, "output": 4},
                    },
                },
                {"id": "free"},
            ]
        )
        assert count == 2
        custom = reg.get("custom")
        assert custom.context_window == 32_000
        assert custom.pricing.standard == PricingTier(input=1.0, output=2.0)
        assert custom.pricing.long_context == PricingTier(input=3.0, output=4.0)
        assert reg.calculate_cost("free", 1000, 1000) == 0.0

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(
            dedent(
                """\
                models:
                  - id: house-model
                    provider: local
                    pricing:
                      standard: {input: 0.5, output: 1.5}
                """
            )
        )
        reg = ModelRegistry()
        assert reg.load_from_yaml(path) == 1
        assert reg.calculate_cost("house-model", 1_000_000, 0) == pytest.approx(0.5)

    def test_load_from_empty_yaml(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("")
        assert ModelRegistry().load_from_yaml(path) == 0
