"""Tests for model catalogue, provider resolution and model selection."""

from __future__ import annotations

import pytest

from contentflow.services.llm.models import (
    BALANCED_MODEL,
    FAST_MODEL,
    MULTIMODAL_MODEL,
    PREMIUM_MODEL,
    REASONING_MODEL,
    Provider,
    TaskRequirements,
    TokenUsage,
    UnsupportedModelError,
    calculate_cost,
    resolve_provider,
    select_model,
)


class TestResolveProvider:
    @pytest.mark.parametrize(
        ("model", "provider"),
        [
            ("gpt-4o", Provider.OPENAI),
            ("gpt-4o-mini", Provider.OPENAI),
            ("claude-3-5-sonnet-20241022", Provider.ANTHROPIC),
            ("gemini-1.5-pro", Provider.GEMINI),
        ],
    )
    def test_prefixes(self, model: str, provider: Provider) -> None:
        assert resolve_provider(model) is provider

    def test_unknown_prefix(self) -> None:
        with pytest.raises(UnsupportedModelError) as exc_info:
            resolve_provider("llama-3-70b")

        assert exc_info.value.model == "llama-3-70b"
        assert "llama-3-70b" in str(exc_info.value)


class TestSelectModel:
    def test_defaults_pick_balanced(self) -> None:
        assert select_model("repurpose content") == BALANCED_MODEL

    def test_quality_and_high_complexity(self) -> None:
        req = TaskRequirements(priority="quality", complexity="high")

        assert select_model("write", req) == PREMIUM_MODEL

    def test_speed_and_limited_budget(self) -> None:
        req = TaskRequirements(priority="speed", budget="limited")

        assert select_model("write", req) == FAST_MODEL

    def test_code_content(self) -> None:
        req = TaskRequirements(content_type="code")

        assert select_model("review", req) == REASONING_MODEL

    def test_analysis_in_task_text(self) -> None:
        assert select_model("market analysis report") == REASONING_MODEL

    def test_multimodal(self) -> None:
        req = TaskRequirements(content_type="multimodal")

        assert select_model("describe", req) == MULTIMODAL_MODEL

    def test_first_matching_rule_wins(self) -> None:
        # Matches both the premium rule and the reasoning rule
        req = TaskRequirements(priority="quality", complexity="high", content_type="code")

        assert select_model("analysis", req) == PREMIUM_MODEL

    def test_speed_without_limited_budget_falls_through(self) -> None:
        req = TaskRequirements(priority="speed", budget="unlimited")

        assert select_model("write", req) == BALANCED_MODEL


class TestCalculateCost:
    def test_output_billed_at_double_rate(self) -> None:
        usage = TokenUsage(prompt_tokens=1000, completion_tokens=500)

        cost = calculate_cost(REASONING_MODEL, usage)

        assert cost == pytest.approx(1000 * 0.00003 + 500 * 0.00003 * 2)

    def test_unknown_model_costs_nothing(self) -> None:
        assert calculate_cost("gpt-99", TokenUsage(10, 10)) == 0.0

    def test_missing_usage_costs_nothing(self) -> None:
        assert calculate_cost(BALANCED_MODEL, None) == 0.0

    def test_total_tokens(self) -> None:
        assert TokenUsage(prompt_tokens=7, completion_tokens=3).total_tokens == 10
