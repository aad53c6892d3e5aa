"""Tests for the discovery and insight prompt builders."""

import pytest

from Grid_Rank.agents.prompts import (
    COMPETITOR_SCHEMA_HINT,
    build_discovery_messages,
    build_insight_user_prompt,
    system_prompt_for,
)
from Grid_Rank.agents.prompts.discovery_prompt import PROMPT_VERSION
from Grid_Rank.models import BusinessEntity, InsightType


class TestDiscoveryPrompt:
    """Tests for build_discovery_messages."""

    def test_two_messages(self, target: BusinessEntity) -> None:
        messages = build_discovery_messages(target, "barber", count=10)
        assert [m.role for m in messages] == ["system", "user"]

    def test_system_prompt_carries_version_and_schema(self, target: BusinessEntity) -> None:
        system = build_discovery_messages(target, "barber")[0].content
        assert f"VERSION: {PROMPT_VERSION}" in system
        assert COMPETITOR_SCHEMA_HINT in system

    def test_user_prompt_wraps_input(self, target: BusinessEntity) -> None:
        user = build_discovery_messages(target, "barber", count=10)[1].content
        assert user.startswith("<user_input>")
        assert "Keyword: barber" in user
        assert "40.712800, -74.006000" in user
        assert "top 10" in user
        assert 'Exclude "Fade Masters"' in user


class TestInsightPrompts:
    """Tests for insight system and user prompts."""

    @pytest.mark.parametrize("insight_type", list(InsightType))
    def test_every_type_has_json_prompt(self, insight_type: InsightType) -> None:
        prompt = system_prompt_for(insight_type)
        assert f"VERSION: {PROMPT_VERSION}" in prompt
        assert '"recommendations"' in prompt

    def test_prompts_differ_per_type(self) -> None:
        prompts = {system_prompt_for(t) for t in InsightType}
        assert len(prompts) == len(InsightType)

    def test_user_prompt_wraps_context(self) -> None:
        prompt = build_insight_user_prompt("Business: Fade Masters", InsightType.REVIEW)
        assert prompt.startswith("<user_input>\nBusiness: Fade Masters\n</user_input>")
        assert "review volume" in prompt
