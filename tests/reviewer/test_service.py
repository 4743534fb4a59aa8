"""Tests for reviewer.service orchestration with mocked clients."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from reviewer.errors import NodeNotFoundError
from reviewer.integrations.llm_client import LLMResponse
from reviewer.pipeline.models import FeedbackItem
from reviewer.service import (
    ReviewConfig,
    analyze_figma_file,
    apply_fixes,
    post_feedback_comments,
)


def _llm(text):
    llm = MagicMock()
    llm.complete = AsyncMock(return_value=LLMResponse(text=text))
    return llm


class TestAnalyzeFigmaFile:

    @pytest.mark.asyncio
    async def test_prompt_carries_visible_nodes_only(self, login_document):
        figma = MagicMock()
        figma.get_document = AsyncMock(return_value=login_document)
        llm = _llm(json.dumps([{
            "category": "ux", "title": "t", "description": "d",
            "severity": "high", "nodeId": "1:3",
        }]))

        result = await analyze_figma_file(
            figma, llm, "abc", review_config=ReviewConfig(model="m", categories=["ux"]),
        )

        system, user, model = llm.complete.await_args.args
        assert model == "m"
        assert "Welcome back" in user
        assert "Promo" not in user
        assert result.categories == ["ux"]
        assert result.to_dict()["summary"]["high"] == 1

    @pytest.mark.asyncio
    async def test_missing_document_propagates(self):
        figma = MagicMock()
        figma.get_document = AsyncMock(side_effect=NodeNotFoundError("Node 9:9 not found"))
        llm = _llm("[]")
        with pytest.raises(NodeNotFoundError):
            await analyze_figma_file(figma, llm, "abc", "9:9")
        llm.complete.assert_not_awaited()


class TestPostFeedbackComments:

    @pytest.mark.asyncio
    async def test_posts_on_live_file(self, login_document):
        figma = MagicMock()
        figma.get_document = AsyncMock(return_value=login_document)
        figma.post_comment = AsyncMock(return_value={"id": "c"})
        item = FeedbackItem(
            id="f", category="ui", title="t", description="d", severity="low", node_id="1:4",
        )

        result = await post_feedback_comments(figma, "abc", [item], delay=0)

        assert result.posted == 1
        file_key, _, node_id, x, y = figma.post_comment.await_args.args
        assert (file_key, node_id, x, y) == ("abc", "1:3", 0, 0)

    @pytest.mark.asyncio
    async def test_empty_document(self):
        figma = MagicMock()
        figma.get_document = AsyncMock(return_value={})
        with pytest.raises(NodeNotFoundError, match="No valid nodes"):
            await post_feedback_comments(figma, "abc", [], delay=0)


class TestApplyFixes:

    def test_original_snapshot_untouched(self, login_screen):
        item = FeedbackItem(
            id="f", category="ui", title="t", description="d", severity="low",
            node_id="1:2", suggestion="Increase the font size to 24px",
        )
        batch = apply_fixes([login_screen], [item])
        assert batch.edited == 1
        assert login_screen["children"][0]["style"]["fontSize"] == 20
