"""Review service: orchestrates the pipeline stages and the external clients.

    analyze_figma_file     Figma file → extract → prompt → LLM → parse
    analyze_document       same, for an already-fetched node tree
    analyze_plugin_data    plugin selection data → prompt → LLM → parse
    post_feedback_comments feedback → resolve → comment on the live file
    apply_fixes            feedback → resolve → edit plugin-side nodes
    generate_solutions     feedback → LLM → solution + implementation steps

Clients are passed in; the service never reads credentials itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from reviewer import config
from reviewer.errors import NodeNotFoundError
from reviewer.integrations.figma_client import FigmaClient
from reviewer.integrations.llm_client import LLMClient
from reviewer.settings import (
    COMMENT_POST_DELAY,
    LLM_MAX_TOKENS,
    LLM_PLUGIN_MAX_TOKENS,
    LLM_SOLUTIONS_TEMPERATURE,
    REVIEW_MAX_DEPTH,
    REVIEW_MAX_NODES,
)

from .pipeline.dispatcher import DispatchResult, FixBatchResult, dispatch, dispatch_fixes
from .pipeline.extractor import collect_nodes, extract
from .pipeline.feedback_parser import parse_feedback, parse_solutions, summarize
from .pipeline.models import FeedbackItem
from .pipeline.node_resolver import NodeResolver, build_live_index
from .pipeline.prompt_builder import build_plugin_prompt, build_prompt, build_solutions_prompt

logger = logging.getLogger(__name__)


@dataclass
class ReviewConfig:
    """Per-run options. Model selection is always explicit here."""

    model: str = config.DEFAULT_MODEL
    categories: Optional[List[str]] = None
    custom_prompt: Optional[str] = None
    include_suggestions: bool = True
    strict_categories: bool = False
    max_nodes: int = REVIEW_MAX_NODES
    max_depth: int = REVIEW_MAX_DEPTH


@dataclass
class AnalysisResult:
    feedback: List[FeedbackItem] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    categories: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "feedback": [item.to_dict() for item in self.feedback],
            "summary": self.summary,
        }


async def analyze_document(
    root: Dict[str, Any],
    llm: LLMClient,
    review_config: Optional[ReviewConfig] = None,
) -> AnalysisResult:
    """Review an already-fetched node tree."""
    cfg = review_config or ReviewConfig()

    payload = extract(root, max_nodes=cfg.max_nodes, max_depth=cfg.max_depth)
    if not payload.nodes:
        raise NodeNotFoundError("No visible nodes found in the Figma design")

    prompt = build_prompt(
        payload,
        allowed_categories=cfg.categories,
        include_suggestions=cfg.include_suggestions,
        free_text=cfg.custom_prompt,
    )
    logger.info("analyze_document: using model %s", cfg.model)
    response = await llm.complete(prompt.system, prompt.user, cfg.model, max_tokens=LLM_MAX_TOKENS)

    items = parse_feedback(
        response.text,
        allowed_categories=prompt.allowed_categories,
        strict=cfg.strict_categories,
    )
    return AnalysisResult(feedback=items, summary=summarize(items), categories=prompt.allowed_categories)


async def analyze_figma_file(
    figma: FigmaClient,
    llm: LLMClient,
    file_key: str,
    node_id: Optional[str] = None,
    review_config: Optional[ReviewConfig] = None,
) -> AnalysisResult:
    """Fetch the file (or one node's subtree) from Figma and review it."""
    root = await figma.get_document(file_key, node_id)
    return await analyze_document(root, llm, review_config)


async def analyze_plugin_data(
    design_data: Any,
    request_text: str,
    llm: LLMClient,
    review_config: Optional[ReviewConfig] = None,
) -> AnalysisResult:
    """Review selection data sent by the Figma plugin."""
    cfg = review_config or ReviewConfig()
    prompt = build_plugin_prompt(design_data, request_text)
    response = await llm.complete(
        prompt.system, prompt.user, cfg.model, max_tokens=LLM_PLUGIN_MAX_TOKENS,
    )
    items = parse_feedback(
        response.text,
        allowed_categories=prompt.allowed_categories,
        strict=cfg.strict_categories,
    )
    summary = summarize(items)
    logger.info(
        "analyze_plugin_data: %d items (high=%d, medium=%d, low=%d)",
        summary["total"], summary["high"], summary["medium"], summary["low"],
    )
    return AnalysisResult(feedback=items, summary=summary, categories=prompt.allowed_categories)


async def post_feedback_comments(
    figma: FigmaClient,
    file_key: str,
    items: List[FeedbackItem],
    delay: float = COMMENT_POST_DELAY,
) -> DispatchResult:
    """Anchor one comment per feedback item on the live file."""
    root = await figma.get_document(file_key)
    resolver = NodeResolver.from_document(root)
    if not len(resolver.index):
        raise NodeNotFoundError("No valid nodes found in Figma file")

    async def poster(message: str, node_id: str, offset_x: float, offset_y: float):
        return await figma.post_comment(file_key, message, node_id, offset_x, offset_y)

    logger.info("post_feedback_comments: posting %d comments to %s", len(items), file_key)
    return await dispatch(items, resolver, poster, delay=delay)


def apply_fixes(
    design_data: List[Dict[str, Any]],
    items: List[FeedbackItem],
) -> FixBatchResult:
    """Apply suggestions to the plugin's node snapshot, exact targets only."""
    index = build_live_index({"children": list(design_data or [])})
    if not len(index):
        raise NodeNotFoundError("No valid nodes found in design data")
    resolver = NodeResolver(index, promote=False)
    return dispatch_fixes(items, resolver, collect_nodes(design_data))


async def generate_solutions(
    items: List[Dict[str, Any]],
    llm: LLMClient,
    model: str = config.DEFAULT_MODEL,
) -> List[Dict[str, Any]]:
    """Ask the model for a solution and implementation steps per item."""
    prompt = build_solutions_prompt(items)
    response = await llm.complete(
        prompt.system,
        prompt.user,
        model,
        max_tokens=LLM_MAX_TOKENS,
        temperature=LLM_SOLUTIONS_TEMPERATURE,
    )
    solutions = parse_solutions(response.text)
    logger.info("generate_solutions: %d solutions for %d items", len(solutions), len(items))
    return solutions
