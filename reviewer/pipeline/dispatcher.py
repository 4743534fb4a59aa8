"""Comment/Edit Dispatcher: apply resolved feedback to the design file.

Items are processed one at a time with a fixed delay between remote calls
(Figma comment rate limits). A failure on one item is recorded and the batch
moves on; partial success is the normal outcome.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from reviewer.errors import PerItemDispatchError
from reviewer.settings import (
    COMMENT_OFFSET_STEP_X,
    COMMENT_OFFSET_STEP_Y,
    COMMENT_POST_DELAY,
)

from .fixer import FixResult, apply_fix
from .models import DesignNode, FeedbackItem, ResolvedTarget

logger = logging.getLogger(__name__)

# (message, node_id, offset_x, offset_y) -> anything
CommentPoster = Callable[[str, str, float, float], Awaitable[Any]]
# (node_id, location) -> ResolvedTarget
TargetResolver = Callable[..., ResolvedTarget]


@dataclass
class DispatchResult:
    posted: int = 0
    total: int = 0
    errors: List[str] = field(default_factory=list)
    placements: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class FixBatchResult:
    results: List[FixResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def edited(self) -> int:
        return sum(1 for r in self.results if not r.needs_manual_edit)


def format_comment(item: FeedbackItem) -> str:
    """Structured comment body: category, title, severity, description, location."""
    text = (
        f"🤖 **AI Feedback - {item.category.upper()}**\n\n"
        f"**{item.title}**\n\n"
        f"Severity: {item.severity.upper()}\n\n"
        f"{item.description}"
    )
    if item.suggestion:
        text += f"\n\n💡 Suggestion: {item.suggestion}"
    if item.location:
        text += f"\n\n📍 Location: {item.location}"
    return text


class CommentPlacer:
    """Non-overlapping offsets for comments.

    Comments on the same target spread horizontally; every comment is also
    stacked one step lower than the previous one overall.
    """

    def __init__(
        self,
        step_x: float = COMMENT_OFFSET_STEP_X,
        step_y: float = COMMENT_OFFSET_STEP_Y,
    ):
        self.step_x = step_x
        self.step_y = step_y
        self._per_target: Dict[str, int] = defaultdict(int)
        self._count = 0

    def next_offset(self, node_id: str) -> Tuple[float, float]:
        x = self._per_target[node_id] * self.step_x
        y = self._count * self.step_y
        self._per_target[node_id] += 1
        self._count += 1
        return x, y


async def dispatch(
    items: List[FeedbackItem],
    resolver: TargetResolver,
    poster: CommentPoster,
    delay: float = COMMENT_POST_DELAY,
    placer: Optional[CommentPlacer] = None,
) -> DispatchResult:
    """Post one comment per feedback item, sequentially."""
    placer = placer or CommentPlacer()
    result = DispatchResult(total=len(items))

    for i, item in enumerate(items):
        try:
            target = resolver(node_id=item.node_id, location=item.location)
            offset_x, offset_y = placer.next_offset(target.node_id)
            message = format_comment(item)

            logger.info(
                "dispatch: posting comment %d/%d to %s (%s, tier=%s) at (%.0f, %.0f)",
                i + 1, len(items), target.node_id, target.node_name,
                target.tier, offset_x, offset_y,
            )
            await poster(message, target.node_id, offset_x, offset_y)
            result.posted += 1
            result.placements.append({
                "feedbackId": item.id,
                "nodeId": target.node_id,
                "nodeName": target.node_name,
                "offsetX": offset_x,
                "offsetY": offset_y,
            })
        except Exception as e:
            error = PerItemDispatchError(i, str(e) or e.__class__.__name__)
            logger.warning("dispatch: %s", error)
            result.errors.append(str(error))

        if delay > 0 and i < len(items) - 1:
            await asyncio.sleep(delay)

    logger.info("dispatch: posted %d/%d comments successfully", result.posted, result.total)
    return result


def dispatch_fixes(
    items: List[FeedbackItem],
    resolver: TargetResolver,
    nodes_by_id: Dict[str, DesignNode],
) -> FixBatchResult:
    """In-tool variant: edit the resolved node directly instead of commenting.

    Fixes target the exact node the model named, so contextual promotion is
    the resolver's business, not ours; pass an unpromoted resolver here.
    """
    batch = FixBatchResult()
    for i, item in enumerate(items):
        try:
            target = resolver(node_id=item.node_id, location=item.location)
            node = nodes_by_id.get(target.node_id)
            if node is None:
                raise LookupError(f"node {target.node_id} not loaded")
            batch.results.append(apply_fix(item, node))
        except Exception as e:
            error = PerItemDispatchError(i, str(e) or e.__class__.__name__)
            logger.warning("dispatch_fixes: %s", error)
            batch.errors.append(str(error))
    return batch
