"""Node Resolver: map an LLM node claim onto a live document node.

The model is told to return exact node ids but in practice returns stale ids
(from a truncated payload), compound instance-chain ids such as
``I9:27;11:20;0:1``, or nothing at all. Resolution degrades through tiers
instead of dropping the feedback:

    Tier 0  normalize    strip instance prefix, scan the chain right → left
    Tier 1  direct id    normalized id present in the document
    Tier 2  name match   case-insensitive substring match on ``location``
    Tier 3  fallback     first non-root, non-compound node in tree order

Leaf targets are then promoted to their nearest FRAME/COMPONENT/INSTANCE
ancestor so comments are not pinned to a single glyph or vector path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from reviewer.errors import NodeNotFoundError
from reviewer.settings import RESOLVER_MAX_PARENT_HOPS

from .models import CONTAINER_TYPES, PROMOTION_TYPES, LiveIndex, ResolvedTarget

logger = logging.getLogger(__name__)

INSTANCE_PREFIX = "I"
CHAIN_SEPARATOR = ";"
ROOT_SENTINEL_PREFIX = "0:"


@dataclass
class NodeClaim:
    """What a feedback item says about its target."""

    node_id: Optional[str] = None
    location: Optional[str] = None


def is_root_sentinel(node_id: str) -> bool:
    return node_id.startswith(ROOT_SENTINEL_PREFIX)


def is_compound(node_id: str) -> bool:
    return CHAIN_SEPARATOR in node_id


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


def build_live_index(root: Optional[Dict[str, Any]]) -> LiveIndex:
    """Index every node of the document (hidden ones included, no depth cap).

    Iterative pre-order walk so pathological nesting cannot hit the
    recursion limit.
    """
    index = LiveIndex()
    if not root:
        return index

    index.root_id = root.get("id")
    stack = [(root, None)]
    while stack:
        node, parent_id = stack.pop()
        node_id = node.get("id")
        if node_id and node_id not in index.all_ids:
            index.all_ids.add(node_id)
            index.order.append(node_id)
            index.name_of[node_id] = node.get("name", "")
            index.type_of[node_id] = node.get("type", "")
            index.parent_of[node_id] = parent_id
        children = node.get("children") or []
        # Reverse so the first child is popped first (pre-order)
        for child in reversed(children):
            if isinstance(child, dict):
                stack.append((child, node_id or parent_id))

    logger.info("build_live_index: %d nodes indexed (root=%s)", len(index), index.root_id)
    return index


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def normalize_node_id(node_id: str, all_ids) -> Tuple[str, bool]:
    """Tier 0. Returns ``(candidate, matched)``.

    ``matched`` is True when the candidate was confirmed present in
    ``all_ids`` while scanning an instance chain.
    """
    candidate = node_id.strip()
    if candidate.startswith(INSTANCE_PREFIX):
        candidate = candidate[len(INSTANCE_PREFIX):]

    if not is_compound(candidate):
        return candidate, False

    segments = [s.strip() for s in candidate.split(CHAIN_SEPARATOR) if s.strip()]
    segments = [
        s[len(INSTANCE_PREFIX):] if s.startswith(INSTANCE_PREFIX) else s
        for s in segments
    ]
    usable = [s for s in segments if not is_root_sentinel(s)]
    for segment in reversed(usable):
        if segment in all_ids:
            return segment, True

    # Nothing resolvable: keep the most specific segment verbatim
    if usable:
        return usable[-1], False
    return segments[-1] if segments else candidate, False


def match_by_name(location: str, index: LiveIndex) -> Optional[str]:
    """Tier 2. First depth-first node whose name contains ``location`` or vice versa."""
    needle = location.strip().lower()
    if not needle:
        return None
    for node_id in index.order:
        name = index.name_of.get(node_id, "").lower()
        if not name:
            continue
        if needle in name or name in needle:
            return node_id
    return None


def fallback_node(index: LiveIndex) -> str:
    """Tier 3. Deterministic pick that guarantees every item anchors somewhere."""
    for node_id in index.order:
        if node_id == index.root_id:
            continue
        if is_root_sentinel(node_id) or is_compound(node_id):
            continue
        return node_id
    # Only the root (or only sentinel/compound ids) exist
    return index.order[0]


def promote_to_container(
    node_id: str,
    index: LiveIndex,
    max_hops: int = RESOLVER_MAX_PARENT_HOPS,
) -> str:
    """Replace a leaf with its nearest FRAME/COMPONENT/INSTANCE ancestor."""
    if index.type_of.get(node_id) in CONTAINER_TYPES:
        return node_id

    current = node_id
    for _ in range(max_hops):
        parent = index.parent_of.get(current)
        if parent is None:
            break
        if index.type_of.get(parent) in PROMOTION_TYPES:
            return parent
        current = parent
    return node_id


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def resolve(
    claim: NodeClaim,
    index: LiveIndex,
    promote: bool = True,
) -> ResolvedTarget:
    """Resolve a node claim to a live node. Never returns an unknown id."""
    if not index.order:
        raise NodeNotFoundError("No valid nodes found in Figma file")

    chosen: Optional[str] = None
    tier = ""

    if claim.node_id:
        candidate, matched = normalize_node_id(str(claim.node_id), index.all_ids)
        if matched:
            chosen, tier = candidate, "chain"
        elif candidate in index.all_ids:
            chosen, tier = candidate, "direct"

    if chosen is None and claim.location:
        chosen = match_by_name(str(claim.location), index)
        if chosen is not None:
            tier = "name"

    if chosen is None:
        chosen, tier = fallback_node(index), "fallback"
        logger.info(
            "resolve: no match for node_id=%r location=%r, falling back to %s",
            claim.node_id, claim.location, chosen,
        )

    if promote:
        promoted = promote_to_container(chosen, index)
        if promoted != chosen:
            logger.debug("resolve: promoted %s → %s", chosen, promoted)
            chosen = promoted
            tier = f"{tier}+promoted"

    return index.target(chosen, tier=tier)


class NodeResolver:
    """Resolver bound to one document snapshot."""

    def __init__(self, index: LiveIndex, promote: bool = True):
        self.index = index
        self.promote = promote

    @classmethod
    def from_document(cls, root: Optional[Dict[str, Any]], promote: bool = True) -> "NodeResolver":
        return cls(build_live_index(root), promote=promote)

    def resolve(self, node_id: Optional[str] = None, location: Optional[str] = None) -> ResolvedTarget:
        return resolve(NodeClaim(node_id=node_id, location=location), self.index, promote=self.promote)

    def __call__(self, node_id: Optional[str] = None, location: Optional[str] = None) -> ResolvedTarget:
        return self.resolve(node_id=node_id, location=location)
