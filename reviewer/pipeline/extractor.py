"""Tree Extractor: Figma node tree to bounded, prioritized CanvasPayload.

Walks the document depth-first (pre-order), skipping hidden and fully
transparent subtrees, and flattens it into DesignNode descriptors with a
breadcrumb path. TEXT nodes go first so copy review survives truncation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from reviewer.settings import REVIEW_MAX_DEPTH, REVIEW_MAX_NODES

from .models import CanvasPayload, DesignNode

logger = logging.getLogger(__name__)


def is_excluded(raw: Dict[str, Any]) -> bool:
    """Hidden layers and zero-opacity layers are dropped with their subtree."""
    if raw.get("visible") is False:
        return True
    opacity = raw.get("opacity")
    return opacity is not None and opacity == 0


def _flatten(
    raw: Optional[Dict[str, Any]],
    parent_path: str,
    depth: int,
    max_depth: int,
    out: List[DesignNode],
) -> None:
    if not raw or depth > max_depth:
        return
    if is_excluded(raw):
        return

    name = raw.get("name", "")
    path = f"{parent_path} > {name}" if parent_path else name

    if raw.get("id") and raw.get("type"):
        out.append(DesignNode.from_figma(raw, path=path))

    for child in raw.get("children") or []:
        _flatten(child, path, depth + 1, max_depth, out)


def flatten_tree(
    root: Optional[Dict[str, Any]],
    max_depth: int = REVIEW_MAX_DEPTH,
) -> List[DesignNode]:
    """Flatten every visible node down to ``max_depth`` (root is depth 0)."""
    nodes: List[DesignNode] = []
    _flatten(root, "", 0, max_depth, nodes)
    return nodes


def prioritize(nodes: List[DesignNode], max_nodes: int) -> List[DesignNode]:
    """Text-bearing nodes first, then everything else, capped at ``max_nodes``."""
    text_nodes = [n for n in nodes if n.is_text_bearing]
    other_nodes = [n for n in nodes if not n.is_text_bearing]
    return (text_nodes + other_nodes)[:max(0, max_nodes)]


def extract(
    root: Optional[Dict[str, Any]],
    max_nodes: int = REVIEW_MAX_NODES,
    max_depth: int = REVIEW_MAX_DEPTH,
) -> CanvasPayload:
    """Extract a CanvasPayload from a raw Figma document/node dict.

    A missing root yields an empty payload rather than an error.
    """
    if not root:
        return CanvasPayload(name="", nodes=[])

    all_nodes = flatten_tree(root, max_depth=max_depth)
    selected = prioritize(all_nodes, max_nodes)

    text_count = sum(1 for n in selected if n.is_text_bearing)
    logger.info(
        "extract: root=%r, visible=%d, selected=%d (text=%d, other=%d), cap=%d",
        root.get("name", ""), len(all_nodes), len(selected),
        text_count, len(selected) - text_count, max_nodes,
    )
    return CanvasPayload(name=root.get("name", ""), nodes=selected)


def extract_plugin_nodes(
    design_data: List[Dict[str, Any]],
    max_nodes: int = REVIEW_MAX_NODES,
) -> CanvasPayload:
    """Extract from a plugin-side selection (a list of root nodes).

    Each root is flattened on its own; the combined list is prioritized once.
    """
    nodes: List[DesignNode] = []
    for root in design_data or []:
        if isinstance(root, dict):
            nodes.extend(flatten_tree(root))
    name = ""
    if design_data and isinstance(design_data[0], dict):
        name = design_data[0].get("name", "")
    return CanvasPayload(name=name, nodes=prioritize(nodes, max_nodes))


def collect_nodes(roots: List[Dict[str, Any]]) -> Dict[str, DesignNode]:
    """Every node under ``roots`` by id, hidden ones included (edit path)."""
    found: Dict[str, DesignNode] = {}
    stack = [(root, "") for root in reversed(roots or []) if isinstance(root, dict)]
    while stack:
        raw, parent_path = stack.pop()
        name = raw.get("name", "")
        path = f"{parent_path} > {name}" if parent_path else name
        node_id = raw.get("id")
        if node_id and raw.get("type") and node_id not in found:
            found[node_id] = DesignNode.from_figma(raw, path=path)
        for child in reversed(raw.get("children") or []):
            if isinstance(child, dict):
                stack.append((child, path))
    return found
