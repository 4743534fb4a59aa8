"""Core data types shared by the review pipeline stages.

DesignNode is a normalized view of one Figma node. The raw REST payload
exposes different optional fields per node type; the capability checks
(``has_fill``, ``has_layout``, ``is_text_bearing``, ``is_container``) replace
ad hoc key-presence tests on the raw dict.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

# Node types that act as containers for contextual promotion / comments
CONTAINER_TYPES = frozenset({"FRAME", "COMPONENT", "INSTANCE", "GROUP"})
# Ancestor types a leaf is promoted to (GROUP is not a promotion target)
PROMOTION_TYPES = frozenset({"FRAME", "COMPONENT", "INSTANCE"})
# Node types that carry fills / corner radius
FILL_TYPES = frozenset({
    "FRAME", "COMPONENT", "COMPONENT_SET", "INSTANCE", "RECTANGLE", "ELLIPSE",
    "POLYGON", "STAR", "VECTOR", "TEXT", "SECTION",
})
# Node types that support auto-layout (padding, spacing, axis alignment)
LAYOUT_TYPES = frozenset({"FRAME", "COMPONENT", "COMPONENT_SET", "INSTANCE"})
# Node types that accept corner radius
RADIUS_TYPES = frozenset({
    "FRAME", "COMPONENT", "COMPONENT_SET", "INSTANCE", "RECTANGLE",
})


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Baseline categories used when neither the request nor the free text names any
DEFAULT_CATEGORIES = ["ux", "ui", "consistency", "improvement"]


@dataclass
class DesignNode:
    """Normalized view of one design element."""

    id: str
    name: str
    type: str
    path: str = ""
    visible: bool = True
    text: Optional[str] = None

    # Geometry / style: used by the edit path only
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    opacity: Optional[float] = None
    fills: List[Dict[str, Any]] = field(default_factory=list)
    corner_radius: Optional[float] = None
    padding_left: Optional[float] = None
    padding_right: Optional[float] = None
    padding_top: Optional[float] = None
    padding_bottom: Optional[float] = None
    item_spacing: Optional[float] = None
    layout_mode: Optional[str] = None
    primary_axis_align: Optional[str] = None
    counter_axis_align: Optional[str] = None
    font_size: Optional[float] = None

    @property
    def is_text_bearing(self) -> bool:
        return self.type == "TEXT" and bool(self.text)

    @property
    def has_fill(self) -> bool:
        return self.type in FILL_TYPES

    @property
    def has_layout(self) -> bool:
        return self.type in LAYOUT_TYPES

    @property
    def has_corner_radius(self) -> bool:
        return self.type in RADIUS_TYPES

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_TYPES

    @classmethod
    def from_figma(cls, raw: Dict[str, Any], path: str = "") -> "DesignNode":
        """Build a DesignNode from a raw Figma REST node dict."""
        node_type = raw.get("type", "")
        bbox = raw.get("absoluteBoundingBox") or {}
        style = raw.get("style") or {}

        text = None
        if node_type == "TEXT":
            chars = raw.get("characters") or ""
            if chars:
                text = chars

        return cls(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            type=node_type,
            path=path or raw.get("name", ""),
            visible=raw.get("visible", True) is not False,
            text=text,
            x=bbox.get("x"),
            y=bbox.get("y"),
            width=bbox.get("width"),
            height=bbox.get("height"),
            opacity=raw.get("opacity"),
            fills=list(raw.get("fills") or []),
            corner_radius=raw.get("cornerRadius"),
            padding_left=raw.get("paddingLeft"),
            padding_right=raw.get("paddingRight"),
            padding_top=raw.get("paddingTop"),
            padding_bottom=raw.get("paddingBottom"),
            item_spacing=raw.get("itemSpacing"),
            layout_mode=raw.get("layoutMode"),
            primary_axis_align=raw.get("primaryAxisAlignItems"),
            counter_axis_align=raw.get("counterAxisAlignItems"),
            font_size=style.get("fontSize", raw.get("fontSize")),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Analysis-path descriptor: id, name, type, path and text only."""
        entry: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "path": self.path,
        }
        if self.text:
            entry["text"] = self.text
        return entry


@dataclass
class CanvasPayload:
    """Bounded, prioritized flat node list sent to the LLM."""

    name: str
    nodes: List[DesignNode] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "nodes": [n.to_payload() for n in self.nodes],
        }


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class FeedbackItem:
    """One normalized review finding."""

    id: str
    category: str
    title: str
    description: str
    severity: str
    location: Optional[str] = None
    node_id: Optional[str] = None
    suggestion: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = (
        "id", "category", "title", "description", "severity",
        "location", "nodeId", "suggestion",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedbackItem":
        node_id = data.get("nodeId", data.get("node_id"))
        return cls(
            id=str(data.get("id") or ""),
            category=str(data.get("category") or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            severity=str(data.get("severity") or Severity.MEDIUM.value),
            location=_optional_str(data.get("location")),
            node_id=_optional_str(node_id),
            suggestion=_optional_str(data.get("suggestion")),
            extra={
                k: v for k, v in data.items()
                if k not in cls._KNOWN_KEYS and k != "node_id"
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
        })
        if self.location is not None:
            data["location"] = self.location
        if self.node_id is not None:
            data["nodeId"] = self.node_id
        if self.suggestion is not None:
            data["suggestion"] = self.suggestion
        return data


@dataclass
class ResolvedTarget:
    """Best-guess live node to anchor a comment or edit."""

    node_id: str
    node_name: str
    node_type: str
    tier: str = ""  # which resolution tier produced it (for logs/tests)


@dataclass
class LiveIndex:
    """Lookup tables over every node of one document snapshot."""

    all_ids: Set[str] = field(default_factory=set)
    order: List[str] = field(default_factory=list)  # depth-first pre-order
    name_of: Dict[str, str] = field(default_factory=dict)
    type_of: Dict[str, str] = field(default_factory=dict)
    parent_of: Dict[str, Optional[str]] = field(default_factory=dict)
    root_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self.order)

    def target(self, node_id: str, tier: str = "") -> ResolvedTarget:
        return ResolvedTarget(
            node_id=node_id,
            node_name=self.name_of.get(node_id, ""),
            node_type=self.type_of.get(node_id, ""),
            tier=tier,
        )


def synthesize_feedback_id(index: int, now_ms: Optional[int] = None) -> str:
    """``feedback-<ordinal>-<epoch ms>``; model-supplied ids are never trusted."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"feedback-{index}-{now_ms}"
