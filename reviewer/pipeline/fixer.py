"""Auto-fix: apply a feedback suggestion directly to a design node.

The suggestion text is mined with the best-effort extractors; whatever
subset of properties was mentioned AND is valid for the node's type gets
applied. When nothing applicable is found the node is handed back for
manual editing (the plugin selects and focuses it) instead of a silent no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .models import DesignNode, FeedbackItem
from .value_extractors import (
    extract_color,
    extract_design_values,
    extract_direction,
    extract_intent,
    extract_visibility,
    hex_to_figma_color,
    mentions_unsupported_property,
)

logger = logging.getLogger(__name__)

# property → capability check on the target node
PROPERTY_SUPPORT: Dict[str, Callable[[DesignNode], bool]] = {
    "padding": lambda n: n.has_layout,
    "item_spacing": lambda n: n.has_layout,
    "corner_radius": lambda n: n.has_corner_radius,
    "opacity": lambda n: True,
    "font_size": lambda n: n.type == "TEXT",
    "width": lambda n: True,
    "height": lambda n: True,
    "fill_color": lambda n: n.has_fill,
    "visible": lambda n: True,
}

_PADDING_ATTRS = ("padding_left", "padding_right", "padding_top", "padding_bottom")


@dataclass
class FixResult:
    """Outcome of applying one suggestion to one node.

    ``applied`` is keyed by Figma property names so the plugin side can
    replay it verbatim.
    """

    node_id: str
    applied: Dict[str, Any] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    needs_manual_edit: bool = False

    @property
    def action(self) -> str:
        return "select" if self.needs_manual_edit else "edited"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "action": self.action,
            "applied": self.applied,
            "skipped": self.skipped,
        }


def _current(node: DesignNode, prop: str) -> Optional[float]:
    if prop == "padding":
        present = [getattr(node, a) for a in _PADDING_ATTRS if getattr(node, a) is not None]
        return max(present) if present else None
    return getattr(node, prop, None)


def _set_numeric(node: DesignNode, prop: str, value: float, applied: Dict[str, Any]) -> None:
    value = round(value, 2)
    if prop == "padding":
        for attr in _PADDING_ATTRS:
            setattr(node, attr, value)
        applied.update({
            "paddingLeft": value, "paddingRight": value,
            "paddingTop": value, "paddingBottom": value,
        })
    elif prop == "item_spacing":
        node.item_spacing = value
        applied["itemSpacing"] = value
    elif prop == "corner_radius":
        node.corner_radius = value
        applied["cornerRadius"] = value
    elif prop == "opacity":
        value = max(0.0, min(1.0, value))
        node.opacity = value
        applied["opacity"] = value
    elif prop == "font_size":
        node.font_size = value
        applied["fontSize"] = value
    elif prop == "width":
        node.width = value
        applied["width"] = value
    elif prop == "height":
        node.height = value
        applied["height"] = value


def plan_fix(text: Optional[str], node: DesignNode) -> Dict[str, Any]:
    """Structured changes the text asks for, before type validation.

    Absolute values win over relative intents for the same property.
    """
    plan: Dict[str, Any] = {}
    if not text:
        return plan

    for prop, value in extract_design_values(text).items():
        plan[prop] = ("set", value)

    for prop, factor in extract_intent(text).items():
        plan.setdefault(prop, ("scale", factor))

    # "make it bigger" with no property named: scale the obvious size property
    if not plan and not mentions_unsupported_property(text):
        factor = extract_direction(text)
        if factor is not None:
            if node.type == "TEXT":
                plan["font_size"] = ("scale", factor)
            else:
                plan["width"] = ("scale", factor)
                plan["height"] = ("scale", factor)

    color = extract_color(text)
    if color:
        plan["fill_color"] = ("set", color)

    visible = extract_visibility(text)
    if visible is not None:
        plan["visible"] = ("set", visible)
    return plan


def apply_fix(item: FeedbackItem, node: DesignNode) -> FixResult:
    """Apply the item's suggestion (or, failing that, description) to ``node``."""
    text = item.suggestion or item.description
    plan = plan_fix(text, node)
    result = FixResult(node_id=node.id)

    for prop, (mode, value) in plan.items():
        if not PROPERTY_SUPPORT[prop](node):
            result.skipped.append(prop)
            continue

        if prop == "fill_color":
            color = hex_to_figma_color(value)
            node.fills = [{"type": "SOLID", "color": color}]
            result.applied["fills"] = node.fills
        elif prop == "visible":
            node.visible = value
            result.applied["visible"] = value
        elif mode == "scale":
            current = _current(node, prop)
            if current is None:
                result.skipped.append(prop)
                continue
            _set_numeric(node, prop, current * value, result.applied)
        else:
            _set_numeric(node, prop, value, result.applied)

    if not result.applied:
        result.needs_manual_edit = True
        logger.info(
            "apply_fix: nothing applicable for %s (%s), selecting for manual edit; skipped=%s",
            node.id, node.type, result.skipped,
        )
    else:
        logger.info("apply_fix: %s (%s) ← %s", node.id, node.type, sorted(result.applied))
    return result
