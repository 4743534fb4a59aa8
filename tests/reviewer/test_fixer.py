"""Tests for the auto-fix path: value extractors and apply_fix."""

from __future__ import annotations

import pytest

from reviewer.pipeline.fixer import apply_fix, plan_fix
from reviewer.pipeline.models import DesignNode, FeedbackItem
from reviewer.pipeline.value_extractors import (
    DECREASE_FACTOR,
    INCREASE_FACTOR,
    extract_color,
    extract_design_values,
    extract_direction,
    extract_intent,
    extract_visibility,
    hex_to_figma_color,
)


def _item(suggestion=None, description="", node_id="1:1"):
    return FeedbackItem(
        id="feedback-0-1",
        category="ui",
        title="t",
        description=description,
        severity="medium",
        node_id=node_id,
        suggestion=suggestion,
    )


@pytest.fixture
def frame():
    return DesignNode(
        id="1:1", name="Card", type="FRAME",
        padding_left=8, padding_right=8, padding_top=8, padding_bottom=8,
        item_spacing=12, corner_radius=4, width=320, height=200,
    )


@pytest.fixture
def label():
    return DesignNode(id="1:4", name="Label", type="TEXT", text="Sign In", font_size=14)


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


class TestColorExtraction:

    @pytest.mark.parametrize("text, expected", [
        ("Change the background to #1A73E8", "#1A73E8"),
        ("Use #abc for the border", "#AABBCC"),
        ("Use rgb(255, 0, 128) for the badge", "#FF0080"),
        ("Make it white", "#FFFFFF"),
        ("Change it to grey", "#808080"),
        ("Improve the hierarchy", None),
        (None, None),
    ])
    def test_extract_color(self, text, expected):
        assert extract_color(text) == expected

    def test_hex_to_figma_color(self):
        assert hex_to_figma_color("#FF0000") == {"r": 1.0, "g": 0.0, "b": 0.0, "a": 1.0}
        assert hex_to_figma_color("#00000080")["a"] == round(128 / 255, 4)


class TestDesignValues:

    @pytest.mark.parametrize("text, expected", [
        ("Increase the padding to 16px", {"padding": 16.0}),
        ("Add 24px of spacing between items", {"item_spacing": 24.0}),
        ("Use a corner radius of 8px", {"corner_radius": 8.0}),
        ("Set opacity to 50%", {"opacity": 0.5}),
        ("Set opacity to 0.6", {"opacity": 0.6}),
        ("Increase the font size to 16px", {"font_size": 16.0}),
        ("Set the width to 320px", {"width": 320.0}),
        ("Make the touch target at least 44px", {"height": 44.0}),
        ("Increase inner spacing to 20px", {"padding": 20.0}),
        ("Increase font size from 12px to 16px", {"font_size": 16.0}),
        ("Change the padding from 8px to 12px", {"padding": 12.0}),
        ("Set the line height to 24px", {}),
        ("Add letter spacing of 2px", {}),
        ("Use a font weight of 600", {}),
        ("Looks great", {}),
    ])
    def test_extract_design_values(self, text, expected):
        assert extract_design_values(text) == expected


class TestVisibilityAndIntent:

    @pytest.mark.parametrize("text, expected", [
        ("Hide this layer on mobile", False),
        ("Remove this layer", False),
        ("Make it visible again", True),
        ("Unhide the helper text", True),
        ("Remove the extra padding", None),
    ])
    def test_extract_visibility(self, text, expected):
        assert extract_visibility(text) is expected

    def test_direction(self):
        assert extract_direction("Make the title larger") == INCREASE_FACTOR
        assert extract_direction("Make it smaller") == DECREASE_FACTOR
        assert extract_direction("Align it left") is None

    def test_first_intensifier_wins(self):
        assert extract_direction("Reduce clutter so the CTA looks bigger") == DECREASE_FACTOR

    def test_intent_for_mentioned_property(self):
        assert extract_intent("Increase the padding") == {"padding": INCREASE_FACTOR}

    def test_intent_ignores_property_with_absolute_value(self):
        assert extract_intent("Increase the padding to 16px") == {}


# ---------------------------------------------------------------------------
# apply_fix
# ---------------------------------------------------------------------------


class TestApplyFix:

    def test_absolute_padding(self, frame):
        result = apply_fix(_item("Increase the padding to 16px"), frame)
        assert result.applied == {
            "paddingLeft": 16.0, "paddingRight": 16.0,
            "paddingTop": 16.0, "paddingBottom": 16.0,
        }
        assert frame.padding_top == 16.0
        assert result.action == "edited"

    def test_relative_radius(self, frame):
        result = apply_fix(_item("Reduce the corner radius"), frame)
        assert result.applied == {"cornerRadius": 3.2}
        assert frame.corner_radius == 3.2

    def test_bare_intensifier_scales_font(self, label):
        result = apply_fix(_item("Make the label bigger"), label)
        assert result.applied == {"fontSize": 17.5}

    def test_bare_intensifier_scales_box(self, frame):
        result = apply_fix(_item("Make this card smaller"), frame)
        assert result.applied == {"width": 256.0, "height": 160.0}

    def test_fill_color(self):
        rect = DesignNode(id="2:1", name="Badge", type="RECTANGLE")
        result = apply_fix(_item("Change the color to #FF0000"), rect)
        assert rect.fills == [{"type": "SOLID", "color": {"r": 1.0, "g": 0.0, "b": 0.0, "a": 1.0}}]
        assert "fills" in result.applied

    def test_hide(self, frame):
        result = apply_fix(_item("Hide this layer"), frame)
        assert result.applied == {"visible": False}
        assert frame.visible is False

    def test_opacity_clamped(self, frame):
        frame.opacity = 0.9
        result = apply_fix(_item("Increase the opacity"), frame)
        assert result.applied == {"opacity": 1.0}

    @pytest.mark.parametrize("suggestion", [
        "Set the line height to 24px",
        "Add letter spacing of 2px",
        "Increase the line height",
    ])
    def test_unlisted_properties_leave_frame_alone(self, frame, suggestion):
        result = apply_fix(_item(suggestion), frame)
        assert result.applied == {}
        assert (frame.width, frame.height, frame.item_spacing) == (320, 200, 12)
        assert result.needs_manual_edit

    def test_unsupported_property_skipped(self, label):
        result = apply_fix(_item("Increase padding to 16px"), label)
        assert result.applied == {}
        assert result.skipped == ["padding"]
        assert result.needs_manual_edit
        assert result.action == "select"

    def test_unknown_current_value_skipped(self):
        node = DesignNode(id="3:1", name="Row", type="FRAME")
        result = apply_fix(_item("Increase the padding"), node)
        assert result.skipped == ["padding"]
        assert result.needs_manual_edit

    def test_nothing_structured_selects_node(self, frame):
        result = apply_fix(_item("Consider rethinking this flow"), frame)
        assert result.needs_manual_edit
        assert result.to_dict() == {"nodeId": "1:1", "action": "select", "applied": {}, "skipped": []}

    def test_description_used_without_suggestion(self, frame):
        result = apply_fix(_item(None, description="Set the item spacing to 20px"), frame)
        assert result.applied == {"itemSpacing": 20.0}

    def test_plan_prefers_absolute_over_intent(self, frame):
        plan = plan_fix("Increase the padding to 24px", frame)
        assert plan == {"padding": ("set", 24.0)}
