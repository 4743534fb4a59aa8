"""Shared design-tree fixtures for the review pipeline tests."""

from __future__ import annotations

import copy
from typing import Any, Dict

import pytest

LOGIN_DOCUMENT: Dict[str, Any] = {
    "id": "0:0",
    "name": "Document",
    "type": "DOCUMENT",
    "children": [
        {
            "id": "0:1",
            "name": "Page 1",
            "type": "CANVAS",
            "children": [
                {
                    "id": "1:1",
                    "name": "Login Screen",
                    "type": "FRAME",
                    "paddingLeft": 8,
                    "paddingRight": 8,
                    "paddingTop": 8,
                    "paddingBottom": 8,
                    "itemSpacing": 12,
                    "cornerRadius": 4,
                    "layoutMode": "VERTICAL",
                    "absoluteBoundingBox": {"x": 0, "y": 0, "width": 375, "height": 812},
                    "children": [
                        {
                            "id": "1:2",
                            "name": "Title",
                            "type": "TEXT",
                            "characters": "Welcome back",
                            "style": {"fontSize": 20},
                            "absoluteBoundingBox": {"x": 16, "y": 40, "width": 200, "height": 24},
                        },
                        {
                            "id": "1:3",
                            "name": "Login Button",
                            "type": "INSTANCE",
                            "absoluteBoundingBox": {"x": 16, "y": 700, "width": 120, "height": 40},
                            "children": [
                                {
                                    "id": "1:4",
                                    "name": "Label",
                                    "type": "TEXT",
                                    "characters": "Sign In",
                                    "style": {"fontSize": 14},
                                },
                                {"id": "1:5", "name": "Icon", "type": "VECTOR"},
                            ],
                        },
                        {
                            "id": "1:6",
                            "name": "Hidden Banner",
                            "type": "FRAME",
                            "visible": False,
                            "children": [
                                {"id": "1:7", "name": "Promo", "type": "TEXT", "characters": "Sale"},
                            ],
                        },
                        {"id": "1:8", "name": "Ghost", "type": "RECTANGLE", "opacity": 0},
                        {
                            "id": "1:9",
                            "name": "Divider",
                            "type": "RECTANGLE",
                            "absoluteBoundingBox": {"x": 0, "y": 400, "width": 375, "height": 1},
                        },
                    ],
                },
            ],
        },
    ],
}


@pytest.fixture
def login_document() -> Dict[str, Any]:
    """Document → Page → Login Screen frame with text, instance, hidden and transparent layers."""
    return copy.deepcopy(LOGIN_DOCUMENT)


@pytest.fixture
def login_screen(login_document) -> Dict[str, Any]:
    """The Login Screen frame alone, as the plugin sends a selection."""
    return login_document["children"][0]["children"][0]
