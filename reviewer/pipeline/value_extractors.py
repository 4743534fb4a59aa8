"""Best-effort extractors for natural-language fix suggestions.

Each extractor reads free text such as "Increase the padding to 16px and
change the background to #1A73E8" and returns whatever structured values it
can find. They never raise; an empty result means "nothing recognizable".

- extract_color:          hex / rgb() / basic color names → "#RRGGBB"
- extract_design_values:  absolute values per property (padding, radius, …)
- extract_visibility:     hide / show intent
- extract_intent:         relative scale factors ("larger", "reduce", …)
"""

from __future__ import annotations

import re
from typing import Dict, Optional

# Scale applied for relative intents when no absolute value is given
INCREASE_FACTOR = 1.25
DECREASE_FACTOR = 0.8

_NUM = r"(?P<num>\d+(?:\.\d+)?)\s*(?P<unit>px|pt|%|percent)?"

# property → keyword alternation (longest phrases first)
PROPERTY_KEYWORDS: Dict[str, str] = {
    "padding": r"padding|inner spacing|internal spacing",
    "item_spacing": r"item spacing|space between|(?<!letter )(?<!line )spacing|gap",
    "corner_radius": r"corner radius|border radius|rounded corners|radius|corners",
    "opacity": r"opacity|transparency",
    "font_size": r"font size|font-size|text size|type size|font(?![ -](?:weight|family|style))",
    "width": r"width",
    "height": r"(?<!line )(?<!line-)height|touch target",
}

_INCREASE_WORDS = r"increase|increasing|larger|bigger|more|raise|enlarge|grow|expand|taller|wider|bolder"
_DECREASE_WORDS = r"decrease|decreasing|smaller|less|reduce|reducing|shrink|lower|tighten|narrower|shorter"

_INCREASE_RE = re.compile(rf"\b(?:{_INCREASE_WORDS})\b", re.IGNORECASE)
_DECREASE_RE = re.compile(rf"\b(?:{_DECREASE_WORDS})\b", re.IGNORECASE)

_HIDE_RE = re.compile(
    r"\b(?:hide|make (?:it |this )?invisible|set visibility to false|remove (?:this|the) (?:layer|element))\b",
    re.IGNORECASE,
)
_SHOW_RE = re.compile(r"\b(?:unhide|make (?:it |this )?visible|set visibility to true)\b", re.IGNORECASE)

# Properties the fixer cannot edit; naming one rules out the bare size fallback
_UNSUPPORTED_PROPERTY_RE = re.compile(
    r"\b(?:line[ -]height|letter[ -]spacing|font[ -]weight|font[ -]family|font[ -]style)\b",
    re.IGNORECASE,
)

_HEX_RE = re.compile(r"#(?P<hex>[0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})\b")
_RGB_RE = re.compile(
    r"rgba?\(\s*(?P<r>\d{1,3})\s*,\s*(?P<g>\d{1,3})\s*,\s*(?P<b>\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)",
    re.IGNORECASE,
)

NAMED_COLORS: Dict[str, str] = {
    "white": "#FFFFFF",
    "black": "#000000",
    "red": "#FF0000",
    "green": "#008000",
    "blue": "#0000FF",
    "gray": "#808080",
    "grey": "#808080",
    "yellow": "#FFFF00",
    "orange": "#FFA500",
    "purple": "#800080",
}
_NAMED_COLOR_RE = re.compile(
    r"\b(?:to|use|with|make it|change (?:it )?to)\s+(?P<name>" + "|".join(NAMED_COLORS) + r")\b",
    re.IGNORECASE,
)


def _keyword_value_patterns(keywords: str):
    # "font size from 12px to 16px": the target value, not the current one
    change = re.compile(
        rf"\b(?:{keywords})\b[^.\d#\n]{{0,30}}?\bfrom\s+\d+(?:\.\d+)?\s*(?:px|pt|%|percent)?\s+to\s+{_NUM}",
        re.IGNORECASE,
    )
    # "padding to 16px", "padding of 16", "padding: 16"
    forward = re.compile(
        rf"\b(?:{keywords})\b[^.\d#\n]{{0,30}}?{_NUM}",
        re.IGNORECASE,
    )
    # "16px padding", "24px of spacing"
    backward = re.compile(
        rf"{_NUM}\s+(?:of\s+)?(?:{keywords})\b",
        re.IGNORECASE,
    )
    return change, forward, backward


_PROPERTY_PATTERNS = {
    prop: _keyword_value_patterns(keywords)
    for prop, keywords in PROPERTY_KEYWORDS.items()
}
_PROPERTY_MENTION_RE = {
    prop: re.compile(rf"\b(?:{keywords})\b", re.IGNORECASE)
    for prop, keywords in PROPERTY_KEYWORDS.items()
}


def extract_color(text: Optional[str]) -> Optional[str]:
    """First color mentioned in the text as uppercase ``#RRGGBB``."""
    if not text:
        return None

    match = _HEX_RE.search(text)
    if match:
        hex_value = match.group("hex")
        if len(hex_value) == 3:
            hex_value = "".join(c * 2 for c in hex_value)
        return f"#{hex_value.upper()}"

    match = _RGB_RE.search(text)
    if match:
        r, g, b = (min(255, int(match.group(k))) for k in ("r", "g", "b"))
        return f"#{r:02X}{g:02X}{b:02X}"

    match = _NAMED_COLOR_RE.search(text)
    if match:
        return NAMED_COLORS[match.group("name").lower()]
    return None


def hex_to_figma_color(hex_color: str) -> Dict[str, float]:
    """Convert ``#RRGGBB`` / ``#RRGGBBAA`` to a Figma RGBA float dict."""
    value = hex_color.lstrip("#")
    r = int(value[0:2], 16) / 255
    g = int(value[2:4], 16) / 255
    b = int(value[4:6], 16) / 255
    a = int(value[6:8], 16) / 255 if len(value) >= 8 else 1.0
    return {"r": round(r, 4), "g": round(g, 4), "b": round(b, 4), "a": round(a, 4)}


def _to_number(prop: str, num: str, unit: Optional[str]) -> float:
    value = float(num)
    if prop == "opacity":
        if unit in ("%", "percent") or value > 1:
            value = value / 100
        value = max(0.0, min(1.0, value))
    return value


def extract_design_values(text: Optional[str]) -> Dict[str, float]:
    """Absolute numeric values per property found in the text."""
    values: Dict[str, float] = {}
    if not text:
        return values

    for prop, (change, forward, backward) in _PROPERTY_PATTERNS.items():
        match = change.search(text) or forward.search(text) or backward.search(text)
        if match:
            values[prop] = _to_number(prop, match.group("num"), match.group("unit"))

    # "spacing" also matches inside "inner spacing"; padding wins that phrase
    if "padding" in values and "item_spacing" in values:
        if not re.search(r"\b(?:item spacing|space between|gap)\b", text, re.IGNORECASE) and \
                re.search(r"\b(?:inner|internal) spacing\b", text, re.IGNORECASE):
            values.pop("item_spacing")
    return values


def extract_visibility(text: Optional[str]) -> Optional[bool]:
    """False for hide intent, True for show intent, None when not mentioned."""
    if not text:
        return None
    if _HIDE_RE.search(text):
        return False
    if _SHOW_RE.search(text):
        return True
    return None


def extract_direction(text: Optional[str]) -> Optional[float]:
    """Scale factor of the first intensifier in the text, None if there is none."""
    if not text:
        return None
    inc = _INCREASE_RE.search(text)
    dec = _DECREASE_RE.search(text)
    if inc and dec:
        return INCREASE_FACTOR if inc.start() < dec.start() else DECREASE_FACTOR
    if inc:
        return INCREASE_FACTOR
    if dec:
        return DECREASE_FACTOR
    return None


def extract_intent(text: Optional[str]) -> Dict[str, float]:
    """Relative scale factors for properties mentioned without a value.

    The first intensifier in the text sets the direction for every
    mentioned property.
    """
    factor = extract_direction(text)
    if factor is None:
        return {}

    absolute = extract_design_values(text)
    return {
        prop: factor
        for prop, mention in _PROPERTY_MENTION_RE.items()
        if prop not in absolute and mention.search(text)
    }


def mentions_unsupported_property(text: Optional[str]) -> bool:
    """True when the text names a property the fixer cannot edit (line height, …)."""
    return bool(text) and bool(_UNSUPPORTED_PROPERTY_RE.search(text))
