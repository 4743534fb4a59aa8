"""Prompt Builder: CanvasPayload + categories to a system/user prompt pair.

The user prompt serializes the payload with node-id rules, restricts the
model to the effective category set, sets per-category volume targets and
appends category-specific elaboration blocks.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .models import DEFAULT_CATEGORIES, CanvasPayload

logger = logging.getLogger(__name__)

# Free-text phrase that introduces a comma-separated category list
CATEGORY_TRIGGER = "Provide me feedback on the following areas:"

# UI label (lowercase) → category id
CATEGORY_LABELS: Dict[str, str] = {
    "consistency across flows regarding ui": "consistency",
    "ux review": "ux",
    "ui review": "ui",
    "accessibility issues": "accessibility",
    "design system adherence": "design_system",
    "typos & inconsistent ux writing": "ux_writing",
    "high level review about and the why? questioning the basics.": "high_level",
}

# Per-category item target and the overall budget the balance hint divides
ITEMS_PER_CATEGORY = (8, 12)
TOTAL_ITEMS_TARGET = 80

_SENTENCE_END_RE = re.compile(r"\. For each issue|\.$")


SYSTEM_PROMPT = (
    "You are an expert UX/UI designer providing professional design feedback. "
    "CRITICAL: You MUST respond with ONLY a valid JSON array, no other text. "
    "Do not include markdown code blocks, explanations, or any text outside the "
    "JSON array. Start your response with [ and end with ]."
)

PLUGIN_SYSTEM_PROMPT = """\
You are an expert UX/UI designer providing professional design feedback.
You are analyzing design data extracted directly from a Figma plugin.
CRITICAL: You MUST respond with ONLY a valid JSON array, no other text.
Do not include markdown code blocks, explanations, or any text outside the JSON array.
Start your response with [ and end with ]."""

SOLUTIONS_SYSTEM_PROMPT = (
    "You are a UX/UI design expert providing actionable solutions for design "
    "issues. Always respond with valid JSON only."
)

BASE_CONTEXT_TEMPLATE = """\
I am a UI UX designer who lacks attention to details and makes mistakes. \
You are a UX/UI expert, my manager and my reviewer, analyzing my Figma designs. \
Analyze the following design data and provide detailed feedback.

Design Structure (complete node hierarchy with IDs - USE THESE EXACT IDs):
{payload}

CRITICAL NODE ID INSTRUCTIONS:
- You MUST use the EXACT node IDs from the list above, copied verbatim
- Choose the MOST SPECIFIC (deepest) node ID for each piece of feedback
- For a button issue, use the button's node ID, NOT its parent frame
- For a text issue, use the text layer's node ID, NOT the containing group
- The more specific the node, the better the comment placement will be

Example: If you're giving feedback about a "Login Button", find the exact node \
ID for that button in the structure above (e.g., "123:456"), not the page frame \
(e.g., "9:1")."""

DEFAULT_REQUEST = """\
Provide feedback in the following categories:
1. UX Issues - Navigation flows, user interactions, usability problems
2. UI Issues - Visual design, typography, spacing, color usage
3. Consistency Issues - Design pattern violations, inconsistent components
4. Improvement Suggestions - Ways to enhance the design"""

CONSISTENCY_BLOCK = """
SPECIAL INSTRUCTIONS FOR CONSISTENCY REVIEW:
- Compare ALL screens/pages/flows for inconsistent patterns
- Look for text variations across similar elements (e.g., "Send Money" vs "Send Money2", "Sign In" vs "Login")
- Check for inconsistent heading styles, button labels, spacing, and component usage
- Identify any naming inconsistencies that appear to be mistakes or typos
- Compare similar UI patterns across different screens for visual consistency
- Flag ALL instances where the same element has different names, styles, or behaviors across screens
"""

UX_WRITING_BLOCK = """
SPECIAL INSTRUCTIONS FOR UX WRITING REVIEW:
- Scan ALL text content in the design thoroughly
- Check EVERY button label, heading, paragraph, placeholder text, and microcopy
- Look for typos, spelling errors, grammatical mistakes, and inconsistent capitalization
- Identify inconsistent terminology (e.g., "Sign In" vs "Login" vs "Log In")
- Flag ALL instances of poor UX writing, no matter how minor
- Be comprehensive - don't skip any text elements
"""


@dataclass
class PromptPair:
    """System + user prompt and the category set they constrain the model to."""

    system: str
    user: str
    allowed_categories: List[str] = field(default_factory=list)


def _label_to_id(label: str) -> str:
    # The sentence-boundary split can eat a label's own trailing period
    return CATEGORY_LABELS.get(label) or CATEGORY_LABELS.get(label + ".") or label


def parse_category_labels(free_text: str) -> Optional[List[str]]:
    """Parse the category list that follows CATEGORY_TRIGGER in free text.

    Returns None when the trigger phrase is absent.
    """
    if not free_text or CATEGORY_TRIGGER not in free_text:
        return None

    areas_text = free_text.split(CATEGORY_TRIGGER, 1)[1]
    categories_only = _SENTENCE_END_RE.split(areas_text, maxsplit=1)[0]
    labels = [s.strip() for s in categories_only.lower().split(",")]
    return [_label_to_id(label) for label in labels if label]


def resolve_categories(
    free_text: Optional[str] = None,
    requested: Optional[Iterable[str]] = None,
) -> List[str]:
    """Effective category set: free-text trigger > explicit request > baseline."""
    parsed = parse_category_labels(free_text or "")
    if parsed:
        logger.info("resolve_categories: from free text → %s", parsed)
        return parsed

    explicit = [c.strip() for c in (requested or []) if c and c.strip()]
    if explicit:
        return [CATEGORY_LABELS.get(c.lower(), c) for c in explicit]

    return list(DEFAULT_CATEGORIES)


def _format_instructions(categories: List[str], include_suggestions: bool) -> str:
    category_options = " | ".join(f'"{c}"' for c in categories)
    category_list = ", ".join(categories)
    low, high = ITEMS_PER_CATEGORY
    per_category = TOTAL_ITEMS_TARGET // max(1, len(categories))

    suggestion_clause = (
        " AND specific actionable suggestions on how to fix it" if include_suggestions else ""
    )
    suggestion_field = (
        ',\n  "suggestion": "Concrete fix with values where possible '
        '(e.g. \'Increase padding to 16px\', \'Change color to #1A73E8\')"'
        if include_suggestions else ""
    )

    parts = [
        "",
        "For each issue found, provide:",
        "- A clear, actionable title (NO technical IDs or brackets - keep it human-readable)",
        f"- Detailed description of the issue{suggestion_clause} (NO technical IDs in the description)",
        "- Severity (low, medium, high)",
        "- The EXACT node ID from the structure above for the specific element this feedback applies to",
        "- Component/frame name (user-friendly name only, NO technical IDs like \"9:123\" - "
        "use descriptive names like \"Login Button\" or \"Header Navigation\")",
        "",
        f"CRITICAL CATEGORY RESTRICTION: You MUST ONLY provide feedback for these categories: {category_list}",
        f"Do NOT provide feedback for any other categories. Only use these exact category values: {category_options}",
        "",
        "CRITICAL BALANCE REQUIREMENT: You MUST provide feedback EVENLY distributed across ALL requested categories.",
        f"- Provide {low}-{high} feedback items for EACH category requested",
        "- Do NOT skip any category",
        "- Do NOT heavily favor one category over others",
        f"- If analyzing {len(categories)} categories, aim for approximately {per_category} items per category",
        "",
        "Format your response as a JSON array of feedback items with this structure:",
        "[{",
        f"  \"category\": {category_options},",
        "  \"title\": \"Issue title (clean, no IDs)\",",
        "  \"description\": \"Detailed description"
        + (" with specific suggestions" if include_suggestions else "")
        + " (clean, no IDs)\",",
        "  \"severity\": \"low\" | \"medium\" | \"high\",",
        "  \"location\": \"User-friendly component name (e.g., 'Login Button', 'Navigation Bar')\",",
        f"  \"nodeId\": \"exact_node_id_from_structure\"{suggestion_field}",
        "}]",
        "",
        "CRITICAL:",
        "- NEVER include technical IDs like [123:456] or (9:123) in title, description or location",
        "- Always include the nodeId field with the exact ID from the design structure for technical purposes",
        "- For the location field, use ONLY user-friendly, descriptive names - NO technical node IDs",
        "- Keep all user-facing text clean and readable",
        f"- ONLY provide feedback for the requested categories: {category_list}",
    ]
    if include_suggestions:
        parts.append("- For EACH issue, include specific, actionable suggestions on how to fix it")
    parts.extend([
        "- Example good title: \"Improve button contrast for accessibility\"",
        "- Example bad title: \"Improve button [123:456] contrast for accessibility\"",
    ])

    if "consistency" in categories:
        parts.append(CONSISTENCY_BLOCK)
    if "ux_writing" in categories:
        parts.append(UX_WRITING_BLOCK)

    parts.append(
        "Provide comprehensive feedback with NO HARD LIMIT on total items. "
        "Focus on thoroughness and balance across categories:"
    )
    parts.extend(f"- {c}: Provide {low}-{high} detailed, actionable insights" for c in categories)
    if "ux_writing" in categories:
        parts.append("- For UX writing reviews, be THOROUGH and catch ALL text issues including minor typos.")
    if "consistency" in categories:
        parts.append("- For consistency reviews, compare across ALL screens and flows to catch variations and inconsistencies.")
    parts.append(
        "Ensure EVERY requested category has substantial feedback. "
        "Do not skip or under-represent any category."
    )
    return "\n".join(parts)


def build_prompt(
    payload: CanvasPayload,
    allowed_categories: Optional[Iterable[str]] = None,
    include_suggestions: bool = True,
    free_text: Optional[str] = None,
) -> PromptPair:
    """Assemble the system/user prompt pair for one analysis run."""
    categories = resolve_categories(free_text, allowed_categories)

    base_context = BASE_CONTEXT_TEMPLATE.format(
        payload=json.dumps(payload.to_dict(), indent=2, ensure_ascii=False),
    )
    request = (
        f"User's specific request: {free_text}" if free_text else DEFAULT_REQUEST
    )
    user = "\n\n".join([
        base_context,
        request,
    ]) + "\n" + _format_instructions(categories, include_suggestions)

    logger.info(
        "build_prompt: nodes=%d, categories=%s, suggestions=%s, prompt_chars=%d",
        len(payload.nodes), categories, include_suggestions, len(user),
    )
    return PromptPair(system=SYSTEM_PROMPT, user=user, allowed_categories=categories)


def build_plugin_prompt(design_data: Any, request_text: str) -> PromptPair:
    """Prompt for plugin-side analysis of raw selection data."""
    design_context = json.dumps(design_data, indent=2, ensure_ascii=False)
    user = f"""\
Analyze this Figma design structure and provide detailed feedback.

Design Data (extracted from Figma):
{design_context}

User's Request: {request_text}

For each issue found, provide feedback in this JSON format:
[{{
  "category": "ux" | "ui" | "consistency" | "accessibility" | "typography" | "ux_writing",
  "title": "Clear, actionable issue title",
  "description": "Detailed description with specific suggestions for improvement",
  "severity": "low" | "medium" | "high",
  "location": "Component or element name where the issue was found",
  "nodeId": "id of the element from the design data",
  "suggestion": "Concrete fix with values where possible"
}}]

Guidelines:
- Focus on actionable, specific feedback
- Reference actual element names from the design data
- Prioritize high-impact issues
- Include concrete suggestions for each issue
- Be thorough but concise
- Consider colors, spacing, typography, layout, and hierarchy
- Check for accessibility issues (contrast, touch targets, etc.)
- Look for inconsistencies in the design

Provide 5-15 feedback items based on the complexity of the design."""
    return PromptPair(
        system=PLUGIN_SYSTEM_PROMPT,
        user=user,
        allowed_categories=["ux", "ui", "consistency", "accessibility", "typography", "ux_writing"],
    )


def build_solutions_prompt(items: List[Dict[str, Any]]) -> PromptPair:
    """Prompt asking for a solution + implementation steps per feedback item."""
    summary = [
        {
            "title": item.get("title"),
            "description": item.get("description"),
            "category": item.get("category"),
            "severity": item.get("severity"),
            "location": item.get("location"),
        }
        for item in items
    ]
    user = f"""\
You are a UX/UI design expert. Below are design feedback items from a Figma file \
analysis. For each feedback item, provide:
1. A detailed solution explaining how to fix the issue
2. Step-by-step implementation instructions
3. Best practices to prevent similar issues

Feedback items:
{json.dumps(summary, indent=2, ensure_ascii=False)}

Respond with a JSON array where each object has:
- All original fields from the feedback item
- solution: A detailed explanation of how to fix the issue (2-3 sentences)
- implementation_steps: An array of 3-5 specific, actionable steps

Focus on practical, implementable solutions that improve user experience and design consistency."""
    return PromptPair(system=SOLUTIONS_SYSTEM_PROMPT, user=user)
