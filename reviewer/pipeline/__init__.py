"""Review pipeline stages.

Control flow:
    extract → build_prompt → (LLM call) → parse_feedback → resolve → dispatch

Every stage is a pure transformation except the dispatcher (remote comments)
and the fixer (mutates the node it is handed).
"""

from .extractor import extract
from .prompt_builder import build_prompt, resolve_categories
from .feedback_parser import parse_feedback, summarize
from .node_resolver import build_live_index, resolve
from .dispatcher import dispatch

__all__ = [
    "extract",
    "build_prompt",
    "resolve_categories",
    "parse_feedback",
    "summarize",
    "build_live_index",
    "resolve",
    "dispatch",
]
