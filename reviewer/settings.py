"""Reviewer runtime settings: tunable parameters for pipeline execution.

All values read from environment variables with defaults. Import from here
instead of hardcoding.

Infrastructure config (API host, tokens, gateway URL) stays in
reviewer/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


# =====================================================================
# Tree extraction
# =====================================================================

# Max nodes sent to the LLM (text nodes first)
REVIEW_MAX_NODES = _int("REVIEW_MAX_NODES", 300)

# Max recursion depth when flattening the node tree
REVIEW_MAX_DEPTH = _int("REVIEW_MAX_DEPTH", 10)


# =====================================================================
# Node resolution / comment placement
# =====================================================================

# Max parent hops when promoting a leaf to its enclosing frame
RESOLVER_MAX_PARENT_HOPS = _int("RESOLVER_MAX_PARENT_HOPS", 10)

# Delay between comment posts (seconds) to respect Figma rate limits
COMMENT_POST_DELAY = _float("COMMENT_POST_DELAY", 0.3)

# Comment offset step (px) for comments sharing a target / overall stacking
COMMENT_OFFSET_STEP_X = _float("COMMENT_OFFSET_STEP_X", 40.0)
COMMENT_OFFSET_STEP_Y = _float("COMMENT_OFFSET_STEP_Y", 24.0)


# =====================================================================
# HTTP retry policy (Figma + LLM)
# =====================================================================

HTTP_MAX_RETRIES = _int("HTTP_MAX_RETRIES", 3)
HTTP_RETRY_BASE_DELAY = _float("HTTP_RETRY_BASE_DELAY", 1.0)

# Cap for rate-limit backoff (seconds)
HTTP_RATE_LIMIT_MAX_DELAY = _float("HTTP_RATE_LIMIT_MAX_DELAY", 10.0)

# Cap for network-error backoff (seconds)
HTTP_NETWORK_MAX_DELAY = _float("HTTP_NETWORK_MAX_DELAY", 5.0)


# =====================================================================
# LLM
# =====================================================================

LLM_MAX_TOKENS = _int("LLM_MAX_TOKENS", 16000)
LLM_PLUGIN_MAX_TOKENS = _int("LLM_PLUGIN_MAX_TOKENS", 8000)
LLM_SOLUTIONS_TEMPERATURE = _float("LLM_SOLUTIONS_TEMPERATURE", 0.7)
LLM_HTTP_TIMEOUT = _float("LLM_HTTP_TIMEOUT", 180.0)

FIGMA_HTTP_TIMEOUT = _float("FIGMA_HTTP_TIMEOUT", 60.0)
