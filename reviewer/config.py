"""Reviewer configuration constants: single source of truth for all env vars."""

import os

# Server binding: used by entrypoint / uvicorn
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Figma REST API: Personal Access Token for design file access
FIGMA_TOKEN = os.getenv("FIGMA_TOKEN", "")

# LLM gateway (OpenAI-compatible chat completions endpoint)
LLM_API_KEY = os.getenv("LLM_API_KEY", "")
LLM_API_URL = os.getenv("LLM_API_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")

# Model used when the settings store has no selection
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "google/gemini-2.5-flash")
