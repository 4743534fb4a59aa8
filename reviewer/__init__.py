"""Design review pipeline package.

Subpackages:
- pipeline: Tree extraction, prompt building, feedback parsing, node resolution,
  comment dispatch and auto-fix
- integrations: External clients (Figma REST API, LLM chat completions)
"""
