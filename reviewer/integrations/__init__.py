"""External service clients (Figma REST, LLM gateway)."""
