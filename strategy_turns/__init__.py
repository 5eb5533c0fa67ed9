"""Turn-based multi-nation strategy engine with LLM-facing management tools."""

__version__ = "0.1.0"
