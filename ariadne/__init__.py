"""Storage backends and policy-checked tools for LLM agents."""

__version__ = "0.1.0"