"""Command-line client for querying LLM providers."""

__version__ = "0.1.0"
