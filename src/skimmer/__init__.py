"""Skimmer — stream LLM summaries of web articles and answer questions about them."""

__version__ = "0.1.0"
