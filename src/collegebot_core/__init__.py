"""Conversation-to-knowledge enrichment pipeline for college planning."""

__version__ = "0.1.0"
