"""Proofpad — live writing suggestions from a LanguageTool server."""

__version__ = "0.1.0"
