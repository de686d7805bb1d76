"""Utilities: retry."""
