"""Wrappers around external REST services."""
