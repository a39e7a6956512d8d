"""Persona-driven two-stage generation."""
