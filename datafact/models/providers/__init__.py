"""Text-generation providers."""
