"""Presentation: JSON envelopes and terminal text."""
