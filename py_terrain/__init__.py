"""Procedural terrain world generation."""
