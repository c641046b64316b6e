"""Shared helpers for integer token arithmetic and input validation."""
