"""
Unit tests for the memberlock engine.

This package contains unit tests that test individual components in isolation.
Unit tests run against the in-memory collaborators and need no external services.
"""
