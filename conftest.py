"""
Root conftest.py for memberlock tests.

This file contains pytest configuration and plugins that apply to the entire test suite.
"""

# Pytest plugins configuration
pytest_plugins = ["pytest_asyncio"]
