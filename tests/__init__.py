"""Test suite for memberlock."""
