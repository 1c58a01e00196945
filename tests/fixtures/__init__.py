"""Shared test fixtures for gobuildkit tests."""
