"""Test fixtures and shared test data."""
