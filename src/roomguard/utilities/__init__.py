"""Shared helpers for time handling, identifiers, and structured logging."""
