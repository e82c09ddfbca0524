"""Shared helpers for the test suite."""

from datetime import datetime, timezone


def utc(*args) -> datetime:
    """Aware UTC datetime from positional datetime() arguments."""
    return datetime(*args, tzinfo=timezone.utc)
