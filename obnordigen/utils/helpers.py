"""Utility functions for obnordigen."""

import os
from datetime import datetime, timezone
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the obnordigen data directory (~/.obnordigen, or $OBNORDIGEN_HOME)."""
    override = os.environ.get("OBNORDIGEN_HOME")
    if override:
        return ensure_dir(Path(override).expanduser())
    return ensure_dir(Path.home() / ".obnordigen")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp as sent by the API or stored on disk.

    Naive values are taken to be UTC.
    """
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
