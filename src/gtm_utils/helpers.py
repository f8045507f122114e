"""Shared helpers for the snippet exporters."""

from pathlib import Path


def ensure_output_directory(path: str) -> None:
    """Create the parent directory of an output file if needed."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
