from __future__ import annotations

from pathlib import Path

from gtm_utils.helpers import ensure_output_directory


def test_ensure_output_directory_creates_parent_path(tmp_path: Path) -> None:
    output_file = tmp_path / "nested" / "folder" / "snippets.json"
    ensure_output_directory(str(output_file))
    assert output_file.parent.exists()


def test_ensure_output_directory_tolerates_existing_parent(tmp_path: Path) -> None:
    output_file = tmp_path / "snippets.json"
    ensure_output_directory(str(output_file))
    ensure_output_directory(str(output_file))
    assert tmp_path.exists()
