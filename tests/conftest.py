from __future__ import annotations

import sys
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"


def pytest_configure() -> None:
    # Tests import `injectors`, `gtm_utils` and `exporters` the way the CLI scripts do.
    if str(SRC_ROOT) not in sys.path:
        sys.path.insert(0, str(SRC_ROOT))
