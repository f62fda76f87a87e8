"""
Each public package must import cleanly on its own, in a fresh interpreter,
without relying on another package having been loaded first.
"""

import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.mark.parametrize(
    "module",
    [
        "questline.modules.quests",
        "questline.core.logging",
        "questline.core.config",
        "questline.core.event",
        "questline.core.database",
        "questline.core.validation",
        "questline.modules.shared",
    ],
)
def test_package_imports_in_fresh_interpreter(module):
    completed = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert completed.returncode == 0, completed.stderr
