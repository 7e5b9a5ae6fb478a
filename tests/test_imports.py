"""Entry-point modules must import cleanly in a fresh interpreter."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"


@pytest.mark.parametrize(
    "module",
    [
        "tasktracker.repository",
        "tasktracker.app",
        "tasktracker.main",
        "tasktracker.tasks.service",
        "tasktracker.services.templates",
    ],
)
def test_module_imports_first(module: str) -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        part for part in (str(SRC_DIR), env.get("PYTHONPATH")) if part
    )

    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        text=True,
        env=env,
        check=False,
    )

    assert result.returncode == 0, result.stderr
