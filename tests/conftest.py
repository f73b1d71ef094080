from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "spellvault" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch):
    """Keep SPELLVAULT_* settings from the developer shell out of tests."""
    import os

    for k in list(os.environ):
        if k.startswith("SPELLVAULT_"):
            monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("SPELLVAULT_MODE", "test")

    from spellvault.runtime import metrics

    metrics.reset()
    yield
