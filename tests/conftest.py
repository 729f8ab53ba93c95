from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Tests import `src.*` and `drivers.*` from the repo root without installing;
# `src/` itself is also importable because its modules import siblings flat.
REPO_ROOT = Path(__file__).resolve().parents[1]
for p in (REPO_ROOT, REPO_ROOT / "src"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


@pytest.fixture
def two_fiber_link() -> dict:
    """Two-fiber periodic link from the phi2pow usage notes."""
    return {
        "length_m": [1000.0, 800.0],
        "alpha_db_per_km": [0.2, 0.25],
        "gamma": [1.3e-3, 1.1e-3],
        "net_gain_db": [0.0, 0.0],
        "nspan": 10,
    }
