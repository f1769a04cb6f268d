import sys
from pathlib import Path

import pytest

# Add repo root to path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from mandelzoom.colormaps import get_palette
from mandelzoom.viewport import Viewport


@pytest.fixture
def small_viewport():
    """A small, non-square view of the whole set."""
    return Viewport.default(48, 32)


@pytest.fixture
def scenario_viewport():
    """The 4x4 overview used in the end-to-end checks."""
    return Viewport(-2.25, 0.75, -1.5, 1.5, 4, 4)


@pytest.fixture
def classic_table():
    return get_palette("Classic", mode="discrete")


@pytest.fixture
def classic_stops():
    return get_palette("Classic", mode="gradient")
