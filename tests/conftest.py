"""
Shared test fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src and the tests folder to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from matrix_hopper.fonts import DEFAULT_FONT_PATH, BdfFont, FontLoader


@pytest.fixture(scope="session")
def font() -> BdfFont:
    return BdfFont.load(DEFAULT_FONT_PATH)


@pytest.fixture
def font_loader(font) -> FontLoader:
    return FontLoader.preloaded(font)
