from __future__ import annotations

import pytest


@pytest.fixture
def meal_bytes() -> bytes:
    return b"bread=baguette&cheese=comt%C3%A9&meat=ham&fat=butter"


@pytest.fixture
def meal_pairs() -> list:
    return [
        ("bread", "baguette"),
        ("cheese", "comté"),
        ("meat", "ham"),
        ("fat", "butter"),
    ]
