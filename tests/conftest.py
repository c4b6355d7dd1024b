"""
Pytest configuration and fixtures for the match service tests.
"""

from __future__ import annotations

import pytest

from tests.fakes import FakeGemini, make_settings
from tupconnect.config import OutputShape, Settings


@pytest.fixture
def settings() -> Settings:
    """Object-shape settings with a test key and static models [m2, m3]."""
    return make_settings()


@pytest.fixture
def array_settings() -> Settings:
    """Array-shape settings with a test key and static models [m2, m3]."""
    return make_settings(shape=OutputShape.ARRAY)


@pytest.fixture
def fake_gemini() -> FakeGemini:
    """Gemini stub with no discoverable models; unknown models answer 404."""
    return FakeGemini()
