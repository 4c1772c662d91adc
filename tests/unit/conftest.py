"""Unit-test conftest: cached state isolation.

Settings and export clients are cached at module level. Every unit test
starts from an empty cache so environment changes made by one test never
leak into another.
"""

from __future__ import annotations

import pytest

from mailchimp_export import client as _client_mod
from mailchimp_export.settings import get_settings


@pytest.fixture(autouse=True)
def _reset_cached_state():
    get_settings.cache_clear()
    _client_mod._clients.clear()
    yield
    get_settings.cache_clear()
    _client_mod._clients.clear()
