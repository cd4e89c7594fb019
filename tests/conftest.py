from __future__ import annotations

import pytest

from roster_sync.config import Settings
from tests.helpers import Clock


@pytest.fixture
def settings() -> Settings:
    return Settings(
        registry_url="https://registry.test/graphql",
        registry_client_id="client",
        registry_client_secret="secret",
        api_key="letmein",
        sheet_id="fallback-sheet",
    )


@pytest.fixture
def clock() -> Clock:
    return Clock()
