from datetime import datetime, timezone

import pytest

from bujo_capture.config import Settings

NOW = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def now():
    return NOW


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    value = Settings(timezone="UTC", log_dir=tmp_path / "logs")
    monkeypatch.setattr("bujo_capture.config._SETTINGS", value)
    return value
