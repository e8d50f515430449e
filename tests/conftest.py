from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from core.settings import Settings, ShareSettings
from core.storage import LocalStorage
from services.api.main import app
from services.api.routes import get_app_settings, get_storage


class FakeClock:
    """Wall clock that tests can move forward."""

    def __init__(self) -> None:
        self.offset = timedelta()

    def __call__(self) -> datetime:
        return datetime.now(timezone.utc) + self.offset

    def advance(self, **kwargs: float) -> None:
        self.offset += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage(tmp_path, clock) -> LocalStorage:
    return LocalStorage(tmp_path / "uploads", clock=clock)


@pytest.fixture()
def settings() -> Settings:
    return Settings(share=ShareSettings(ttl_seconds=3600))


@pytest.fixture()
def api(storage, settings):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_app_settings] = lambda: settings
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(api):
    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as http:
        yield http
