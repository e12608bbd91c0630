import pytest

from settings import Settings, get_settings
from tests.helpers import FakeServer


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    for field in Settings.model_fields.values():
        monkeypatch.delenv(field.alias, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def fake_server():
    return FakeServer(total=25)
