import pytest
import requests_mock

from onedrive_api.api.globals import GlobalSingleton
from onedrive_api.core import auth as auth_module
from onedrive_api.core.auth import Auth
from onedrive_api.core.config.profiles import ProfileManager
from onedrive_api.core.const import GRAPH_URL

DRIVE_URL = f"{GRAPH_URL}/me/drive"
TEST_TOKEN = "test-token"

_ENV_VARS = (
    "ONEDRIVE_ACCESS_TOKEN",
    "ONEDRIVE_DRIVE",
    "ONEDRIVE_MAX_DURATION_MS",
    "ONEDRIVE_GRAPH_URL",
    "ONEDRIVE_UPLOAD_CHUNK_SIZE",
)


@pytest.fixture(autouse=True)
def temporary_home(tmp_path, monkeypatch):
    """Point the home directory at a temp dir and clear client env vars."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_client_state(monkeypatch):
    """Start every test logged out with no active client."""
    monkeypatch.setattr(auth_module, "_auth", Auth())
    GlobalSingleton()._active_client = None
    GlobalSingleton()._active_profile = None
    yield
    GlobalSingleton()._active_client = None
    GlobalSingleton()._active_profile = None


@pytest.fixture
def profile_manager(temporary_home):
    return ProfileManager(temporary_home)


@pytest.fixture
def mock_graph():
    with requests_mock.Mocker() as m:
        yield m


@pytest.fixture
def drive_url():
    return DRIVE_URL


@pytest.fixture
def test_token():
    return TEST_TOKEN
