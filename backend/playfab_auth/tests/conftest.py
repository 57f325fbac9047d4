import pytest

from playfab_auth.device import Platform
from playfab_auth.service import PlayFabAuthService
from playfab_auth.settings import PlayFabSettings
from playfab_auth.tests.mocks import FakePlayFabClient, make_device
from shared.storage import MemoryStorage


class RecordedEvents:
    """Collects the auth service callbacks."""

    def __init__(self) -> None:
        self.display_authentication = 0
        self.logging_in = 0
        self.successes = []
        self.errors = []

    def attach(self, auth: PlayFabAuthService) -> None:
        auth.on_display_authentication = self._on_display_authentication
        auth.on_logging_in = self._on_logging_in
        auth.on_login_success = self.successes.append
        auth.on_playfab_error = self.errors.append

    def _on_display_authentication(self) -> None:
        self.display_authentication += 1

    def _on_logging_in(self) -> None:
        self.logging_in += 1


@pytest.fixture
def settings():
    return PlayFabSettings(title_id="TEST")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def client():
    return FakePlayFabClient()


@pytest.fixture
def events():
    return RecordedEvents()


@pytest.fixture
def make_auth(client, storage, settings, events):
    """Build a PlayFabAuthService with recorded callbacks on the given platform."""

    def _make(platform: Platform = Platform.LINUX, **kwargs) -> PlayFabAuthService:
        auth = PlayFabAuthService(client, storage, make_device(platform), settings=settings, **kwargs)
        events.attach(auth)
        return auth

    return _make


@pytest.fixture
def auth(make_auth):
    return make_auth()
