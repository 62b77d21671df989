"""Unit tests for sessions, preferences and login checks"""

import pytest

from postdesk.auth import authenticate
from postdesk.config import AppConfig
from postdesk.errors import AuthorizationError, ValidationError
from postdesk.memory.models import UserRole, UserSession
from postdesk.memory.session import PreferenceStore, SESSION_KEY, SessionStore
from postdesk.memory.storage import LocalStorage


class TestSessionStore:

    def test_starts_without_session(self, sessions: SessionStore):
        assert sessions.current is None
        with pytest.raises(AuthorizationError):
            sessions.require()

    def test_login_replaces_previous_session(self, sessions: SessionStore):
        sessions.login(UserSession(identity="9876543210", role=UserRole.CITIZEN, name="Citizen User"))
        sessions.login(UserSession(identity="admin", role=UserRole.OFFICIAL, name="Post Master"))

        assert sessions.current.identity == "admin"
        assert sessions.require(UserRole.OFFICIAL).is_official

    def test_require_checks_role(self, sessions: SessionStore, citizen):
        assert sessions.require(UserRole.CITIZEN) == citizen
        with pytest.raises(AuthorizationError):
            sessions.require(UserRole.OFFICIAL)

    def test_session_survives_reload(self, config, sessions: SessionStore, official):
        reloaded = SessionStore(LocalStorage(config.state_file))

        assert reloaded.current == official

    def test_logout_clears_persisted_session(self, config, sessions: SessionStore, citizen):
        sessions.logout()

        assert sessions.current is None
        assert SessionStore(LocalStorage(config.state_file)).current is None

    def test_corrupt_session_is_discarded(self, storage: LocalStorage):
        storage.set_item(SESSION_KEY, {"identity": "x", "role": "superuser"})

        assert SessionStore(storage).current is None
        assert storage.get_item(SESSION_KEY) is None


class TestPreferenceStore:

    def test_defaults(self, preferences: PreferenceStore):
        assert preferences.language == "en"
        assert preferences.language_name == "English"
        assert preferences.scale == 100

    def test_language_round_trip(self, config, preferences: PreferenceStore):
        preferences.language = "te"

        assert PreferenceStore(LocalStorage(config.state_file)).language_name == "Telugu"

    def test_unknown_language_falls_back(self, preferences: PreferenceStore):
        preferences.language = "fr"

        assert preferences.language == "en"

    @pytest.mark.parametrize("requested, stored", [(120, 120), (10, 50), (400, 200)])
    def test_scale_is_clamped(self, preferences: PreferenceStore, requested, stored):
        preferences.scale = requested

        assert preferences.scale == stored


class TestAuthenticate:

    @pytest.fixture
    def settings(self) -> AppConfig:
        return AppConfig(official_id="admin", official_password="1245")

    def test_official_login(self, settings):
        session = authenticate(UserRole.OFFICIAL, "admin", "1245", settings)

        assert session.role == UserRole.OFFICIAL
        assert session.name == "Post Master"

    def test_official_wrong_password(self, settings):
        with pytest.raises(ValidationError):
            authenticate(UserRole.OFFICIAL, "admin", "0000", settings)

    def test_citizen_login(self, settings):
        session = authenticate(UserRole.CITIZEN, " 9876543210 ", "secret12", settings)

        assert session.identity == "9876543210"
        assert session.role == UserRole.CITIZEN

    @pytest.mark.parametrize("identity", [
        "12345", "12345678901", "98765abcde", "",
        # Arabic-Indic numerals
        "\u0669\u0668\u0667\u0666\u0665\u0664\u0663\u0662\u0661\u0660",
    ])
    def test_citizen_id_shape(self, settings, identity):
        with pytest.raises(ValidationError, match="10 digits"):
            authenticate(UserRole.CITIZEN, identity, "secret12", settings)

    @pytest.mark.parametrize("password", ["short", "muchtoolongpw", ""])
    def test_citizen_password_length(self, settings, password):
        with pytest.raises(ValidationError, match="8 characters"):
            authenticate(UserRole.CITIZEN, "9876543210", password, settings)
