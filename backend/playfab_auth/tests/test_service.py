"""Tests for PlayFabAuthService dispatch and remember-me handling."""

import httpx
import pytest

from playfab_auth.client import HttpPlayFabClient
from playfab_auth.device import Platform
from playfab_auth.display_name import PlayFabDisplayNameService
from playfab_auth.facebook import FacebookUser
from playfab_auth.models import AuthType, GetPlayerCombinedInfoRequestParams, PlayFabErrorCode
from playfab_auth.service import (
    FACEBOOK_CANCELLED_MESSAGE,
    NO_FACEBOOK_MESSAGE,
    SILENT_AUTH_FAILED_MESSAGE,
    PlayFabAuthService,
)
from playfab_auth.settings import PlayFabSettings
from playfab_auth.tests.mocks import (
    TEST_DEVICE_ID,
    TEST_PLAYFAB_ID,
    TEST_SESSION_TICKET,
    FakeFacebookService,
    failure,
    login_ok,
    make_device,
)


class TestPersistedState:
    @pytest.mark.parametrize("value", [True, False])
    def test_remember_me_round_trips(self, auth, value):
        auth.remember_me = value
        assert auth.remember_me is value

    @pytest.mark.parametrize("auth_type", list(AuthType))
    def test_auth_type_round_trips(self, auth, auth_type):
        auth.auth_type = auth_type
        assert auth.auth_type == auth_type

    @pytest.mark.parametrize("remember_me_id", ["cat", "pants"])
    def test_remember_me_id_round_trips(self, auth, remember_me_id):
        auth.remember_me_id = remember_me_id
        assert auth.remember_me_id == remember_me_id

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_remember_me_id_generates_one(self, auth, value):
        auth.remember_me_id = value
        assert auth.remember_me_id

    def test_clear_remember_me_keeps_auth_type(self, auth):
        auth.remember_me_id = "cat"
        auth.remember_me = True
        auth.auth_type = AuthType.REGISTER_ACCOUNT

        auth.clear_remember_me()

        assert auth.remember_me_id is None
        assert auth.remember_me is False
        assert auth.auth_type == AuthType.REGISTER_ACCOUNT

    def test_state_shared_between_instances_on_same_storage(self, make_auth):
        first = make_auth()
        first.remember_me = True
        first.auth_type = AuthType.SILENT

        second = make_auth()
        assert second.remember_me is True
        assert second.auth_type == AuthType.SILENT

    def test_force_link_defaults_to_false(self, auth):
        assert auth.force_link is False

    def test_force_link_from_settings(self, client, storage):
        auth = PlayFabAuthService(
            client,
            storage,
            make_device(),
            settings=PlayFabSettings(title_id="TEST", force_link=True),
        )
        assert auth.force_link is True

    def test_not_logged_in_initially(self, auth):
        assert auth.is_logged_in is False
        assert auth.playfab_id is None
        assert auth.session_ticket is None


class TestDispatch:
    @pytest.mark.parametrize(
        ("auth_type", "api_name"),
        [
            (AuthType.SILENT, "LoginWithCustomID"),
            (AuthType.REGISTER_ACCOUNT, "LoginWithCustomID"),
        ],
    )
    async def test_routes_without_credentials_reach_the_device_login(self, auth, client, auth_type, api_name):
        auth.auth_type = auth_type
        await auth.authenticate()

        assert client.api_names[0] == api_name

    async def test_authenticate_persists_explicit_auth_type(self, auth):
        await auth.authenticate(AuthType.SILENT)
        assert auth.auth_type == AuthType.SILENT

    async def test_none_without_remember_me_displays_authentication(self, auth, client, events):
        auth.auth_type = AuthType.NONE

        assert await auth.authenticate() is None

        assert events.display_authentication == 1
        assert events.logging_in == 0
        assert client.calls == []

    async def test_none_with_remember_me_uses_remembered_email_login(self, auth, client, events):
        auth.remember_me = True
        auth.remember_me_id = "catpants"
        auth.auth_type = AuthType.NONE

        result = await auth.authenticate()

        assert result is not None
        assert client.api_names == ["LoginWithCustomID"]
        assert client.requests("LoginWithCustomID")[0].custom_id == "catpants"
        assert auth.auth_type == AuthType.EMAIL_AND_PASSWORD
        assert events.logging_in == 1

    @pytest.mark.parametrize(
        "auth_type",
        [
            AuthType.SILENT,
            AuthType.EMAIL_AND_PASSWORD,
            AuthType.USERNAME_AND_PASSWORD,
            AuthType.REGISTER_ACCOUNT,
            AuthType.GOOGLE,
        ],
    )
    async def test_fires_logging_in_once(self, auth, events, auth_type):
        await auth.authenticate(auth_type)
        assert events.logging_in == 1


class TestSilentLogin:
    async def test_desktop_logs_in_with_device_custom_id(self, auth, client, events):
        result = await auth.authenticate(AuthType.SILENT)

        request = client.requests("LoginWithCustomID")[0]
        assert request.custom_id == TEST_DEVICE_ID
        assert request.create_account is True
        assert request.title_id == "TEST"
        assert result is not None
        assert events.successes == [result]

    async def test_android_logs_in_with_android_device_id(self, make_auth, client):
        auth = make_auth(Platform.ANDROID)
        await auth.authenticate(AuthType.SILENT)

        request = client.requests("LoginWithAndroidDeviceID")[0]
        assert request.android_device_id == TEST_DEVICE_ID
        assert request.android_device == "test-host"
        assert request.os == "Android"
        assert request.create_account is True

    async def test_ios_logs_in_with_ios_device_id(self, make_auth, client):
        auth = make_auth(Platform.IOS)
        await auth.authenticate(AuthType.SILENT)

        request = client.requests("LoginWithIOSDeviceID")[0]
        assert request.device_id == TEST_DEVICE_ID
        assert request.device_model == "x86_64"
        assert request.os == "iOS"

    async def test_stores_identity_on_success(self, auth):
        await auth.authenticate(AuthType.SILENT)

        assert auth.playfab_id == TEST_PLAYFAB_ID
        assert auth.session_ticket == TEST_SESSION_TICKET
        assert auth.is_logged_in is True

    async def test_reports_error_and_clears_identity(self, auth, client, events):
        await auth.authenticate(AuthType.SILENT)
        client.respond("LoginWithCustomID", failure())

        assert await auth.authenticate(AuthType.SILENT) is None

        assert auth.playfab_id is None
        assert auth.session_ticket is None
        assert [e.error for e in events.errors] == ["InvalidParams"]

    async def test_forwards_info_request_params(self, auth, client):
        auth.info_request_params = GetPlayerCombinedInfoRequestParams(get_user_account_info=True)
        await auth.authenticate(AuthType.SILENT)

        request = client.requests("LoginWithCustomID")[0]
        assert request.info_request_parameters.get_user_account_info is True


class TestEmailLogin:
    @pytest.mark.parametrize(
        ("remember_me", "remember_me_id", "expect_custom_id"),
        [
            (True, None, False),
            (True, "catpants", True),
            (False, None, False),
            (False, "catpants", False),
        ],
    )
    async def test_custom_id_used_only_when_remembered(
        self,
        auth,
        client,
        remember_me,
        remember_me_id,
        expect_custom_id,
    ):
        auth.remember_me = remember_me
        if remember_me_id is not None:
            auth.remember_me_id = remember_me_id
        auth.auth_type = AuthType.EMAIL_AND_PASSWORD

        await auth.authenticate()

        assert bool(client.requests("LoginWithCustomID")) is expect_custom_id

    @pytest.mark.parametrize(
        ("email", "password", "expect_display"),
        [
            ("", "", True),
            ("catpants", "", True),
            ("", "catpants", True),
            ("catpants", "catpants", False),
        ],
    )
    async def test_missing_credentials_display_authentication(self, auth, client, events, email, password, expect_display):
        auth.remember_me = False
        auth.email = email
        auth.password = password

        await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

        assert (events.display_authentication == 1) is expect_display
        assert bool(client.requests("LoginWithEmailAddress")) is not expect_display

    @pytest.mark.parametrize(
        ("remember_me", "remember_me_id", "email", "password", "expect_display"),
        [
            (True, None, "", "", True),
            (True, "id", "", "", False),
            (True, "id", "email", "", False),
            (True, "id", "", "password", False),
            (True, None, "email", "password", False),
            (True, "id", "email", "password", False),
            (False, None, "", "", True),
            (False, "id", "", "", True),
            (False, "id", "email", "", True),
            (False, "id", "", "password", True),
            (False, None, "email", "password", False),
            (False, "id", "email", "password", False),
        ],
    )
    async def test_display_authentication_matrix(
        self,
        auth,
        events,
        remember_me,
        remember_me_id,
        email,
        password,
        expect_display,
    ):
        auth.remember_me = remember_me
        if remember_me_id is not None:
            auth.remember_me_id = remember_me_id
        auth.email = email
        auth.password = password

        await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

        assert (events.display_authentication == 1) is expect_display

    async def test_success_without_remember_me_does_not_link(self, auth, client, events):
        auth.email = "alice@example.com"
        auth.password = "hunter22"

        result = await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

        request = client.requests("LoginWithEmailAddress")[0]
        assert request.email == "alice@example.com"
        assert request.password == "hunter22"
        assert client.requests("LinkCustomID") == []
        assert auth.remember_me_id is None
        assert events.successes == [result]

    async def test_success_with_remember_me_links_new_id(self, auth, client):
        auth.remember_me = True
        auth.email = "alice@example.com"
        auth.password = "hunter22"

        await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

        link = client.requests("LinkCustomID")[0]
        assert auth.remember_me_id
        assert link.custom_id == auth.remember_me_id
        assert link.force_link is False
        assert auth.auth_type == AuthType.EMAIL_AND_PASSWORD

    async def test_link_uses_force_link_flag(self, auth, client):
        auth.remember_me = True
        auth.force_link = True
        auth.email = "alice@example.com"
        auth.password = "hunter22"

        await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

        assert client.requests("LinkCustomID")[0].force_link is True

    async def test_rejected_link_discards_remember_me_id(self, auth, client, events):
        client.respond("LinkCustomID", failure("LinkedIdentifierAlreadyClaimed", "Custom id already linked"))
        auth.remember_me = True
        auth.email = "alice@example.com"
        auth.password = "hunter22"

        result = await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

        assert result is not None
        assert auth.remember_me_id is None
        assert auth.remember_me is True
        assert events.errors == []

    async def test_failed_login_reports_error_and_does_not_link(self, auth, client, events):
        client.respond("LoginWithEmailAddress", failure("InvalidEmailOrPassword", "Invalid email or password"))
        auth.remember_me = True
        auth.email = "alice@example.com"
        auth.password = "wrong"

        assert await auth.authenticate(AuthType.EMAIL_AND_PASSWORD) is None

        assert client.requests("LinkCustomID") == []
        assert auth.is_logged_in is False
        assert events.errors[0].error_message == "Invalid email or password"
        assert events.successes == []

    async def test_remembered_login_uses_stored_id_and_creates_account(self, auth, client):
        auth.remember_me = True
        auth.remember_me_id = "stored-id"

        await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

        request = client.requests("LoginWithCustomID")[0]
        assert request.custom_id == "stored-id"
        assert request.create_account is True
        assert client.requests("LinkCustomID") == []


class TestUsernameLogin:
    async def test_logs_in_with_playfab_username(self, auth, client):
        auth.username = "alice"
        auth.password = "hunter22"

        result = await auth.authenticate(AuthType.USERNAME_AND_PASSWORD)

        request = client.requests("LoginWithPlayFab")[0]
        assert request.username == "alice"
        assert result is not None

    async def test_missing_username_displays_authentication(self, auth, client, events):
        auth.password = "hunter22"

        await auth.authenticate(AuthType.USERNAME_AND_PASSWORD)

        assert events.display_authentication == 1
        assert client.calls == []

    async def test_remember_me_persists_username_route(self, auth, client):
        auth.remember_me = True
        auth.username = "alice"
        auth.password = "hunter22"

        await auth.authenticate(AuthType.USERNAME_AND_PASSWORD)

        assert auth.auth_type == AuthType.USERNAME_AND_PASSWORD
        assert client.requests("LinkCustomID")[0].custom_id == auth.remember_me_id


class TestRegisterAccount:
    async def test_adds_credentials_to_device_account(self, auth, client, events):
        auth.username = "alice"
        auth.email = "alice@example.com"
        auth.password = "hunter22"

        result = await auth.authenticate(AuthType.REGISTER_ACCOUNT)

        assert client.api_names == ["LoginWithCustomID", "AddUsernamePassword"]
        added = client.requests("AddUsernamePassword")[0]
        assert added.username == "alice"
        assert added.email == "alice@example.com"
        assert result is not None
        assert auth.is_logged_in is True
        assert auth.auth_type == AuthType.EMAIL_AND_PASSWORD
        assert events.successes == [result]

    async def test_username_falls_back_to_playfab_id(self, auth, client):
        auth.email = "alice@example.com"
        auth.password = "hunter22"

        await auth.authenticate(AuthType.REGISTER_ACCOUNT)

        assert client.requests("AddUsernamePassword")[0].username == TEST_PLAYFAB_ID

    async def test_remember_me_links_custom_id(self, auth, client):
        auth.remember_me = True
        auth.email = "alice@example.com"
        auth.password = "hunter22"

        await auth.authenticate(AuthType.REGISTER_ACCOUNT)

        assert client.requests("LinkCustomID")[0].custom_id == auth.remember_me_id

    async def test_silent_failure_reports_and_stops(self, auth, client, events):
        client.respond("LoginWithCustomID", failure())

        assert await auth.authenticate(AuthType.REGISTER_ACCOUNT) is None

        assert client.api_names == ["LoginWithCustomID"]
        assert events.errors[0].error == PlayFabErrorCode.UNKNOWN_ERROR
        assert events.errors[0].error_message == SILENT_AUTH_FAILED_MESSAGE

    async def test_add_username_failure_reports_error(self, auth, client, events):
        client.respond("AddUsernamePassword", failure("EmailAddressNotAvailable", "Email address not available"))
        auth.email = "taken@example.com"
        auth.password = "hunter22"

        assert await auth.authenticate(AuthType.REGISTER_ACCOUNT) is None

        assert auth.is_logged_in is False
        assert events.errors[0].error == "EmailAddressNotAvailable"
        assert auth.auth_type == AuthType.REGISTER_ACCOUNT


class TestFacebookLogin:
    async def test_no_facebook_service_reports_error(self, auth, client, events):
        assert await auth.authenticate(AuthType.FACEBOOK) is None

        assert events.errors[0].error_message == NO_FACEBOOK_MESSAGE
        assert client.calls == []

    async def test_logged_in_user_with_ticket_skips_facebook_login(self, make_auth, client, events):
        facebook = FakeFacebookService(FacebookUser(user_id="fb1", token="fb-token"), logged_in=True)
        auth = make_auth(facebook=facebook)
        auth.auth_ticket = "fb-token"

        result = await auth.authenticate(AuthType.FACEBOOK)

        assert facebook.login_calls == 0
        request = client.requests("LoginWithFacebook")[0]
        assert request.access_token == "fb-token"
        assert request.create_account is True
        assert result is not None
        assert events.logging_in == 1

    async def test_runs_facebook_login_when_needed(self, make_auth, client):
        facebook = FakeFacebookService()
        facebook.next_user = FacebookUser(user_id="fb1", name="Alice", token="fresh-token")
        auth = make_auth(facebook=facebook)

        await auth.authenticate(AuthType.FACEBOOK)

        assert facebook.login_calls == 1
        assert auth.auth_ticket == "fresh-token"
        assert client.requests("LoginWithFacebook")[0].access_token == "fresh-token"

    async def test_cancelled_facebook_login_reports_error(self, make_auth, client, events):
        auth = make_auth(facebook=FakeFacebookService())

        assert await auth.authenticate(AuthType.FACEBOOK) is None

        assert events.errors[0].error == PlayFabErrorCode.FACEBOOK_LOGIN_CANCELLED
        assert events.errors[0].error_message == FACEBOOK_CANCELLED_MESSAGE
        assert events.logging_in == 0
        assert client.calls == []


class TestGoogleLogin:
    async def test_missing_server_auth_code_displays_authentication(self, auth, client, events):
        await auth.authenticate(AuthType.GOOGLE)

        assert events.display_authentication == 1
        assert client.calls == []

    async def test_logs_in_with_server_auth_code(self, auth, client):
        auth.auth_ticket = "google-code"

        result = await auth.authenticate(AuthType.GOOGLE)

        request = client.requests("LoginWithGoogleAccount")[0]
        assert request.server_auth_code == "google-code"
        assert request.create_account is True
        assert result is not None


class TestUnlinkSilentAuth:
    @pytest.mark.parametrize(
        ("platform", "api_name"),
        [
            (Platform.LINUX, "UnlinkCustomID"),
            (Platform.WINDOWS, "UnlinkCustomID"),
            (Platform.ANDROID, "UnlinkAndroidDeviceID"),
            (Platform.IOS, "UnlinkIOSDeviceID"),
        ],
    )
    async def test_unlinks_platform_credential(self, make_auth, client, platform, api_name):
        auth = make_auth(platform)

        assert await auth.unlink_silent_auth() is True

        assert client.api_names[-1] == api_name

    async def test_silent_failure_skips_unlink(self, auth, client, events):
        client.respond("LoginWithCustomID", failure())

        assert await auth.unlink_silent_auth() is False

        assert client.api_names == ["LoginWithCustomID"]
        assert events.errors == []

    async def test_unlink_error_is_reported(self, auth, client, events):
        client.respond("UnlinkCustomID", failure("AccountNotLinked", "Account not linked"))

        assert await auth.unlink_silent_auth() is False

        assert events.errors[0].error == "AccountNotLinked"


class TestLogout:
    async def test_clears_identity_and_client_session(self, auth, client):
        auth.remember_me = True
        auth.remember_me_id = "kept"
        await auth.authenticate(AuthType.SILENT)

        auth.logout()

        assert auth.is_logged_in is False
        assert auth.playfab_id is None
        assert client.session_forgotten is True
        assert auth.remember_me is True
        assert auth.remember_me_id == "kept"

    async def test_new_account_flag_is_passed_through(self, auth, client):
        client.respond("LoginWithCustomID", login_ok("NEW1", newly_created=True))

        result = await auth.authenticate(AuthType.SILENT)

        assert result.newly_created is True
        assert auth.playfab_id == "NEW1"


class TestFailedLoginDropsSession:
    async def test_rejected_login_forgets_client_session(self, auth, client):
        await auth.authenticate(AuthType.SILENT)
        client.respond("LoginWithEmailAddress", failure("InvalidEmailOrPassword", "Invalid email or password"))
        auth.email = "alice@example.com"
        auth.password = "wrong"

        assert await auth.authenticate(AuthType.EMAIL_AND_PASSWORD) is None

        assert client.session_forgotten is True
        assert auth.is_logged_in is False

    async def test_failed_registration_forgets_device_session(self, auth, client):
        client.respond("AddUsernamePassword", failure("EmailAddressNotAvailable", "Email address not available"))
        auth.email = "taken@example.com"
        auth.password = "hunter22"

        assert await auth.authenticate(AuthType.REGISTER_ACCOUNT) is None

        assert client.session_forgotten is True

    async def test_later_calls_do_not_run_as_previous_player(self, storage, settings):
        old_login = {"PlayFabId": "OLD", "SessionTicket": "OLD-ticket"}
        replies = [
            httpx.Response(200, json={"code": 200, "status": "OK", "data": old_login}),
            httpx.Response(400, json={"code": 400, "status": "BadRequest", "error": "InvalidEmailOrPassword"}),
        ]
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return replies.pop(0)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = HttpPlayFabClient(settings, http_client=http)
            auth = PlayFabAuthService(client, storage, make_device(), settings=settings)
            await auth.authenticate(AuthType.SILENT)
            auth.email = "alice@example.com"
            auth.password = "wrong"
            await auth.authenticate(AuthType.EMAIL_AND_PASSWORD)

            error = await PlayFabDisplayNameService(client, auth).set_display_name("Mallory")

        assert error
        assert client.session_ticket is None
        assert len(sent) == 2
