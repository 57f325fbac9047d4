"""Auth façade: pick a login route from the stored AuthType and talk to PlayFab.

Vendor failures never raise out of this module. They clear the current
identity and the client session, go to the on_playfab_error callback, and
make authenticate() return None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from playfab_auth.device import Platform
from playfab_auth.models import (
    AddUsernamePasswordRequest,
    AuthType,
    LinkCustomIDRequest,
    LoginResult,
    LoginWithAndroidDeviceIDRequest,
    LoginWithCustomIDRequest,
    LoginWithEmailAddressRequest,
    LoginWithFacebookRequest,
    LoginWithGoogleAccountRequest,
    LoginWithIOSDeviceIDRequest,
    LoginWithPlayFabRequest,
    PlayFabError,
    PlayFabErrorCode,
    UnlinkAndroidDeviceIDRequest,
    UnlinkCustomIDRequest,
    UnlinkIOSDeviceIDRequest,
)
from playfab_auth.remember_me import AuthStateStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from playfab_auth.client import PlayFabClient
    from playfab_auth.device import DeviceInfo
    from playfab_auth.facebook import FacebookService
    from playfab_auth.models import EmptyResult, GetPlayerCombinedInfoRequestParams, PlayFabResult
    from playfab_auth.settings import PlayFabSettings
    from shared.storage import KeyValueStore

logger = structlog.get_logger()

SILENT_AUTH_FAILED_MESSAGE = "Silent Authentication by Device failed"
NO_FACEBOOK_MESSAGE = "No FacebookClient was detected"
FACEBOOK_CANCELLED_MESSAGE = "Facebook login was cancelled"


class PlayFabAuthService:
    """Authenticate a player through one of several identity providers.

    Credentials (email, username, password, auth_ticket) are plain attributes
    the caller fills in before calling authenticate(). The callbacks are plain
    attributes too and may be reassigned at any time:

    - on_display_authentication(): credentials are needed from the player
    - on_logging_in(): a login request is about to be sent
    - on_login_success(LoginResult)
    - on_playfab_error(PlayFabError)
    """

    def __init__(
        self,
        client: PlayFabClient,
        storage: KeyValueStore,
        device: DeviceInfo,
        *,
        settings: PlayFabSettings,
        facebook: FacebookService | None = None,
        on_display_authentication: Callable[[], None] | None = None,
        on_logging_in: Callable[[], None] | None = None,
        on_login_success: Callable[[LoginResult], None] | None = None,
        on_playfab_error: Callable[[PlayFabError], None] | None = None,
    ) -> None:
        self._client = client
        self._device = device
        self._facebook = facebook
        self._title_id = settings.title_id
        self._state = AuthStateStore(storage, settings.storage_group)

        self.email = ""
        self.username = ""
        self.password = ""
        self.auth_ticket = ""
        self.info_request_params: GetPlayerCombinedInfoRequestParams | None = None
        self.force_link = settings.force_link

        self.on_display_authentication = on_display_authentication
        self.on_logging_in = on_logging_in
        self.on_login_success = on_login_success
        self.on_playfab_error = on_playfab_error

        self._playfab_id: str | None = None
        self._session_ticket: str | None = None

    # -- identity --

    @property
    def playfab_id(self) -> str | None:
        return self._playfab_id

    @property
    def session_ticket(self) -> str | None:
        return self._session_ticket

    @property
    def is_logged_in(self) -> bool:
        return bool(self._playfab_id) and bool(self._session_ticket)

    # -- persisted state --

    @property
    def remember_me(self) -> bool:
        return self._state.remember_me

    @remember_me.setter
    def remember_me(self, value: bool) -> None:
        self._state.remember_me = value

    @property
    def auth_type(self) -> AuthType:
        return self._state.auth_type

    @auth_type.setter
    def auth_type(self, value: AuthType) -> None:
        self._state.auth_type = value

    @property
    def remember_me_id(self) -> str | None:
        return self._state.remember_me_id

    @remember_me_id.setter
    def remember_me_id(self, value: str | None) -> None:
        self._state.remember_me_id = value

    def clear_remember_me(self) -> None:
        self._state.clear_remember_me()

    # -- public operations --

    async def authenticate(self, auth_type: AuthType | None = None) -> LoginResult | None:
        """Log in using auth_type (persisted first) or the stored AuthType.

        Return the LoginResult on success and None otherwise. A stored type of
        NONE falls back to the remembered email login when remember-me is on,
        and asks the player for credentials when it is not.
        """
        if auth_type is not None:
            self.auth_type = auth_type
        current = self.auth_type
        logger.debug("authenticating", auth_type=current)

        if current == AuthType.FACEBOOK:
            # logging-in fires once a Facebook token is in hand
            return await self._authenticate_facebook()

        if current == AuthType.NONE:
            if not self.remember_me:
                self._display_authentication()
                return None
            self._logging_in()
            self.auth_type = AuthType.EMAIL_AND_PASSWORD
            return await self._authenticate_email_password()

        routes: dict[AuthType, Callable[[], Awaitable[LoginResult | None]]] = {
            AuthType.SILENT: self._silently_authenticate,
            AuthType.USERNAME_AND_PASSWORD: self._authenticate_username_password,
            AuthType.EMAIL_AND_PASSWORD: self._authenticate_email_password,
            AuthType.REGISTER_ACCOUNT: self._add_account_and_password,
            AuthType.GOOGLE: self._authenticate_google_play_games,
        }
        self._logging_in()
        return await routes[current]()

    async def unlink_silent_auth(self) -> bool:
        """Detach this device's credential from the account it silently logs into."""
        outcome = await self._silent_login()
        if outcome.result is None:
            logger.warning("cannot unlink device, silent login failed", error=_error_name(outcome.error))
            return False
        self._store_identity(outcome.result)

        device_id = self._device.device_id
        unlinked: PlayFabResult[EmptyResult]
        if self._device.platform == Platform.ANDROID:
            unlinked = await self._client.unlink_android_device_id(
                UnlinkAndroidDeviceIDRequest(android_device_id=device_id),
            )
        elif self._device.platform == Platform.IOS:
            unlinked = await self._client.unlink_ios_device_id(UnlinkIOSDeviceIDRequest(device_id=device_id))
        else:
            unlinked = await self._client.unlink_custom_id(UnlinkCustomIDRequest(custom_id=device_id))

        if unlinked.error is not None:
            self._emit_error(unlinked.error)
            return False
        logger.info("device unlinked", platform=self._device.platform, playfab_id=self._playfab_id)
        return True

    def logout(self) -> None:
        """Drop the current identity. Remember-me state survives."""
        logger.info("logged out", playfab_id=self._playfab_id)
        self._clear_identity()
        self._client.forget_session()

    # -- login routes --

    async def _authenticate_email_password(self) -> LoginResult | None:
        if self._should_use_remember_me_id():
            return await self._authenticate_remembered()
        if not self.email or not self.password:
            self._display_authentication()
            return None

        outcome = await self._client.login_with_email_address(
            LoginWithEmailAddressRequest(
                title_id=self._title_id,
                email=self.email,
                password=self.password,
                info_request_parameters=self.info_request_params,
            ),
        )
        return await self._complete_password_login(outcome, AuthType.EMAIL_AND_PASSWORD)

    async def _authenticate_username_password(self) -> LoginResult | None:
        if self._should_use_remember_me_id():
            return await self._authenticate_remembered()
        if not self.username or not self.password:
            self._display_authentication()
            return None

        outcome = await self._client.login_with_playfab(
            LoginWithPlayFabRequest(
                title_id=self._title_id,
                username=self.username,
                password=self.password,
                info_request_parameters=self.info_request_params,
            ),
        )
        return await self._complete_password_login(outcome, AuthType.USERNAME_AND_PASSWORD)

    async def _authenticate_remembered(self) -> LoginResult | None:
        outcome = await self._client.login_with_custom_id(
            LoginWithCustomIDRequest(
                title_id=self._title_id,
                custom_id=self.remember_me_id,
                create_account=True,
                info_request_parameters=self.info_request_params,
            ),
        )
        return self._report_login(outcome)

    async def _add_account_and_password(self) -> LoginResult | None:
        """Register by attaching username/email/password to the device account.

        Logging in silently first keeps the player's original platform as the
        account's origination. A failed attempt leaves that device account in
        place, so retrying reuses it.
        """
        outcome = await self._silent_login()
        if outcome.result is None:
            logger.warning("silent login before registration failed", error=_error_name(outcome.error))
            return self._fail_login(
                PlayFabError(error=PlayFabErrorCode.UNKNOWN_ERROR, error_message=SILENT_AUTH_FAILED_MESSAGE),
            )
        login = outcome.result

        added = await self._client.add_username_password(
            AddUsernamePasswordRequest(
                username=self.username or login.playfab_id,
                email=self.email,
                password=self.password,
            ),
        )
        if added.error is not None:
            return self._fail_login(added.error)

        self._store_identity(login)
        if self.remember_me:
            await self._link_remember_me_id()
        self.auth_type = AuthType.EMAIL_AND_PASSWORD
        return self._login_succeeded(login)

    async def _authenticate_facebook(self) -> LoginResult | None:
        facebook = self._facebook
        if facebook is None:
            return self._fail_login(PlayFabError(error_message=NO_FACEBOOK_MESSAGE))

        user = facebook.user
        if not facebook.logged_in or not self.auth_ticket or user is None:
            user = await facebook.login()
            if user is None:
                return self._fail_login(
                    PlayFabError(
                        error=PlayFabErrorCode.FACEBOOK_LOGIN_CANCELLED,
                        error_message=FACEBOOK_CANCELLED_MESSAGE,
                    ),
                )

        self._logging_in()
        self.auth_ticket = user.token
        outcome = await self._client.login_with_facebook(
            LoginWithFacebookRequest(
                title_id=self._title_id,
                access_token=self.auth_ticket,
                create_account=True,
                info_request_parameters=self.info_request_params,
            ),
        )
        return self._report_login(outcome)

    async def _authenticate_google_play_games(self) -> LoginResult | None:
        # auth_ticket carries the Google server auth code
        if not self.auth_ticket:
            self._display_authentication()
            return None

        outcome = await self._client.login_with_google_account(
            LoginWithGoogleAccountRequest(
                title_id=self._title_id,
                server_auth_code=self.auth_ticket,
                create_account=True,
                info_request_parameters=self.info_request_params,
            ),
        )
        return self._report_login(outcome)

    async def _silently_authenticate(self) -> LoginResult | None:
        return self._report_login(await self._silent_login())

    async def _silent_login(self) -> PlayFabResult[LoginResult]:
        """Log in with this device's identifier, creating the account if needed."""
        device = self._device
        if device.platform == Platform.ANDROID:
            return await self._client.login_with_android_device_id(
                LoginWithAndroidDeviceIDRequest(
                    title_id=self._title_id,
                    android_device=device.device_name,
                    os=device.platform.value,
                    android_device_id=device.device_id,
                    create_account=True,
                    info_request_parameters=self.info_request_params,
                ),
            )
        if device.platform == Platform.IOS:
            return await self._client.login_with_ios_device_id(
                LoginWithIOSDeviceIDRequest(
                    title_id=self._title_id,
                    device_model=device.model,
                    os=device.platform.value,
                    device_id=device.device_id,
                    create_account=True,
                    info_request_parameters=self.info_request_params,
                ),
            )
        # Desktop hosts have no vendor device-id login. The persisted device id
        # stands in as a custom id and creates the account like the mobile routes.
        return await self._client.login_with_custom_id(
            LoginWithCustomIDRequest(
                title_id=self._title_id,
                custom_id=device.device_id,
                create_account=True,
                info_request_parameters=self.info_request_params,
            ),
        )

    # -- private helpers --

    def _should_use_remember_me_id(self) -> bool:
        return self.remember_me and bool(self.remember_me_id)

    async def _complete_password_login(
        self,
        outcome: PlayFabResult[LoginResult],
        auth_type: AuthType,
    ) -> LoginResult | None:
        if outcome.result is None:
            return self._report_login(outcome)

        self._store_identity(outcome.result)
        if self.remember_me:
            self.auth_type = auth_type
            await self._link_remember_me_id()
        return self._login_succeeded(outcome.result)

    async def _link_remember_me_id(self) -> None:
        """Link a fresh remember-me id to the logged in account.

        If the link is rejected the id is dropped, so the next remembered
        login asks for credentials instead of creating an unrelated account.
        """
        remember_me_id = self._state.generate_remember_me_id()
        linked = await self._client.link_custom_id(
            LinkCustomIDRequest(custom_id=remember_me_id, force_link=self.force_link),
        )
        if linked.error is not None:
            logger.warning("failed to link remember-me id", error=linked.error.error, playfab_id=self._playfab_id)
            self._state.discard_remember_me_id()

    def _report_login(self, outcome: PlayFabResult[LoginResult]) -> LoginResult | None:
        if outcome.result is None:
            return self._fail_login(outcome.error)
        self._store_identity(outcome.result)
        return self._login_succeeded(outcome.result)

    def _login_succeeded(self, result: LoginResult) -> LoginResult:
        logger.info(
            "login succeeded",
            auth_type=self.auth_type,
            playfab_id=result.playfab_id,
            newly_created=result.newly_created,
        )
        if self.on_login_success is not None:
            self.on_login_success(result)
        return result

    def _fail_login(self, error: PlayFabError | None) -> None:
        self._clear_identity()
        self._client.forget_session()
        self._emit_error(error or PlayFabError())

    def _emit_error(self, error: PlayFabError) -> None:
        logger.info("playfab error reported", error=error.error, message=error.error_message)
        if self.on_playfab_error is not None:
            self.on_playfab_error(error)

    def _display_authentication(self) -> None:
        logger.debug("credentials required", auth_type=self.auth_type)
        if self.on_display_authentication is not None:
            self.on_display_authentication()

    def _logging_in(self) -> None:
        if self.on_logging_in is not None:
            self.on_logging_in()

    def _store_identity(self, result: LoginResult) -> None:
        self._playfab_id = result.playfab_id
        self._session_ticket = result.session_ticket

    def _clear_identity(self) -> None:
        self._playfab_id = None
        self._session_ticket = None


def _error_name(error: PlayFabError | None) -> str | None:
    return error.error if error is not None else None
