"""PlayFab Client API access: the protocol the services depend on, and an httpx transport.

Every call returns a PlayFabResult. Vendor errors and transport failures are
reported as PlayFabError values, never raised, so callers handle both through
the same branch.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Protocol, Self, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from playfab_auth import __version__
from playfab_auth.models import (
    AddUsernamePasswordRequest,
    AddUsernamePasswordResult,
    EmptyResult,
    GetAccountInfoRequest,
    GetAccountInfoResult,
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
    PlayFabModel,
    PlayFabResult,
    UnlinkAndroidDeviceIDRequest,
    UnlinkCustomIDRequest,
    UnlinkIOSDeviceIDRequest,
    UpdateUserTitleDisplayNameRequest,
    UpdateUserTitleDisplayNameResult,
)

if TYPE_CHECKING:
    from types import TracebackType

    from playfab_auth.settings import PlayFabSettings

logger = structlog.get_logger()

SDK_HEADER = f"PlayFabBuddyPy-{__version__}"

ModelT = TypeVar("ModelT", bound=BaseModel)


class PlayFabClient(Protocol):
    """The subset of the PlayFab Client API used by the auth services."""

    async def login_with_custom_id(self, request: LoginWithCustomIDRequest) -> PlayFabResult[LoginResult]: ...

    async def login_with_email_address(
        self,
        request: LoginWithEmailAddressRequest,
    ) -> PlayFabResult[LoginResult]: ...

    async def login_with_playfab(self, request: LoginWithPlayFabRequest) -> PlayFabResult[LoginResult]: ...

    async def login_with_android_device_id(
        self,
        request: LoginWithAndroidDeviceIDRequest,
    ) -> PlayFabResult[LoginResult]: ...

    async def login_with_ios_device_id(self, request: LoginWithIOSDeviceIDRequest) -> PlayFabResult[LoginResult]: ...

    async def login_with_facebook(self, request: LoginWithFacebookRequest) -> PlayFabResult[LoginResult]: ...

    async def login_with_google_account(
        self,
        request: LoginWithGoogleAccountRequest,
    ) -> PlayFabResult[LoginResult]: ...

    async def link_custom_id(self, request: LinkCustomIDRequest) -> PlayFabResult[EmptyResult]: ...

    async def unlink_custom_id(self, request: UnlinkCustomIDRequest) -> PlayFabResult[EmptyResult]: ...

    async def unlink_android_device_id(self, request: UnlinkAndroidDeviceIDRequest) -> PlayFabResult[EmptyResult]: ...

    async def unlink_ios_device_id(self, request: UnlinkIOSDeviceIDRequest) -> PlayFabResult[EmptyResult]: ...

    async def add_username_password(
        self,
        request: AddUsernamePasswordRequest,
    ) -> PlayFabResult[AddUsernamePasswordResult]: ...

    async def get_account_info(self, request: GetAccountInfoRequest) -> PlayFabResult[GetAccountInfoResult]: ...

    async def update_user_title_display_name(
        self,
        request: UpdateUserTitleDisplayNameRequest,
    ) -> PlayFabResult[UpdateUserTitleDisplayNameResult]: ...

    def forget_session(self) -> None: ...


class HttpPlayFabClient:
    """PlayFabClient over the vendor's JSON REST endpoints.

    Successful logins remember the session ticket; authenticated calls send
    it as X-Authorization. Pass http_client to share a connection pool (or a
    mock transport in tests); otherwise the client owns one and aclose()
    releases it.
    """

    def __init__(self, settings: PlayFabSettings, http_client: httpx.AsyncClient | None = None) -> None:
        self._base_url = settings.base_url
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)
        self._session_ticket: str | None = None

    @property
    def session_ticket(self) -> str | None:
        return self._session_ticket

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    def forget_session(self) -> None:
        self._session_ticket = None

    # -- login --

    async def login_with_custom_id(self, request: LoginWithCustomIDRequest) -> PlayFabResult[LoginResult]:
        return await self._login("LoginWithCustomID", request)

    async def login_with_email_address(self, request: LoginWithEmailAddressRequest) -> PlayFabResult[LoginResult]:
        return await self._login("LoginWithEmailAddress", request)

    async def login_with_playfab(self, request: LoginWithPlayFabRequest) -> PlayFabResult[LoginResult]:
        return await self._login("LoginWithPlayFab", request)

    async def login_with_android_device_id(
        self,
        request: LoginWithAndroidDeviceIDRequest,
    ) -> PlayFabResult[LoginResult]:
        return await self._login("LoginWithAndroidDeviceID", request)

    async def login_with_ios_device_id(self, request: LoginWithIOSDeviceIDRequest) -> PlayFabResult[LoginResult]:
        return await self._login("LoginWithIOSDeviceID", request)

    async def login_with_facebook(self, request: LoginWithFacebookRequest) -> PlayFabResult[LoginResult]:
        return await self._login("LoginWithFacebook", request)

    async def login_with_google_account(self, request: LoginWithGoogleAccountRequest) -> PlayFabResult[LoginResult]:
        return await self._login("LoginWithGoogleAccount", request)

    # -- authenticated --

    async def link_custom_id(self, request: LinkCustomIDRequest) -> PlayFabResult[EmptyResult]:
        return await self._call("LinkCustomID", request, EmptyResult, authenticated=True)

    async def unlink_custom_id(self, request: UnlinkCustomIDRequest) -> PlayFabResult[EmptyResult]:
        return await self._call("UnlinkCustomID", request, EmptyResult, authenticated=True)

    async def unlink_android_device_id(self, request: UnlinkAndroidDeviceIDRequest) -> PlayFabResult[EmptyResult]:
        return await self._call("UnlinkAndroidDeviceID", request, EmptyResult, authenticated=True)

    async def unlink_ios_device_id(self, request: UnlinkIOSDeviceIDRequest) -> PlayFabResult[EmptyResult]:
        return await self._call("UnlinkIOSDeviceID", request, EmptyResult, authenticated=True)

    async def add_username_password(
        self,
        request: AddUsernamePasswordRequest,
    ) -> PlayFabResult[AddUsernamePasswordResult]:
        return await self._call("AddUsernamePassword", request, AddUsernamePasswordResult, authenticated=True)

    async def get_account_info(self, request: GetAccountInfoRequest) -> PlayFabResult[GetAccountInfoResult]:
        return await self._call("GetAccountInfo", request, GetAccountInfoResult, authenticated=True)

    async def update_user_title_display_name(
        self,
        request: UpdateUserTitleDisplayNameRequest,
    ) -> PlayFabResult[UpdateUserTitleDisplayNameResult]:
        return await self._call(
            "UpdateUserTitleDisplayName",
            request,
            UpdateUserTitleDisplayNameResult,
            authenticated=True,
        )

    # -- private helpers --

    async def _login(self, api_name: str, request: PlayFabModel) -> PlayFabResult[LoginResult]:
        outcome = await self._call(api_name, request, LoginResult, authenticated=False)
        if outcome.result is not None:
            self._session_ticket = outcome.result.session_ticket
        return outcome

    async def _call(
        self,
        api_name: str,
        request: PlayFabModel,
        result_type: type[ModelT],
        *,
        authenticated: bool,
    ) -> PlayFabResult[ModelT]:
        headers = {"X-PlayFabSDK": SDK_HEADER}
        if authenticated:
            if self._session_ticket is None:
                return _error(
                    PlayFabErrorCode.NOT_AUTHENTICATED,
                    f"{api_name} requires a logged in player",
                    http_code=HTTPStatus.UNAUTHORIZED,
                )
            headers["X-Authorization"] = self._session_ticket

        url = f"{self._base_url}/Client/{api_name}"
        try:
            response = await self._http.post(url, json=request.to_wire(), headers=headers)
        except httpx.RequestError as exc:
            logger.warning("playfab request failed", api=api_name, error=str(exc))
            return _error(PlayFabErrorCode.CONNECTION_ERROR, f"Could not reach PlayFab: {exc}")

        try:
            body = response.json()
        except ValueError:
            logger.warning("playfab returned non-json body", api=api_name, status_code=response.status_code)
            return _error(
                PlayFabErrorCode.UNKNOWN_ERROR,
                f"Unexpected response from {api_name}",
                http_code=response.status_code,
            )

        if not isinstance(body, dict):
            return _error(PlayFabErrorCode.JSON_PARSE_ERROR, f"Unexpected response from {api_name}")

        if response.status_code != HTTPStatus.OK or "error" in body:
            try:
                error = PlayFabError.from_envelope(body)
            except ValidationError as exc:
                logger.warning("playfab error reply did not match model", api=api_name, error=str(exc))
                return _error(
                    PlayFabErrorCode.JSON_PARSE_ERROR,
                    f"Malformed {api_name} error reply",
                    http_code=response.status_code,
                )
            logger.info("playfab call rejected", api=api_name, error=error.error, error_code=error.error_code)
            return PlayFabResult(error=error)

        try:
            result = result_type.model_validate(body.get("data") or {})
        except ValidationError as exc:
            logger.warning("playfab response did not match model", api=api_name, error=str(exc))
            return _error(PlayFabErrorCode.JSON_PARSE_ERROR, f"Malformed {api_name} response")

        logger.debug("playfab call succeeded", api=api_name)
        return PlayFabResult(result=result)


def _error(error: str, message: str, *, http_code: int = 0) -> PlayFabResult[Any]:
    return PlayFabResult(error=PlayFabError(http_code=http_code, error=error, error_message=message))
