"""Auth types and the PlayFab Client API request/response models we use.

Python field names are snake_case; every model serializes to the vendor's
PascalCase JSON names. The few names that do not follow plain PascalCase
(``PlayFabId``, ``OS``) carry explicit aliases.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal


class AuthType(StrEnum):
    """Login route. Persisted across sessions, so values must stay stable."""

    NONE = "none"
    SILENT = "silent"
    USERNAME_AND_PASSWORD = "username_and_password"
    EMAIL_AND_PASSWORD = "email_and_password"
    REGISTER_ACCOUNT = "register_account"
    FACEBOOK = "facebook"
    GOOGLE = "google"


class PlayFabErrorCode(StrEnum):
    """Vendor error names referenced by this package."""

    UNKNOWN_ERROR = "UnknownError"
    CONNECTION_ERROR = "ConnectionError"
    JSON_PARSE_ERROR = "JsonParseError"
    NOT_AUTHENTICATED = "NotAuthenticated"
    INVALID_PARAMS = "InvalidParams"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    INVALID_EMAIL_OR_PASSWORD = "InvalidEmailOrPassword"
    FACEBOOK_LOGIN_CANCELLED = "FacebookLoginCancelled"


class PlayFabModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the vendor's JSON shape, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GetPlayerCombinedInfoRequestParams(PlayFabModel):
    """Extra payload to fetch alongside a login. All flags default to off."""

    get_user_account_info: bool = False
    get_user_inventory: bool = False
    get_user_virtual_currency: bool = False
    get_user_data: bool = False
    get_user_read_only_data: bool = False
    get_character_list: bool = False
    get_character_inventories: bool = False
    get_title_data: bool = False
    get_player_statistics: bool = False
    get_player_profile: bool = False
    user_data_keys: list[str] | None = None
    title_data_keys: list[str] | None = None
    player_statistic_names: list[str] | None = None


# -- requests --


class _LoginRequest(PlayFabModel):
    title_id: str | None = None
    create_account: bool | None = None
    info_request_parameters: GetPlayerCombinedInfoRequestParams | None = None


class LoginWithCustomIDRequest(_LoginRequest):
    custom_id: str


class LoginWithEmailAddressRequest(_LoginRequest):
    email: str
    password: str


class LoginWithPlayFabRequest(_LoginRequest):
    username: str
    password: str


class LoginWithAndroidDeviceIDRequest(_LoginRequest):
    android_device_id: str
    android_device: str | None = None
    os: str | None = Field(default=None, alias="OS")


class LoginWithIOSDeviceIDRequest(_LoginRequest):
    device_id: str
    device_model: str | None = None
    os: str | None = Field(default=None, alias="OS")


class LoginWithFacebookRequest(_LoginRequest):
    access_token: str


class LoginWithGoogleAccountRequest(_LoginRequest):
    server_auth_code: str


class LinkCustomIDRequest(PlayFabModel):
    custom_id: str
    force_link: bool = False


class UnlinkCustomIDRequest(PlayFabModel):
    custom_id: str | None = None


class UnlinkAndroidDeviceIDRequest(PlayFabModel):
    android_device_id: str | None = None


class UnlinkIOSDeviceIDRequest(PlayFabModel):
    device_id: str | None = None


class AddUsernamePasswordRequest(PlayFabModel):
    username: str
    email: str
    password: str


class GetAccountInfoRequest(PlayFabModel):
    playfab_id: str | None = Field(default=None, alias="PlayFabId")
    email: str | None = None
    username: str | None = None


class UpdateUserTitleDisplayNameRequest(PlayFabModel):
    display_name: str


# -- results --


class LoginResult(PlayFabModel):
    playfab_id: str = Field(alias="PlayFabId")
    session_ticket: str
    newly_created: bool = False
    last_login_time: datetime | None = None
    info_result_payload: dict[str, Any] | None = None


class AddUsernamePasswordResult(PlayFabModel):
    username: str | None = None


class UserTitleInfo(PlayFabModel):
    display_name: str | None = None
    created: datetime | None = None
    is_banned: bool | None = None


class UserAccountInfo(PlayFabModel):
    playfab_id: str | None = Field(default=None, alias="PlayFabId")
    username: str | None = None
    title_info: UserTitleInfo | None = None


class GetAccountInfoResult(PlayFabModel):
    account_info: UserAccountInfo | None = None


class UpdateUserTitleDisplayNameResult(PlayFabModel):
    display_name: str | None = None


class EmptyResult(PlayFabModel):
    pass


class PlayFabError(BaseModel, frozen=True):
    """Error returned by the vendor, or synthesized for transport failures."""

    http_code: int = 0
    http_status: str = ""
    error: str = PlayFabErrorCode.UNKNOWN_ERROR
    error_code: int = 0
    error_message: str = ""
    error_details: dict[str, list[str]] | None = None

    @classmethod
    def from_envelope(cls, body: dict[str, Any]) -> "PlayFabError":
        return cls(
            http_code=body.get("code") or 0,
            http_status=body.get("status") or "",
            error=body.get("error") or PlayFabErrorCode.UNKNOWN_ERROR,
            error_code=body.get("errorCode") or 0,
            error_message=body.get("errorMessage") or "",
            error_details=body.get("errorDetails"),
        )


ResultT = TypeVar("ResultT", bound=BaseModel)


@dataclass(frozen=True)
class PlayFabResult(Generic[ResultT]):
    """Outcome of one vendor call: exactly one of result/error is set."""

    result: ResultT | None = None
    error: PlayFabError | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("PlayFabResult needs exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.error is None
