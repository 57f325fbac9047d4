"""Client-side PlayFab authentication: login routes, remember-me and display names."""

__version__ = "0.1.0"

from playfab_auth.client import HttpPlayFabClient, PlayFabClient  # noqa: E402
from playfab_auth.device import DeviceInfo, Platform, local_device_info  # noqa: E402
from playfab_auth.display_name import PlayFabDisplayNameService  # noqa: E402
from playfab_auth.facebook import FacebookService, FacebookUser  # noqa: E402
from playfab_auth.models import (  # noqa: E402
    AuthType,
    GetPlayerCombinedInfoRequestParams,
    LoginResult,
    PlayFabError,
    PlayFabErrorCode,
    PlayFabResult,
)
from playfab_auth.remember_me import AuthStateStore  # noqa: E402
from playfab_auth.service import PlayFabAuthService  # noqa: E402
from playfab_auth.settings import PlayFabSettings  # noqa: E402

__all__ = [
    "AuthStateStore",
    "AuthType",
    "DeviceInfo",
    "FacebookService",
    "FacebookUser",
    "GetPlayerCombinedInfoRequestParams",
    "HttpPlayFabClient",
    "LoginResult",
    "Platform",
    "PlayFabAuthService",
    "PlayFabClient",
    "PlayFabDisplayNameService",
    "PlayFabError",
    "PlayFabErrorCode",
    "PlayFabResult",
    "PlayFabSettings",
    "__version__",
    "local_device_info",
]
