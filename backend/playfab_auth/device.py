"""Device description used for silent (device-id) login."""

import platform
import sys
from dataclasses import dataclass
from enum import StrEnum
from uuid import uuid4

from shared.storage import KeyValueStore

DEVICE_STORAGE_GROUP = "PlayFabBuddy.Device"
DEVICE_ID_KEY = "DeviceId"


class Platform(StrEnum):
    ANDROID = "Android"
    IOS = "iOS"
    WINDOWS = "Windows"
    MACOS = "macOS"
    LINUX = "Linux"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class DeviceInfo:
    device_id: str
    device_name: str
    model: str
    platform: Platform
    os_version: str = ""


def detect_platform(sys_platform: str | None = None) -> Platform:
    """Map a sys.platform string onto Platform."""
    value = sys_platform if sys_platform is not None else sys.platform
    if value.startswith("linux"):
        return Platform.LINUX
    if value == "darwin":
        return Platform.MACOS
    if value in ("win32", "cygwin"):
        return Platform.WINDOWS
    if value == "ios":
        return Platform.IOS
    if value == "android":
        return Platform.ANDROID
    return Platform.UNKNOWN


def local_device_info(storage: KeyValueStore) -> DeviceInfo:
    """Describe this host.

    The device id is generated once and persisted, so silent login keeps
    resolving to the same account across runs.
    """
    group = storage.edit_group(DEVICE_STORAGE_GROUP)
    device_id = group.get(DEVICE_ID_KEY)
    if not device_id:
        device_id = str(uuid4())
        group.put(DEVICE_ID_KEY, device_id)

    return DeviceInfo(
        device_id=device_id,
        device_name=platform.node() or "unknown",
        model=platform.machine() or "unknown",
        platform=detect_platform(),
        os_version=platform.release(),
    )
