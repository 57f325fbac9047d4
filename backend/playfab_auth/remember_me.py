"""Persisted auth state: the remember-me flag, the remember-me id and the last AuthType."""

from uuid import uuid4

import structlog

from playfab_auth.models import AuthType
from shared.storage import KeyValueStore

logger = structlog.get_logger()

DEFAULT_STORAGE_GROUP = "PlayFabBuddy.Auth"

LOGIN_REMEMBER_KEY = "PlayFabLoginRemember"
REMEMBER_ME_ID_KEY = "PlayFabIdPassGuid"
AUTH_TYPE_KEY = "PlayFabAuthType"


class AuthStateStore:
    """Remember-me bookkeeping over one storage group.

    The remember-me id is a surrogate credential: once the player opts in, a
    generated id is linked to their account as a custom id and used in place
    of the password on later logins.
    """

    def __init__(self, storage: KeyValueStore, group_name: str = DEFAULT_STORAGE_GROUP) -> None:
        self._group = storage.edit_group(group_name)

    @property
    def remember_me(self) -> bool:
        return self._group.get_bool(LOGIN_REMEMBER_KEY, default=False)

    @remember_me.setter
    def remember_me(self, value: bool) -> None:
        if not value:
            self.clear_remember_me()
            return
        self._group.put(LOGIN_REMEMBER_KEY, True)

    @property
    def auth_type(self) -> AuthType:
        stored = self._group.get(AUTH_TYPE_KEY)
        if stored is None:
            return AuthType.NONE
        try:
            return AuthType(stored)
        except ValueError:
            logger.warning("ignoring unknown stored auth type", auth_type=stored)
            return AuthType.NONE

    @auth_type.setter
    def auth_type(self, value: AuthType) -> None:
        self._group.put(AUTH_TYPE_KEY, AuthType(value).value)

    @property
    def remember_me_id(self) -> str | None:
        return self._group.get(REMEMBER_ME_ID_KEY) or None

    @remember_me_id.setter
    def remember_me_id(self, value: str | None) -> None:
        """Store value, or a freshly generated id when value is None or empty."""
        self._group.put(REMEMBER_ME_ID_KEY, value or str(uuid4()))

    def generate_remember_me_id(self) -> str:
        remember_me_id = str(uuid4())
        self._group.put(REMEMBER_ME_ID_KEY, remember_me_id)
        return remember_me_id

    def discard_remember_me_id(self) -> None:
        self._group.delete(REMEMBER_ME_ID_KEY)

    def clear_remember_me(self) -> None:
        """Forget the remember-me flag and id. The stored AuthType is kept."""
        self._group.delete(LOGIN_REMEMBER_KEY)
        self._group.delete(REMEMBER_ME_ID_KEY)
