"""Facebook login seam. The Facebook SDK integration itself lives with the game client."""

from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class FacebookUser(BaseModel, frozen=True):
    user_id: str
    name: str = ""
    token: str


@runtime_checkable
class FacebookService(Protocol):
    """What the auth service needs from a Facebook integration."""

    @property
    def logged_in(self) -> bool: ...

    @property
    def user(self) -> FacebookUser | None: ...

    async def login(self) -> FacebookUser | None:
        """Run the Facebook login flow. Return None if the player cancelled."""
        ...
