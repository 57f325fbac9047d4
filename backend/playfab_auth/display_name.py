"""Read and change the logged in player's title display name."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from playfab_auth.models import GetAccountInfoRequest, UpdateUserTitleDisplayNameRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from playfab_auth.client import PlayFabClient
    from playfab_auth.service import PlayFabAuthService

logger = structlog.get_logger()


class PlayFabDisplayNameService:
    def __init__(
        self,
        client: PlayFabClient,
        auth: PlayFabAuthService,
        on_display_name_change: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._auth = auth
        self._display_name: str | None = None
        self.on_display_name_change = on_display_name_change

    async def get_display_name(self) -> str | None:
        """Fetch the display name. On failure return the last value seen."""
        outcome = await self._client.get_account_info(GetAccountInfoRequest(playfab_id=self._auth.playfab_id))
        if outcome.result is None:
            logger.warning("could not fetch display name", error=outcome.error.error if outcome.error else None)
            return self._display_name

        account = outcome.result.account_info
        title_info = account.title_info if account is not None else None
        self._display_name = title_info.display_name if title_info is not None else None
        return self._display_name

    async def set_display_name(self, display_name: str) -> str:
        """Change the display name. Return "" on success, else the vendor's error message."""
        outcome = await self._client.update_user_title_display_name(
            UpdateUserTitleDisplayNameRequest(display_name=display_name),
        )
        if outcome.error is not None:
            logger.info("display name rejected", error=outcome.error.error)
            return outcome.error.error_message or outcome.error.error

        self._display_name = display_name
        logger.info("display name changed", playfab_id=self._auth.playfab_id)
        if self.on_display_name_change is not None:
            self.on_display_name_change(display_name)
        return ""
