"""PlayFab auth configuration via environment variables."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class PlayFabSettings(BaseSettings):
    model_config = {"env_prefix": "PLAYFAB_"}

    # PlayFab title id -- required, no default.
    title_id: str = Field(min_length=1)

    api_host: str = Field(default="playfabapi.com", min_length=1)
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    storage_backend: Literal["file", "memory"] = "file"
    storage_path: str = Field(default="data/playfab_auth.json", min_length=1)
    storage_group: str = Field(default="PlayFabBuddy.Auth", min_length=1)

    # Steal a remember-me custom id already linked to another account.
    force_link: bool = False

    log_dir: str | None = None

    @property
    def base_url(self) -> str:
        return f"https://{self.title_id}.{self.api_host}"
