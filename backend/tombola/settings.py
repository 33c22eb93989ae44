"""Tombola client configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class TombolaSettings(BaseSettings):
    model_config = {"env_prefix": "TOMBOLA_"}

    api_host: str = Field(default="127.0.0.1", min_length=1)
    api_port: int = Field(default=3000, ge=1, le=65535)
    api_protocol: str = Field(default="http", pattern=r"^https?$")
    request_timeout: float = Field(default=10.0, gt=0)

    # Poll loop period; the first tick always runs immediately.
    poll_interval_ms: int = Field(default=2000, ge=100)

    # One storage file per profile, see shared.storage.LocalStorage.
    storage_path: str = Field(default="backend/data/tombola-storage.json", min_length=1)

    # Where the /api/auth/* endpoints are served (the web package).
    auth_base_url: str = "http://localhost:5173"

    debug_mode: bool = False
    log_dir: str | None = None

    @property
    def api_base_url(self) -> str:
        return f"{self.api_protocol}://{self.api_host}:{self.api_port}"
