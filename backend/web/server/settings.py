"""Web server configuration via environment variables."""

import json
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class WebServerSettings(BaseSettings):
    model_config = {"env_prefix": "WEB_", "populate_by_name": True}

    log_dir: str = "backend/logs/web"
    # JSON array or comma-separated list in WEB_CORS_ORIGINS.
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:5173"]
    provider_timeout: float = Field(default=10.0, gt=0)

    # Identity provider credentials use their conventional names, not WEB_*.
    # Login is enabled only when both are set.
    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")
    supabase_anon_key: str = Field(default="", validation_alias="SUPABASE_ANON_KEY")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        if not isinstance(v, str):
            return v
        v = v.strip()
        if v.startswith("["):
            return json.loads(v)
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @property
    def auth_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)
