from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReqbindSettings(BaseSettings):
    """Runtime settings, read from ``REQBIND_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="REQBIND_", extra="ignore")

    log_level: str = Field(default="INFO", description="Logging level for the CLI")
    default_charset: str = Field(default="utf-8", description="Charset when Content-Type has none")
    max_body_bytes: int = Field(default=1_048_576, ge=0, description="Upper bound on a buffered body")

    # missing fields in implicit structure binding: keep defaults (False) or fail (True)
    strict_structure_binding: bool = False


@lru_cache(maxsize=1)
def get_settings() -> ReqbindSettings:
    return ReqbindSettings()
