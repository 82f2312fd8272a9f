from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # True for production (structured JSON), False for dev (colored)

    # Engine
    max_depth: int = Field(default=64, ge=1)  # nested record recursion guard

    # Validators
    phone_default_region: str | None = None  # e.g. "US"; None requires or assumes a leading "+"
    url_schemes: frozenset[str] = frozenset({"http", "https", "ftp", "ftps", "ws", "wss"})

    model_config = SettingsConfigDict(env_prefix="FIELDGUARD_", env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
