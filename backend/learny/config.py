import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="LEARNY_DATABASE_URL")
    database_pool_size: int = Field(10, alias="LEARNY_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="LEARNY_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="LEARNY_DATABASE_ECHO")
    local_store_dir: str = Field("data/local", alias="LEARNY_LOCAL_STORE_DIR")
    timezone: str = Field("Europe/Stockholm", alias="LEARNY_TIMEZONE")
    profile_sync_timeout: float = Field(10.0, gt=0, alias="LEARNY_PROFILE_SYNC_TIMEOUT")
    functions_url: Optional[str] = Field(None, alias="LEARNY_FUNCTIONS_URL")
    functions_anon_key: Optional[str] = Field(None, alias="LEARNY_FUNCTIONS_ANON_KEY")
    generation_timeout_ms: int = Field(30000, alias="LEARNY_GENERATION_TIMEOUT_MS")
    password_reset_redirect: str = Field(
        "http://localhost:5173/reset-password",
        alias="LEARNY_PASSWORD_RESET_REDIRECT",
    )

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
