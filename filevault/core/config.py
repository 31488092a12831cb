# filevault/core/config.py
from datetime import timedelta
from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

TEN_MEGABYTES_IN_BYTES = 10 * 1024 * 1024

# Development-only fallbacks, the factory warns when they are still in use.
DEFAULT_ACCESS_TOKEN_SECRET = "dev-access-secret"
DEFAULT_REFRESH_TOKEN_SECRET = "dev-refresh-secret"


class Settings(BaseSettings):
    service_name: str = "filevault"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./filevault.db"

    # Blobs live under <users_files_path>/<user_id>/<system_name>
    users_files_path: str = "./users_files"
    file_size_limit_bytes: int = TEN_MEGABYTES_IN_BYTES
    acceptable_mime_types: list[str] = ["image/jpeg", "application/msword", "application/zip"]
    max_files_list: int = 100

    access_token_secret: SecretStr = SecretStr(DEFAULT_ACCESS_TOKEN_SECRET)
    access_token_expiry: timedelta = timedelta(minutes=10)
    refresh_token_secret: SecretStr = SecretStr(DEFAULT_REFRESH_TOKEN_SECRET)
    refresh_token_cookie_name: str = "refreshToken"
    random_id_length: int = 64

    cookie_secure: bool = True
    cookie_httponly: bool = True

    # Password policy applied on sign-up
    password_min_length: int = 8
    password_min_lowercase: int = 1
    password_min_uppercase: int = 1
    password_min_numbers: int = 0
    password_min_symbols: int = 0

    cors_origins: list[str] = ["*"]

    # Tell pydantic-settings to load from .env at project root
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore any extra stuff in .env
    )

    def uses_default_secrets(self) -> bool:
        return (
            self.access_token_secret.get_secret_value() == DEFAULT_ACCESS_TOKEN_SECRET
            or self.refresh_token_secret.get_secret_value() == DEFAULT_REFRESH_TOKEN_SECRET
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
