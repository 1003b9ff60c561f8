"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from repo_tree_reader.domain.entities import ProviderConfig, ProviderKind


class ProviderSettings(BaseModel):
    """One entry of the ``PROVIDERS`` JSON list."""

    host: str
    api_base_url: str | None = None
    kind: ProviderKind | None = None
    token: SecretStr | None = None
    username: str | None = None
    app_password: SecretStr | None = None

    def to_config(self) -> ProviderConfig:
        return ProviderConfig.for_host(
            self.host,
            api_base_url=self.api_base_url,
            kind=self.kind,
            token=self.token.get_secret_value() if self.token else None,
            username=self.username,
            app_password=(
                self.app_password.get_secret_value() if self.app_password else None
            ),
        )


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    providers: list[ProviderSettings] = [ProviderSettings(host="bitbucket.org")]
    working_directory: Path | None = None
    http_timeout: float = 30.0
    spool_max_bytes: int = 32 * 1024 * 1024
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    def provider_configs(self) -> tuple[ProviderConfig, ...]:
        return tuple(p.to_config() for p in self.providers)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
