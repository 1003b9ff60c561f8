"""FastAPI dependency injection wiring."""

from __future__ import annotations

from functools import lru_cache

import httpx

from repo_tree_reader.infrastructure.config import Settings, get_settings
from repo_tree_reader.infrastructure.providers import build_providers
from repo_tree_reader.infrastructure.zip_archive import ZipArchiveCodec
from repo_tree_reader.services.url_reader import UrlReader

_http_client: httpx.AsyncClient | None = None


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout),
        follow_redirects=True,
    )


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None


@lru_cache(maxsize=1)
def _settings() -> Settings:
    return get_settings()


def get_reader() -> UrlReader:
    """Build a reader over the configured providers and the shared HTTP client."""
    settings = _settings()

    assert _http_client is not None, "startup() was not called"

    return UrlReader(
        providers=build_providers(settings.provider_configs(), _http_client),
        codec=ZipArchiveCodec(),
        working_directory=settings.working_directory,
        spool_max_bytes=settings.spool_max_bytes,
    )
