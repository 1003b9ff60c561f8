"""Shared HTTP plumbing for provider adapters — auth headers and error translation."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from repo_tree_reader.domain.entities import ApiRequest, ArchiveStream, ProviderConfig
from repo_tree_reader.domain.exceptions import TreeReaderError

logger = logging.getLogger(__name__)

_USER_AGENT = "repo-tree-reader/1.0"
_FILENAME_RE = re.compile(r"filename\*?=(?:UTF-8'')?\"?([^\";]+)\"?", re.IGNORECASE)


def _suggested_filename(disposition: str | None) -> str | None:
    if not disposition:
        return None
    match = _FILENAME_RE.search(disposition)
    return match[1].strip() if match else None


class ProviderHttpClient:
    """GET helper bound to one provider's credentials.

    Every failure is raised as the caller-supplied ``error`` type so each
    pipeline stage surfaces its own exception class.
    """

    def __init__(self, client: httpx.AsyncClient, config: ProviderConfig) -> None:
        self._client = client
        self._host = config.host
        self._headers: dict[str, str] = {"User-Agent": _USER_AGENT}
        self._auth: httpx.BasicAuth | None = None
        if config.token:
            self._headers["Authorization"] = f"Bearer {config.token}"
        elif config.username and config.app_password:
            self._auth = httpx.BasicAuth(config.username, config.app_password)

    async def get_json(
        self, request: ApiRequest, *, error: type[TreeReaderError]
    ) -> Any:
        """GET a JSON document."""
        resp = await self._get(request, error, accept="application/json")
        try:
            return resp.json()
        except ValueError as exc:
            raise error(
                f"{self._host} returned a non-JSON body for {resp.url}",
                url=str(resp.url),
                host=self._host,
                status_code=resp.status_code,
            ) from exc

    async def get_bytes(
        self, request: ApiRequest, *, error: type[TreeReaderError]
    ) -> bytes:
        """GET a raw body."""
        resp = await self._get(request, error)
        return resp.content

    @asynccontextmanager
    async def open_stream(
        self, request: ApiRequest, *, error: type[TreeReaderError]
    ) -> AsyncIterator[ArchiveStream]:
        """Open a streamed GET; transport errors while reading surface as ``error``."""
        logger.debug("GET %s %s (streamed)", request.url, request.params)
        try:
            async with self._client.stream(
                "GET",
                request.url,
                params=request.params,
                headers=self._headers,
                auth=self._auth or httpx.USE_CLIENT_DEFAULT,
            ) as resp:
                self._raise_for_status(resp, error)
                yield ArchiveStream(
                    chunks=resp.aiter_bytes(),
                    content_type=resp.headers.get("content-type", ""),
                    suggested_filename=_suggested_filename(
                        resp.headers.get("content-disposition")
                    ),
                )
        except httpx.HTTPError as exc:
            raise error(
                f"Network error fetching {request.url}: {exc}",
                url=request.url,
                host=self._host,
            ) from exc

    async def _get(
        self,
        request: ApiRequest,
        error: type[TreeReaderError],
        accept: str | None = None,
    ) -> httpx.Response:
        headers = dict(self._headers)
        if accept:
            headers["Accept"] = accept
        logger.debug("GET %s %s", request.url, request.params)
        try:
            resp = await self._client.get(
                request.url,
                params=request.params,
                headers=headers,
                auth=self._auth or httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.HTTPError as exc:
            raise error(
                f"Network error fetching {request.url}: {exc}",
                url=request.url,
                host=self._host,
            ) from exc

        self._raise_for_status(resp, error)
        return resp

    def _raise_for_status(
        self, resp: httpx.Response, error: type[TreeReaderError]
    ) -> None:
        if resp.is_success:
            return

        status = resp.status_code
        url = str(resp.url)

        if status == 404:
            message = f"{self._host}: resource not found (HTTP 404) for {url}"
        elif status in (401, 403):
            message = (
                f"{self._host}: access denied (HTTP {status}) for {url}. "
                "Check the credentials configured for this host."
            )
        elif status == 429:
            message = f"{self._host}: rate limit exceeded (HTTP 429) for {url}"
        else:
            message = f"{self._host} returned HTTP {status} for {url}"

        raise error(message, url=url, host=self._host, status_code=status)


def first_value(data: Any, key: str) -> str | None:
    """``data["values"][0][key]`` from a paged provider response, if present."""
    values = data.get("values") if isinstance(data, dict) else None
    if not values or not isinstance(values[0], dict) or not values[0].get(key):
        return None
    return str(values[0][key])
