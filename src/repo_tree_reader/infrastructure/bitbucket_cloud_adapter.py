"""Bitbucket Cloud adapter — implements the ProviderApi port for bitbucket.org."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from urllib.parse import quote, urlsplit

from repo_tree_reader.domain.entities import (
    ApiRequest,
    ArchiveStream,
    LocationDescriptor,
    ProviderConfig,
    RefType,
    ResolvedVersion,
)
from repo_tree_reader.domain.exceptions import (
    ArchiveFetchError,
    FileFetchError,
    InvalidLocationError,
    VersionResolutionError,
)
from repo_tree_reader.domain.value_objects import SourceUrl, classify_ref
from repo_tree_reader.infrastructure.http_client import ProviderHttpClient, first_value

logger = logging.getLogger(__name__)

_EXPECTED = "Expected format: https://{host}/<org>/<repo>[/src/<ref>[/<path>]]"


class BitbucketCloudAdapter:
    """Concrete ProviderApi backed by the Bitbucket Cloud 2.0 REST API.

    URLs look like ``https://bitbucket.org/<org>/<repo>/src/<ref>/<path>``;
    archives come from the web host's ``/get/<ref>.zip`` endpoint, which has
    no server-side path filter.
    """

    def __init__(self, http: ProviderHttpClient, config: ProviderConfig) -> None:
        self._http = http
        self._config = config
        self._scheme = urlsplit(config.api_base_url).scheme or "https"

    @property
    def config(self) -> ProviderConfig:
        return self._config

    # ── URL grammar ─────────────────────────────────────────────────────

    def parse_location(self, url: SourceUrl) -> LocationDescriptor:
        segments = url.segments
        if len(segments) < 2 or "" in segments:
            raise self._invalid(url, "Missing organization or repository.")

        org, repo = segments[0], segments[1].removesuffix(".git")
        if not repo:
            raise self._invalid(url, "Missing repository name.")

        rest = segments[2:]
        if not rest:
            return LocationDescriptor(org, repo, RefType.DEFAULT)
        if rest[0] != "src" or len(rest) < 2:
            raise self._invalid(url, f"Unsupported path segment '{rest[0]}'.")

        ref = rest[1]
        return LocationDescriptor(
            organization=org,
            repository=repo,
            ref_type=classify_ref(ref),
            ref=ref,
            sub_path="/".join(rest[2:]),
        )

    def format_location(self, location: LocationDescriptor) -> str:
        base = (
            f"{self._scheme}://{self._config.host}/"
            f"{quote(location.organization, safe='')}/{quote(location.repository, safe='')}"
        )
        if location.ref is None:
            if location.sub_path:
                raise ValueError("Bitbucket Cloud URLs need an explicit ref to name a sub-path.")
            return base
        url = f"{base}/src/{quote(location.ref, safe='')}"
        if location.sub_path:
            url = f"{url}/{quote(location.sub_path)}"
        return url

    # ── Version lookup ──────────────────────────────────────────────────

    async def fetch_default_branch(self, location: LocationDescriptor) -> str:
        """GET /repositories/{org}/{repo} → mainbranch.name."""
        data = await self._http.get_json(
            ApiRequest(self._repo_api(location)), error=VersionResolutionError
        )
        try:
            return str(data["mainbranch"]["name"])
        except (KeyError, TypeError) as exc:
            raise VersionResolutionError(
                f"{self._config.host}: repository {_full_name(location)} reports no main branch.",
                host=self._config.host,
            ) from exc

    async def fetch_latest_commit(self, location: LocationDescriptor, branch: str) -> str:
        """GET /repositories/{org}/{repo}/commits/{branch}?pagelen=1 → values[0].hash."""
        data = await self._http.get_json(
            ApiRequest(
                f"{self._repo_api(location)}/commits/{quote(branch, safe='')}",
                {"pagelen": "1"},
            ),
            error=VersionResolutionError,
        )
        commit = first_value(data, "hash")
        if not commit:
            raise VersionResolutionError(
                f"{self._config.host}: no commits found for '{branch}' in {_full_name(location)}.",
                host=self._config.host,
            )
        return commit

    # ── Downloads ───────────────────────────────────────────────────────

    def archive_request(
        self, location: LocationDescriptor, version: ResolvedVersion
    ) -> ApiRequest:
        return ApiRequest(
            f"{self._scheme}://{self._config.host}/"
            f"{quote(location.organization, safe='')}/{quote(location.repository, safe='')}"
            f"/get/{quote(version.commit_id, safe='')}.zip"
        )

    def open_archive(
        self, location: LocationDescriptor, version: ResolvedVersion
    ) -> AbstractAsyncContextManager[ArchiveStream]:
        return self._http.open_stream(
            self.archive_request(location, version), error=ArchiveFetchError
        )

    async def fetch_file(self, location: LocationDescriptor, ref: str) -> bytes:
        """GET /repositories/{org}/{repo}/src/{ref}/{path} → raw bytes."""
        return await self._http.get_bytes(
            ApiRequest(
                f"{self._repo_api(location)}/src/{quote(ref, safe='')}/{quote(location.sub_path)}"
            ),
            error=FileFetchError,
        )

    # ── Helpers ─────────────────────────────────────────────────────────

    def _repo_api(self, location: LocationDescriptor) -> str:
        return (
            f"{self._config.api_base_url}/repositories/"
            f"{quote(location.organization, safe='')}/{quote(location.repository, safe='')}"
        )

    def _invalid(self, url: SourceUrl, reason: str) -> InvalidLocationError:
        return InvalidLocationError(
            f"Invalid Bitbucket URL: '{url.raw}'. {reason} "
            + _EXPECTED.format(host=self._config.host),
            host=self._config.host,
            source_url=url.raw,
        )


def _full_name(location: LocationDescriptor) -> str:
    return f"{location.organization}/{location.repository}"

