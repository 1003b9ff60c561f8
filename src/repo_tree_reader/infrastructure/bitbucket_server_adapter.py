"""Bitbucket Server adapter — implements the ProviderApi port for self-hosted instances."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from urllib.parse import quote, urlencode, urlsplit

from repo_tree_reader.domain.entities import (
    ApiRequest,
    ArchiveStream,
    LocationDescriptor,
    ProviderConfig,
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

_EXPECTED = (
    "Expected format: https://{host}/projects/<project>/repos/<repo>"
    "[/browse[/<path>]][?at=<ref>]"
)
_BRANCH_PREFIX = "refs/heads/"


class BitbucketServerAdapter:
    """Concrete ProviderApi backed by the Bitbucket Server 1.0 REST API.

    The project key plays the role of the organization.  The archive endpoint
    filters by path on the server, and wraps content in a ``<repo>/`` prefix.
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
        start = _find_projects(segments)
        if start is None or "" in segments:
            raise self._invalid(url, "Missing /projects/<project>/repos/<repo>.")

        org, repo = segments[start + 1], segments[start + 3]
        rest = segments[start + 4 :]
        if rest and rest[0] != "browse":
            raise self._invalid(url, f"Unsupported path segment '{rest[0]}'.")

        ref = url.query.get("at") or None
        if ref and ref.startswith(_BRANCH_PREFIX):
            ref = ref[len(_BRANCH_PREFIX) :]

        return LocationDescriptor(
            organization=org,
            repository=repo,
            ref_type=classify_ref(ref),
            ref=ref,
            sub_path="/".join(rest[1:]),
        )

    def format_location(self, location: LocationDescriptor) -> str:
        url = (
            f"{self._scheme}://{self._config.host}/projects/"
            f"{quote(location.organization, safe='')}/repos/"
            f"{quote(location.repository, safe='')}/browse"
        )
        if location.sub_path:
            url = f"{url}/{quote(location.sub_path)}"
        if location.ref:
            url = f"{url}?{urlencode({'at': location.ref})}"
        return url

    # ── Version lookup ──────────────────────────────────────────────────

    async def fetch_default_branch(self, location: LocationDescriptor) -> str:
        """GET /projects/{p}/repos/{r}/branches/default → displayId."""
        data = await self._http.get_json(
            ApiRequest(f"{self._repo_api(location)}/branches/default"),
            error=VersionResolutionError,
        )
        branch = data.get("displayId") if isinstance(data, dict) else None
        if not branch:
            raise VersionResolutionError(
                f"{self._config.host}: repository {_full_name(location)} reports no default branch.",
                host=self._config.host,
            )
        return str(branch)

    async def fetch_latest_commit(self, location: LocationDescriptor, branch: str) -> str:
        """GET /projects/{p}/repos/{r}/commits?until={branch}&limit=1 → values[0].id."""
        data = await self._http.get_json(
            ApiRequest(
                f"{self._repo_api(location)}/commits",
                {"until": branch, "limit": "1"},
            ),
            error=VersionResolutionError,
        )
        commit = first_value(data, "id")
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
        params = {
            "format": "zip",
            "prefix": location.repository,
            "at": version.commit_id,
        }
        if location.sub_path:
            params["path"] = location.sub_path
        return ApiRequest(f"{self._repo_api(location)}/archive", params)

    def open_archive(
        self, location: LocationDescriptor, version: ResolvedVersion
    ) -> AbstractAsyncContextManager[ArchiveStream]:
        return self._http.open_stream(
            self.archive_request(location, version), error=ArchiveFetchError
        )

    async def fetch_file(self, location: LocationDescriptor, ref: str) -> bytes:
        """GET /projects/{p}/repos/{r}/raw/{path}?at={ref} → raw bytes."""
        return await self._http.get_bytes(
            ApiRequest(
                f"{self._repo_api(location)}/raw/{quote(location.sub_path)}",
                {"at": ref},
            ),
            error=FileFetchError,
        )

    # ── Helpers ─────────────────────────────────────────────────────────

    def _repo_api(self, location: LocationDescriptor) -> str:
        return (
            f"{self._config.api_base_url}/projects/"
            f"{quote(location.organization, safe='')}/repos/"
            f"{quote(location.repository, safe='')}"
        )

    def _invalid(self, url: SourceUrl, reason: str) -> InvalidLocationError:
        return InvalidLocationError(
            f"Invalid Bitbucket Server URL: '{url.raw}'. {reason} "
            + _EXPECTED.format(host=self._config.host),
            host=self._config.host,
            source_url=url.raw,
        )


def _find_projects(segments: tuple[str, ...]) -> int | None:
    """Index of ``projects`` in ``.../projects/<p>/repos/<r>``; allows a context path."""
    for i, segment in enumerate(segments):
        if segment == "projects" and len(segments) > i + 3 and segments[i + 2] == "repos":
            return i
    return None


def _full_name(location: LocationDescriptor) -> str:
    return f"{location.organization}/{location.repository}"

