"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable

_CLOUD_HOST = "bitbucket.org"
_CLOUD_API = "https://api.bitbucket.org/2.0"


class ProviderKind(str, Enum):
    """Which Bitbucket dialect (URL grammar + REST API) a host speaks."""

    CLOUD = "cloud"
    SERVER = "server"


class RefType(str, Enum):
    """How the ref of a location was expressed in the URL."""

    BRANCH = "branch"
    COMMIT = "commit"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """One configured hosting endpoint, immutable for the process lifetime."""

    host: str
    api_base_url: str
    kind: ProviderKind
    token: str | None = field(default=None, repr=False)
    username: str | None = None
    app_password: str | None = field(default=None, repr=False)

    @classmethod
    def for_host(
        cls,
        host: str,
        api_base_url: str | None = None,
        kind: ProviderKind | None = None,
        **credentials: str | None,
    ) -> ProviderConfig:
        """Build a config, filling in the conventional defaults for *host*."""
        if kind is None:
            kind = ProviderKind.CLOUD if host == _CLOUD_HOST else ProviderKind.SERVER
        if not api_base_url:
            api_base_url = (
                _CLOUD_API if host == _CLOUD_HOST else f"https://{host}/rest/api/1.0"
            )
        return cls(
            host=host,
            api_base_url=api_base_url.rstrip("/"),
            kind=kind,
            **credentials,
        )


@dataclass(frozen=True, slots=True)
class LocationDescriptor:
    """A normalized pointer into a repository, parsed from a URL."""

    organization: str
    repository: str
    ref_type: RefType
    ref: str | None = None
    sub_path: str = ""


@dataclass(frozen=True, slots=True)
class ResolvedVersion:
    """The concrete commit a tree was (or will be) fetched at."""

    commit_id: str


@dataclass(frozen=True, slots=True)
class ApiRequest:
    """A fully-built GET request against a provider."""

    url: str
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ArchiveStream:
    """A streamed archive download, consumed exactly once."""

    chunks: AsyncIterator[bytes]
    content_type: str
    suggested_filename: str | None = None


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """One member of a decoded archive."""

    path: str
    is_directory: bool
    read: Callable[[], bytes]


@dataclass(frozen=True, slots=True)
class ExtractedFile:
    """A file from a fetched tree, relative to the requested sub-path."""

    path: str
    data: bytes = field(repr=False)

    def content(self) -> bytes:
        return self.data

    @property
    def size(self) -> int:
        return len(self.data)
