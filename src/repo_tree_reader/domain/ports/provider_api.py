"""Port: provider API — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from repo_tree_reader.domain.entities import (
    ApiRequest,
    ArchiveStream,
    LocationDescriptor,
    ProviderConfig,
    ResolvedVersion,
)
from repo_tree_reader.domain.value_objects import SourceUrl


class ProviderApi(Protocol):
    """Abstract contract for one hosting dialect bound to one configured host."""

    @property
    def config(self) -> ProviderConfig:
        """The endpoint this adapter talks to."""
        ...

    def parse_location(self, url: SourceUrl) -> LocationDescriptor:
        """Parse a URL on this host, raising ``InvalidLocationError`` on mismatch."""
        ...

    def format_location(self, location: LocationDescriptor) -> str:
        """Build the canonical browser URL for a descriptor."""
        ...

    async def fetch_default_branch(self, location: LocationDescriptor) -> str:
        """Return the repository's default branch name."""
        ...

    async def fetch_latest_commit(self, location: LocationDescriptor, branch: str) -> str:
        """Return the hash of the newest commit on *branch*."""
        ...

    def archive_request(
        self, location: LocationDescriptor, version: ResolvedVersion
    ) -> ApiRequest:
        """Build the zip download request for the location at *version*."""
        ...

    def open_archive(
        self, location: LocationDescriptor, version: ResolvedVersion
    ) -> AbstractAsyncContextManager[ArchiveStream]:
        """Stream the zip archive; the stream is valid inside the context only."""
        ...

    async def fetch_file(self, location: LocationDescriptor, ref: str) -> bytes:
        """Return the raw bytes of the file at ``location.sub_path``."""
        ...
