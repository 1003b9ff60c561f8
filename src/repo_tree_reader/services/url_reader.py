"""Read-tree use case — the orchestration pipeline behind every request.

This is the single entry point for the business logic.  It depends only on
the two ports (:class:`ProviderApi` and :class:`ArchiveCodec`) and the pure
service modules.  The interface layer injects concrete adapters at runtime.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from repo_tree_reader.domain.exceptions import (
    InvalidLocationError,
    NotModifiedError,
    TreeReaderError,
)
from repo_tree_reader.domain.ports.archive_codec import ArchiveCodec
from repo_tree_reader.domain.ports.provider_api import ProviderApi
from repo_tree_reader.services.tree_extractor import (
    DEFAULT_SPOOL_MAX_BYTES,
    PathFilter,
    extract_tree,
)
from repo_tree_reader.services.tree_response import ReadTreeResponse
from repo_tree_reader.services.url_resolver import resolve_location
from repo_tree_reader.services.version_resolver import resolve_ref, resolve_version

logger = logging.getLogger(__name__)


class UrlReader:
    """Reads files and trees from the configured hosting providers.

    Parameters
    ----------
    providers:
        Host → adapter mapping, fixed for the reader's lifetime.
    codec:
        Archive decoder used for tree downloads.
    working_directory:
        Default parent directory for materialized trees.
    spool_max_bytes:
        In-memory limit for a downloaded archive before it spills to disk.
    """

    def __init__(
        self,
        providers: Mapping[str, ProviderApi],
        codec: ArchiveCodec,
        *,
        working_directory: Path | None = None,
        spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES,
    ) -> None:
        self._providers = providers
        self._codec = codec
        self._working_directory = working_directory
        self._spool_max_bytes = spool_max_bytes

    # ── Public entry points ─────────────────────────────────────────────

    async def read(self, url: str) -> bytes:
        """Return the raw content of the single file *url* points at."""
        try:
            provider, location = resolve_location(url, self._providers)
            if not location.sub_path:
                raise InvalidLocationError(
                    f"Incorrect URL: '{url}'. The URL does not point to a file.",
                    host=provider.config.host,
                )
            ref = await resolve_ref(provider, location)
            data = await provider.fetch_file(location, ref)
        except TreeReaderError as exc:
            self._annotate(exc, url)
            raise

        logger.info("Read %d bytes from %s", len(data), url)
        return data

    async def read_tree(
        self,
        url: str,
        *,
        etag: str | None = None,
        path_filter: PathFilter | None = None,
    ) -> ReadTreeResponse:
        """Fetch the tree at *url*.

        Raises :class:`NotModifiedError` without downloading anything when
        *etag* equals the current commit.  Any other etag just forces a full
        fetch.
        """
        try:
            provider, location = resolve_location(url, self._providers)
            version = await resolve_version(provider, location)
            logger.info("Resolved %s to commit %s", url, version.commit_id)

            if etag is not None and etag == version.commit_id:
                raise NotModifiedError(
                    f"Tree at '{url}' is unchanged at {etag}.",
                    host=provider.config.host,
                )

            async with provider.open_archive(location, version) as stream:
                files = await extract_tree(
                    stream,
                    location.sub_path,
                    self._codec,
                    path_filter=path_filter,
                    spool_max_bytes=self._spool_max_bytes,
                )
        except TreeReaderError as exc:
            self._annotate(exc, url)
            raise

        logger.info("Extracted %d files from %s", len(files), url)
        return ReadTreeResponse(
            etag=version.commit_id,
            files=files,
            codec=self._codec,
            working_directory=self._working_directory,
        )

    # ── Helpers ─────────────────────────────────────────────────────────

    @staticmethod
    def _annotate(exc: TreeReaderError, url: str) -> None:
        if exc.source_url is None:
            exc.source_url = url
        if isinstance(exc, NotModifiedError):
            logger.debug("Not modified: %s", url)
        else:
            logger.warning("Reading %s failed: %s", url, exc)
