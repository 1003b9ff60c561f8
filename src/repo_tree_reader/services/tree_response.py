"""ReadTreeResponse — the immutable result of a successful tree fetch."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Sequence

from repo_tree_reader.domain.entities import ExtractedFile
from repo_tree_reader.domain.ports.archive_codec import ArchiveCodec

logger = logging.getLogger(__name__)


class ReadTreeResponse:
    """Files of one fetched tree plus the etag they were fetched at.

    The file snapshot is taken once at construction; listing, materializing
    and re-archiving never touch the network again.

    Parameters
    ----------
    etag:
        The commit id the archive was downloaded at.
    files:
        Extracted files, paths relative to the requested sub-path.
    codec:
        Used by :meth:`archive` to re-pack the files.
    working_directory:
        Parent for directories created by :meth:`materialize_to` when no
        target is given; the system temp dir when ``None``.
    """

    def __init__(
        self,
        etag: str,
        files: Sequence[ExtractedFile],
        codec: ArchiveCodec,
        working_directory: Path | None = None,
    ) -> None:
        self._etag = etag
        self._files = tuple(files)
        self._codec = codec
        self._working_directory = working_directory

    @property
    def etag(self) -> str:
        return self._etag

    def list_files(self) -> list[ExtractedFile]:
        return list(self._files)

    async def materialize_to(self, target_dir: Path | str | None = None) -> Path:
        """Write every file below *target_dir* (or a fresh temp dir) and return it.

        Existing files at other paths are left untouched; a file at the same
        path is overwritten.
        """
        return await asyncio.to_thread(self._write_all, target_dir)

    def archive(self) -> bytes:
        """Re-pack the files as a zip without a wrapper directory."""
        return self._codec.pack(self._files)

    def _write_all(self, target_dir: Path | str | None) -> Path:
        if target_dir is None:
            parent = self._working_directory
            if parent is not None:
                parent.mkdir(parents=True, exist_ok=True)
            root = Path(tempfile.mkdtemp(prefix="tree-", dir=parent))
        else:
            root = Path(target_dir)
            root.mkdir(parents=True, exist_ok=True)

        for f in self._files:
            path = root.joinpath(*f.path.split("/"))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(f.content())

        logger.info("Materialized %d files at %s (etag %s)", len(self._files), root, self._etag)
        return root
