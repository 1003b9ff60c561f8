"""Tree extraction — decode an archive stream into sub-path-relative files.

Archive exports always wrap their content in one synthetic top-level
directory whose name depends on the provider and request, so the first path
segment is dropped without looking at it.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import PurePosixPath
from typing import Callable

from repo_tree_reader.domain.entities import ArchiveStream, ExtractedFile
from repo_tree_reader.domain.exceptions import ArchiveDecodeError
from repo_tree_reader.domain.ports.archive_codec import ArchiveCodec

logger = logging.getLogger(__name__)

DEFAULT_SPOOL_MAX_BYTES = 32 * 1024 * 1024

PathFilter = Callable[[str], bool]


def relative_path(entry_path: str, sub_path: str) -> str | None:
    """Map an archive entry path to its path in the returned tree.

    Returns ``None`` for entries that fall outside *sub_path* or carry
    nothing after the wrapper directory.  When *sub_path* names a single file
    the file keeps its base name.
    """
    _, sep, remainder = entry_path.partition("/")
    if not sep or not remainder:
        return None
    if not sub_path:
        return remainder
    if remainder == sub_path:
        return PurePosixPath(remainder).name
    prefix = f"{sub_path}/"
    if remainder.startswith(prefix):
        return remainder[len(prefix) :] or None
    return None


def _check_entry_path(entry_path: str, path: str) -> None:
    # Only "/" separates segments; a backslash is an ordinary filename character.
    if path.startswith("/") or ".." in path.split("/"):
        raise ArchiveDecodeError(f"Archive entry escapes the tree: '{entry_path}'")


async def extract_tree(
    stream: ArchiveStream,
    sub_path: str,
    codec: ArchiveCodec,
    *,
    path_filter: PathFilter | None = None,
    spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES,
) -> list[ExtractedFile]:
    """Consume *stream* and return the files under *sub_path*, in archive order.

    The download is spooled (in memory up to *spool_max_bytes*, then on
    disk) because zip decoding needs random access to the central directory.
    """
    sub_path = sub_path.strip("/")
    files: list[ExtractedFile] = []

    with tempfile.SpooledTemporaryFile(max_size=spool_max_bytes) as spool:
        received = 0
        async for chunk in stream.chunks:
            spool.write(chunk)
            received += len(chunk)
        spool.seek(0)
        logger.debug("Spooled %d archive bytes (%s)", received, stream.suggested_filename)

        for entry in codec.entries(spool):  # type: ignore[arg-type]
            if entry.is_directory:
                continue
            path = relative_path(entry.path, sub_path)
            if path is None:
                continue
            _check_entry_path(entry.path, path)
            if path_filter is not None and not path_filter(path):
                continue
            files.append(ExtractedFile(path=path, data=entry.read()))

    return files
