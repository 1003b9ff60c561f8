"""Zip adapter — implements the ArchiveCodec port with the standard library."""

from __future__ import annotations

import io
import zipfile
import zlib
from functools import partial
from typing import BinaryIO, Iterator, Sequence

from repo_tree_reader.domain.entities import ArchiveEntry, ExtractedFile
from repo_tree_reader.domain.exceptions import ArchiveDecodeError

# UnicodeDecodeError (a ValueError) comes from names flagged UTF-8 that are not.
_OPEN_ERRORS = (zipfile.BadZipFile, OSError, ValueError)
_READ_ERRORS = (
    zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError, ValueError
)


class ZipArchiveCodec:
    """Concrete ``ArchiveCodec`` for the zip archives Bitbucket exports."""

    def entries(self, source: BinaryIO) -> Iterator[ArchiveEntry]:
        try:
            archive = zipfile.ZipFile(source)
        except _OPEN_ERRORS as exc:
            raise ArchiveDecodeError(f"Downloaded data is not a valid zip archive: {exc}") from exc

        with archive:
            for info in archive.infolist():
                yield ArchiveEntry(
                    path=info.filename,
                    is_directory=info.is_dir(),
                    read=partial(_read_member, archive, info),
                )

    def pack(self, files: Sequence[ExtractedFile]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for f in files:
                archive.writestr(f.path, f.content())
        return buffer.getvalue()


def _read_member(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
    try:
        return archive.read(info)
    except _READ_ERRORS as exc:
        raise ArchiveDecodeError(f"Corrupt archive member '{info.filename}': {exc}") from exc
