"""Port: archive codec — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import BinaryIO, Iterator, Protocol, Sequence

from repo_tree_reader.domain.entities import ArchiveEntry, ExtractedFile


class ArchiveCodec(Protocol):
    """Abstract contract for reading and writing tree archives."""

    def entries(self, source: BinaryIO) -> Iterator[ArchiveEntry]:
        """Yield entries in archive order; ``entry.read()`` is valid while iterating."""
        ...

    def pack(self, files: Sequence[ExtractedFile]) -> bytes:
        """Pack files into a new archive, paths unchanged."""
        ...
