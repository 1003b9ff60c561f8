"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the outermost error-handler translates them.
"""

from __future__ import annotations


class TreeReaderError(Exception):
    """Base exception for the entire application.

    ``url`` is the upstream request that failed (if any), ``source_url`` the
    location URL the caller asked for.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        host: str | None = None,
        status_code: int | None = None,
        source_url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.host = host
        self.status_code = status_code
        self.source_url = source_url


# ── Input validation ────────────────────────────────────────────────────────


class UnknownLocationError(TreeReaderError):
    """The URL's host matches no configured provider."""


class InvalidLocationError(TreeReaderError):
    """The host is known but the path does not fit its URL grammar."""


# ── Provider API errors ─────────────────────────────────────────────────────


class VersionResolutionError(TreeReaderError):
    """The default-branch or commit lookup failed or came back empty."""


class ArchiveFetchError(TreeReaderError):
    """The archive download endpoint returned a non-success status."""


class FileFetchError(TreeReaderError):
    """A single-file download returned a non-success status."""


# ── Processing errors ───────────────────────────────────────────────────────


class ArchiveDecodeError(TreeReaderError):
    """The downloaded bytes are not a usable zip archive."""


# ── Conditional fetch ───────────────────────────────────────────────────────


class NotModifiedError(TreeReaderError):
    """The caller's etag already matches the current version."""

    def __init__(self, message: str = "Tree has not been modified.", **context: object) -> None:
        super().__init__(message, **context)  # type: ignore[arg-type]
