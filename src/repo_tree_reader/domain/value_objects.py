"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qs, unquote, urlsplit

from repo_tree_reader.domain.entities import RefType
from repo_tree_reader.domain.exceptions import UnknownLocationError

_COMMIT_RE = re.compile(r"^[0-9a-f]{12,40}$")

COMMIT_ID_LENGTH = 12


@dataclass(frozen=True, slots=True)
class SourceUrl:
    """An absolute URL split into the pieces the provider grammars look at.

    The host keeps its original case and port (user-info is dropped) because
    provider lookup is an exact, case-sensitive match.  Path segments are
    percent-decoded; empty inner segments are preserved so grammars can
    reject them.
    """

    raw: str
    scheme: str
    host: str
    segments: tuple[str, ...]
    query: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_string(cls, url: str) -> SourceUrl:
        """Parse a raw URL string."""
        url = url.strip()
        try:
            parts = urlsplit(url)
        except ValueError as exc:
            raise UnknownLocationError(f"Unsupported URL: '{url}'. {exc}") from exc

        host = parts.netloc.rpartition("@")[2]
        if parts.scheme not in ("http", "https") or not host:
            raise UnknownLocationError(
                f"Unsupported URL: '{url}'. Expected an absolute http(s) URL."
            )

        path = parts.path.strip("/")
        segments = tuple(unquote(s) for s in path.split("/")) if path else ()
        query = {k: v[0] for k, v in parse_qs(parts.query, keep_blank_values=True).items()}
        return cls(raw=url, scheme=parts.scheme, host=host, segments=segments, query=query)


def classify_ref(ref: str | None) -> RefType:
    """Commit-looking refs are pinned; anything else is resolved as a branch."""
    if not ref:
        return RefType.DEFAULT
    if _COMMIT_RE.match(ref):
        return RefType.COMMIT
    return RefType.BRANCH


def short_commit(commit: str) -> str:
    return commit[:COMMIT_ID_LENGTH]
