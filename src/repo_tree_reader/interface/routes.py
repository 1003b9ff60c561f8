"""API routes — thin controllers that delegate to the reader."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query, Response

from repo_tree_reader.domain.exceptions import NotModifiedError
from repo_tree_reader.interface.dependencies import get_reader
from repo_tree_reader.interface.schemas import TreeFile, TreeResponse
from repo_tree_reader.services.tree_response import ReadTreeResponse
from repo_tree_reader.services.url_reader import UrlReader

router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, str]] = {
    304: {"description": "The supplied If-None-Match etag is current"},
    422: {"description": "Unknown host or malformed repository URL"},
    502: {"description": "The hosting provider failed or returned a bad archive"},
}


def _parse_etags(header: str | None) -> list[str]:
    """Split an ``If-None-Match`` list like ``W/"abc", "def"`` into ``["abc", "def"]``."""
    if not header:
        return []
    tags = (tag.strip().removeprefix("W/").strip('"') for tag in header.split(","))
    return [tag for tag in tags if tag]


async def _read_tree(reader: UrlReader, url: str, if_none_match: str | None) -> ReadTreeResponse:
    """Read the tree, answering ``If-None-Match`` with :class:`NotModifiedError`.

    A single etag goes to the reader so a match skips the download.  A list
    or ``*`` can only be compared once the current etag is known.
    """
    etags = _parse_etags(if_none_match)
    if len(etags) == 1 and etags[0] != "*":
        return await reader.read_tree(url, etag=etags[0])

    tree = await reader.read_tree(url)
    if "*" in etags or tree.etag in etags:
        raise NotModifiedError(f"Tree at '{url}' is unchanged at {tree.etag}.", source_url=url)
    return tree


@router.get("/tree", response_model=TreeResponse, responses=_ERROR_RESPONSES)
async def read_tree(
    response: Response,
    url: str = Query(..., min_length=1),
    if_none_match: str | None = Header(default=None),
    reader: UrlReader = Depends(get_reader),
) -> TreeResponse:
    """List the files of the tree at *url*."""
    tree = await _read_tree(reader, url, if_none_match)
    response.headers["ETag"] = f'"{tree.etag}"'
    return TreeResponse(
        etag=tree.etag,
        files=[TreeFile(path=f.path, size=f.size) for f in tree.list_files()],
    )


@router.get("/tree/archive", responses=_ERROR_RESPONSES)
async def read_tree_archive(
    url: str = Query(..., min_length=1),
    if_none_match: str | None = Header(default=None),
    reader: UrlReader = Depends(get_reader),
) -> Response:
    """Download the tree at *url* as a zip archive."""
    tree = await _read_tree(reader, url, if_none_match)
    return Response(
        content=tree.archive(),
        media_type="application/zip",
        headers={
            "ETag": f'"{tree.etag}"',
            "Content-Disposition": f'attachment; filename="{tree.etag}.zip"',
        },
    )


@router.get("/file", responses=_ERROR_RESPONSES)
async def read_file(
    url: str = Query(..., min_length=1),
    reader: UrlReader = Depends(get_reader),
) -> Response:
    """Return the raw content of the file at *url*."""
    data = await reader.read(url)
    return Response(content=data, media_type="application/octet-stream")
