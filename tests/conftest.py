"""Shared fixtures: an in-process fake of the Bitbucket Cloud and Server APIs."""

from __future__ import annotations

import io
import json
import zipfile
from typing import Any, AsyncIterator, Callable

import httpx
import pytest
import pytest_asyncio

from repo_tree_reader.domain.entities import ArchiveStream, ProviderConfig
from repo_tree_reader.infrastructure.providers import build_providers
from repo_tree_reader.infrastructure.zip_archive import ZipArchiveCodec
from repo_tree_reader.services.url_reader import UrlReader

CLOUD = ProviderConfig.for_host("bitbucket.org")
SERVER = ProviderConfig.for_host(
    "bitbucket.mycompany.net",
    api_base_url="https://api.bitbucket.mycompany.net/rest/api/1.0",
)

FULL_HASH = "12ab34cd56ef78gh90ij12kl34mn56op78qr90st"
ETAG = "12ab34cd56ef"

CLOUD_API = "https://api.bitbucket.org/2.0/repositories/backstage/mock"
CLOUD_ARCHIVE = f"https://bitbucket.org/backstage/mock/get/{ETAG}.zip"
SERVER_API = "https://api.bitbucket.mycompany.net/rest/api/1.0/projects/backstage/repos/mock"


def make_zip(entries: dict[str, bytes | None]) -> bytes:
    """Build a zip in memory; a ``None`` value makes a directory entry."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries.items():
            if data is None:
                archive.writestr(zipfile.ZipInfo(name), b"")
            else:
                archive.writestr(name, data)
    return buffer.getvalue()


def stream_of(data: bytes, chunk_size: int = 64) -> ArchiveStream:
    async def chunks() -> AsyncIterator[bytes]:
        for i in range(0, len(data), chunk_size):
            yield data[i : i + chunk_size]

    return ArchiveStream(chunks=chunks(), content_type="application/zip")


CLOUD_REPO_ZIP = make_zip(
    {
        "backstage-mock-12ab34cd56ef/": None,
        "backstage-mock-12ab34cd56ef/docs/": None,
        "backstage-mock-12ab34cd56ef/docs/index.md": b"# Test\n",
        "backstage-mock-12ab34cd56ef/mkdocs.yml": b"site_name: Test\n",
    }
)

SERVER_REPO_ZIP = make_zip(
    {
        "mock/": None,
        "mock/docs/": None,
        "mock/docs/index.md": b"# Test\n",
    }
)


class FakeBitbucket:
    """MockTransport handler: canned responses keyed by URL without query."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        status: int = 200,
        *,
        json_body: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(
                    status,
                    content=json.dumps(json_body).encode(),
                    headers={"content-type": "application/json", **(headers or {})},
                )
            return httpx.Response(status, content=content or b"", headers=headers)

        self.routes[url] = respond

    def add_handler(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[url] = handler

    def requested(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if _key(r) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(_key(request))
        if handler is None:
            return httpx.Response(404, json={"error": "no route"})
        return handler(request)


def _key(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


@pytest.fixture
def fake() -> FakeBitbucket:
    bitbucket = FakeBitbucket()

    bitbucket.add(CLOUD_API, json_body={"mainbranch": {"type": "branch", "name": "master"}})
    bitbucket.add(f"{CLOUD_API}/commits/master", json_body={"values": [{"hash": FULL_HASH}]})
    bitbucket.add(
        CLOUD_ARCHIVE,
        content=CLOUD_REPO_ZIP,
        headers={
            "content-type": "application/zip",
            "content-disposition": "attachment; filename=backstage-mock-12ab34cd56ef.zip",
        },
    )
    bitbucket.add(f"{CLOUD_API}/src/master/docs/index.md", content=b"# Test\n")

    bitbucket.add(f"{SERVER_API}/branches/default", json_body={"displayId": "master"})
    bitbucket.add(f"{SERVER_API}/commits", json_body={"values": [{"id": FULL_HASH}]})
    bitbucket.add(
        f"{SERVER_API}/archive",
        content=SERVER_REPO_ZIP,
        headers={
            "content-type": "application/zip",
            "content-disposition": "attachment; filename=backstage-mock.zip",
        },
    )
    bitbucket.add(f"{SERVER_API}/raw/docs/index.md", content=b"# Test\n")
    return bitbucket


@pytest_asyncio.fixture
async def http_client(fake: FakeBitbucket) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
        yield client


@pytest_asyncio.fixture
async def providers(http_client: httpx.AsyncClient):
    return build_providers([CLOUD, SERVER], http_client)


@pytest_asyncio.fixture
async def reader(providers) -> UrlReader:
    return UrlReader(providers, ZipArchiveCodec())
