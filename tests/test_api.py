"""Tests for the HTTP routes, with the reader wired to the fake Bitbucket."""

import io
import zipfile

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import CLOUD, CLOUD_ARCHIVE, ETAG, SERVER
from repo_tree_reader.infrastructure.providers import build_providers
from repo_tree_reader.infrastructure.zip_archive import ZipArchiveCodec
from repo_tree_reader.interface.app import create_app
from repo_tree_reader.interface.dependencies import get_reader
from repo_tree_reader.services.url_reader import UrlReader

TREE_URL = "https://bitbucket.org/backstage/mock"


@pytest.fixture
def api(fake) -> TestClient:
    app = create_app()

    async def reader():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
            yield UrlReader(build_providers([CLOUD, SERVER], client), ZipArchiveCodec())

    app.dependency_overrides[get_reader] = reader
    return TestClient(app)


class TestTreeRoute:
    def test_lists_files_with_etag(self, api: TestClient):
        resp = api.get("/tree", params={"url": TREE_URL})

        assert resp.status_code == 200
        assert resp.headers["etag"] == f'"{ETAG}"'
        assert resp.json() == {
            "etag": ETAG,
            "files": [
                {"path": "docs/index.md", "size": 7},
                {"path": "mkdocs.yml", "size": 16},
            ],
        }

    def test_if_none_match_returns_304(self, api: TestClient, fake):
        resp = api.get("/tree", params={"url": TREE_URL}, headers={"If-None-Match": f'"{ETAG}"'})

        assert resp.status_code == 304
        assert fake.requested(CLOUD_ARCHIVE) == []

    def test_stale_if_none_match_returns_tree(self, api: TestClient):
        resp = api.get("/tree", params={"url": TREE_URL}, headers={"If-None-Match": '"0000"'})

        assert resp.status_code == 200
        assert resp.json()["etag"] == ETAG

    @pytest.mark.parametrize(
        "header",
        [f'"0000", W/"{ETAG}"', f'"{ETAG}","ffff"', "*"],
    )
    def test_if_none_match_list_containing_current_etag(self, api: TestClient, header):
        resp = api.get("/tree", params={"url": TREE_URL}, headers={"If-None-Match": header})

        assert resp.status_code == 304

    def test_if_none_match_list_of_stale_etags(self, api: TestClient):
        resp = api.get(
            "/tree", params={"url": TREE_URL}, headers={"If-None-Match": '"0000", "ffff"'}
        )

        assert resp.status_code == 200
        assert resp.json()["etag"] == ETAG

    def test_undecodable_archive_is_502(self, api: TestClient, fake):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr(zipfile.ZipInfo("w/é.md", date_time=(2020, 1, 1, 0, 0, 0)), b"x")
        fake.add(CLOUD_ARCHIVE, content=buffer.getvalue().replace("é".encode(), b"\xff\xfe"))

        resp = api.get("/tree", params={"url": TREE_URL})

        assert resp.status_code == 502

    def test_unknown_host(self, api: TestClient):
        resp = api.get("/tree", params={"url": "https://not.bitbucket.com/apa"})

        assert resp.status_code == 422
        assert resp.json()["status"] == "error"
        assert "https://not.bitbucket.com/apa" in resp.json()["message"]

    def test_missing_url_parameter(self, api: TestClient):
        resp = api.get("/tree")

        assert resp.status_code == 422
        assert "url" in resp.json()["message"]

    def test_upstream_failure(self, api: TestClient, fake):
        fake.add(CLOUD_ARCHIVE, status=500, content=b"")

        resp = api.get("/tree", params={"url": TREE_URL})

        assert resp.status_code == 502


class TestArchiveRoute:
    def test_returns_zip_of_filtered_tree(self, api: TestClient):
        resp = api.get("/tree/archive", params={"url": f"{TREE_URL}/src/master/docs"})

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        with zipfile.ZipFile(io.BytesIO(resp.content)) as archive:
            assert archive.namelist() == ["index.md"]
            assert archive.read("index.md") == b"# Test\n"


class TestFileRoute:
    def test_returns_raw_bytes(self, api: TestClient):
        resp = api.get("/file", params={"url": f"{TREE_URL}/src/master/docs/index.md"})

        assert resp.status_code == 200
        assert resp.content == b"# Test\n"

    def test_missing_file_is_404(self, api: TestClient):
        resp = api.get("/file", params={"url": f"{TREE_URL}/src/master/nope.md"})

        assert resp.status_code == 404


def test_health(api: TestClient):
    assert api.get("/health").json() == {"status": "ok"}
