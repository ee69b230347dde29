"""Unit tests for GoogleDriveProvider using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from driverag.config.settings import Settings
from driverag.models.documents import GOOGLE_DOCUMENT, GOOGLE_SPREADSHEET
from driverag.providers.drive.google_drive_provider import GoogleDriveProvider
from driverag.utils.errors import DriveError

_BASE = "https://drive.test/drive/v3"


def _settings(**overrides) -> Settings:
    defaults = {
        "google_drive_api_key": "drive-key",
        "google_drive_access_token": "",
        "google_drive_base_url": _BASE,
        "google_drive_page_size": 2,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _provider(handler, **overrides) -> GoogleDriveProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleDriveProvider(_settings(**overrides), http_client=client)


class TestListFiles:
    @pytest.mark.asyncio
    async def test_follows_page_tokens(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if "pageToken" not in request.url.params:
                return httpx.Response(
                    200,
                    json={
                        "files": [
                            {"id": "1", "name": "a.txt", "mimeType": "text/plain", "size": "12"},
                            {"id": "2", "name": "Plan", "mimeType": GOOGLE_DOCUMENT},
                        ],
                        "nextPageToken": "page-2",
                    },
                )
            return httpx.Response(
                200,
                json={"files": [{"id": "3", "name": "b.pdf", "mimeType": "application/pdf"}]},
            )

        files = await _provider(handler).list_files("folder-1")

        assert [f.id for f in files] == ["1", "2", "3"]
        assert files[0].size == 12
        assert files[1].size is None
        assert files[1].is_native_export()
        assert len(requests) == 2
        first = requests[0].url.params
        assert first["q"] == "'folder-1' in parents and trashed = false"
        assert first["pageSize"] == "2"
        assert first["key"] == "drive-key"
        assert "nextPageToken" in first["fields"]
        assert requests[1].url.params["pageToken"] == "page-2"

    @pytest.mark.asyncio
    async def test_empty_folder(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json={"files": []}))
        assert await provider.list_files("empty") == []

    @pytest.mark.asyncio
    async def test_access_token_uses_bearer_header(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"files": []})

        await _provider(handler, google_drive_access_token="tok").list_files("f")

        assert seen[0].headers["Authorization"] == "Bearer tok"
        assert "key" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_http_error_maps_to_drive_error(self) -> None:
        provider = _provider(lambda request: httpx.Response(403, json={"error": "forbidden"}))

        with pytest.raises(DriveError, match="HTTP 403"):
            await provider.list_files("private")

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_drive_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(DriveError):
            await _provider(handler).list_files("f")


class TestDownloadAndExport:
    @pytest.mark.asyncio
    async def test_download_uses_alt_media(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"%PDF-bytes")

        content = await _provider(handler).download("file-7")

        assert content == b"%PDF-bytes"
        assert seen[0].url.path.endswith("/files/file-7")
        assert seen[0].url.params["alt"] == "media"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("mime_type", "expected_export"),
        [(GOOGLE_DOCUMENT, "text/plain"), (GOOGLE_SPREADSHEET, "text/csv")],
    )
    async def test_export_type_by_source(self, mime_type: str, expected_export: str) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content="exported ✓".encode())

        text = await _provider(handler).export_as_text("doc-1", mime_type)

        assert text == "exported ✓"
        assert seen[0].url.path.endswith("/files/doc-1/export")
        assert seen[0].url.params["mimeType"] == expected_export

    @pytest.mark.asyncio
    async def test_download_not_found(self) -> None:
        provider = _provider(lambda request: httpx.Response(404))

        with pytest.raises(DriveError, match="404"):
            await provider.download("missing")


class TestLifecycle:
    def test_availability(self) -> None:
        assert GoogleDriveProvider(_settings()).is_available() is True
        assert GoogleDriveProvider(_settings(google_drive_api_key="")).is_available() is False
        assert GoogleDriveProvider(_settings()).get_provider_name() == "google-drive"

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self) -> None:
        client = httpx.AsyncClient()
        provider = GoogleDriveProvider(_settings(), http_client=client)

        await provider.aclose()

        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self) -> None:
        provider = GoogleDriveProvider(_settings())
        await provider.aclose()
        assert provider._client.is_closed
