"""Google Drive provider using the Drive v3 REST API over httpx.

Lists the files of one folder, downloads binary content, and exports
Google-native documents to text.  Authenticates with an OAuth access token
when one is configured, otherwise with an API key (public folders only).
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from driverag.config.settings import Settings
from driverag.interfaces.drive_provider import IDriveProvider
from driverag.models.documents import GOOGLE_SPREADSHEET, DriveFile
from driverag.utils.errors import DriveError

logger = structlog.get_logger(logger_name=__name__)

_LIST_FIELDS = "nextPageToken, files(id, name, mimeType, size, modifiedTime)"


class GoogleDriveProvider(IDriveProvider):
    """Drive access backed by the Google Drive v3 REST API.

    Parameters
    ----------
    settings:
        Supplies credentials, base URL, and page size.
    http_client:
        Optional shared client.  When omitted the provider creates and owns
        one; :meth:`aclose` only closes clients it owns.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._base_url = settings.google_drive_base_url.rstrip("/")
        self._api_key = settings.google_drive_api_key
        self._access_token = settings.google_drive_access_token
        self._page_size = settings.google_drive_page_size
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.google_drive_timeout),
            follow_redirects=True,
        )

    # ------------------------------------------------------------------
    # IDriveProvider implementation
    # ------------------------------------------------------------------

    async def list_files(self, folder_id: str) -> list[DriveFile]:
        """List every non-trashed file in *folder_id*, following page tokens."""
        files: list[DriveFile] = []
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {
                "q": f"'{folder_id}' in parents and trashed = false",
                "fields": _LIST_FIELDS,
                "pageSize": self._page_size,
            }
            if page_token:
                params["pageToken"] = page_token

            response = await self._request(f"{self._base_url}/files", params, f"list folder {folder_id}")
            try:
                data = response.json()
                files.extend(DriveFile.model_validate(item) for item in data.get("files", []))
            except ValueError as exc:
                raise DriveError(
                    message=f"Malformed listing for folder {folder_id}: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info("drive_files_listed", folder_id=folder_id, count=len(files))
        return files

    async def download(self, file_id: str) -> bytes:
        response = await self._request(
            f"{self._base_url}/files/{file_id}",
            {"alt": "media"},
            f"download file {file_id}",
        )
        logger.debug("drive_file_downloaded", file_id=file_id, bytes=len(response.content))
        return response.content

    async def export_as_text(self, file_id: str, mime_type: str) -> str:
        export_type = "text/csv" if mime_type == GOOGLE_SPREADSHEET else "text/plain"
        response = await self._request(
            f"{self._base_url}/files/{file_id}/export",
            {"mimeType": export_type},
            f"export file {file_id}",
        )
        logger.debug("drive_file_exported", file_id=file_id, export_type=export_type)
        return response.content.decode("utf-8", errors="replace")

    def get_provider_name(self) -> str:
        return "google-drive"

    def is_available(self) -> bool:
        return bool(self._access_token or self._api_key)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, url: str, params: dict[str, Any], action: str) -> httpx.Response:
        """GET *url* with auth applied, mapping transport and status errors to DriveError."""
        headers: dict[str, str] = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        elif self._api_key:
            params = {**params, "key": self._api_key}

        try:
            response = await self._client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise DriveError(
                message=f"Timeout trying to {action}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise DriveError(
                message=f"HTTP {exc.response.status_code} trying to {action}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise DriveError(
                message=f"HTTP error trying to {action}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return response
