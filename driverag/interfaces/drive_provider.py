"""Abstract base class for cloud-drive providers.

Defines the contract the ingestion pipeline uses to discover and read
source documents.  The concrete adapter talks to the Google Drive v3 REST
API; any other folder-shaped store (S3 prefix, local directory) could be
slotted in behind the same three calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from driverag.models.documents import DriveFile


# Concrete implementation: GoogleDriveProvider (driverag/providers/drive/)
class IDriveProvider(ABC):
    """Contract for listing and reading files from a drive folder."""

    @abstractmethod
    async def list_files(self, folder_id: str) -> list[DriveFile]:
        """List the non-trashed files directly inside *folder_id*.

        Parameters
        ----------
        folder_id:
            Identifier of the folder to list.

        Returns
        -------
        list[DriveFile]
            Every file in the folder, across all result pages.

        Raises
        ------
        driverag.utils.errors.DriveError
            If the listing request fails.
        """

    @abstractmethod
    async def download(self, file_id: str) -> bytes:
        """Download the raw content of a binary or plain-text file.

        Raises
        ------
        driverag.utils.errors.DriveError
            If the download fails.
        """

    @abstractmethod
    async def export_as_text(self, file_id: str, mime_type: str) -> str:
        """Export a native document, spreadsheet, or presentation as text.

        Parameters
        ----------
        file_id:
            Identifier of the native file.
        mime_type:
            The file's native MIME type.  Spreadsheets export as CSV,
            everything else as plain text.

        Raises
        ------
        driverag.utils.errors.DriveError
            If the export fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this drive provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials for the drive are configured."""
