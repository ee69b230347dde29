"""Drive provider implementations."""

from driverag.providers.drive.google_drive_provider import GoogleDriveProvider

__all__ = ["GoogleDriveProvider"]
