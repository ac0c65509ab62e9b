"""Exception types raised across the sync pipeline."""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for all catalog sync failures."""


class FetchError(SyncError):
    """An upstream request failed or returned a non-success status."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class NormalizationError(SyncError):
    """A raw upstream record could not be mapped to a canonical record."""

    def __init__(self, message: str, card_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.card_id = card_id


class StorageError(SyncError):
    """The storage backend rejected a read or write."""

    def __init__(self, message: str, table: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.table = table
        self.status = status


class ConfigError(SyncError, ValueError):
    """Invalid configuration or a missing required credential."""
