"""
Booking storage collaborators.

Two variants implement ``BookingStorage``: ``RemoteStorage`` (Supabase
PostgREST) and ``MockStorage`` (in memory, optionally file backed).
``create_storage`` picks one at startup from configuration.
"""

import logging

from .base import BookingRecord, BookingStorage
from .mock import MockStorage
from .remote import RemoteStorage

logger = logging.getLogger(__name__)


def create_storage(config) -> BookingStorage:
    """
    Build the storage variant selected by ``config``.

    Falls back to ``MockStorage`` (demo mode) when remote storage is requested
    without Supabase credentials.
    """
    if config.use_remote_storage:
        if config.has_remote_credentials:
            return RemoteStorage(
                config.supabase_url,
                config.supabase_anon_key,
                timeout_seconds=config.api_timeout_ms / 1000.0,
            )
        logger.warning(
            "Remote storage requested but Supabase credentials are missing; "
            "running in demo mode with mock storage"
        )
    return MockStorage(persist_path=config.mock_storage_path)


__all__ = [
    "BookingRecord",
    "BookingStorage",
    "MockStorage",
    "RemoteStorage",
    "create_storage",
]
