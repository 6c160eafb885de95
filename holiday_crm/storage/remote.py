"""
Supabase (PostgREST) booking store.

Requests are made with a blocking ``requests.Session`` on a worker thread so
the event loop is never blocked. PostgREST error bodies carrying a database
code are raised as ``StorageError``; any other HTTP failure surfaces as
``requests.HTTPError`` so the classifier keeps its status.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from ..services.errors import StorageError
from .base import BookingRecord, BookingStorage

logger = logging.getLogger(__name__)


class RemoteStorage(BookingStorage):
    """Booking store backed by the ``bookings`` table of a Supabase project."""

    name = "remote"
    TABLE = "bookings"

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize remote storage.

        Args:
            url: Supabase project URL
            anon_key: Project anon key, sent as ``apikey``
            access_token: User JWT for row level security, defaults to the anon key
            timeout_seconds: Socket timeout for each HTTP request
            session: Preconfigured session, mainly for tests
        """
        if not url or not anon_key:
            raise ValueError("Supabase URL and anon key are required for remote storage")

        self.endpoint = f"{url.rstrip('/')}/rest/v1/{self.TABLE}"
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": anon_key,
                "Authorization": f"Bearer {access_token or anon_key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            }
        )
        logger.info(f"RemoteStorage initialized for {self.endpoint}")

    async def create_booking(self, data: BookingRecord) -> BookingRecord:
        rows = await asyncio.to_thread(self._request, "POST", None, data)
        return self._single(rows)

    async def get_user_bookings(self, user_id: str) -> List[BookingRecord]:
        params = {"select": "*", "agent_id": f"eq.{user_id}", "order": "created_at.desc"}
        return await asyncio.to_thread(self._request, "GET", params)

    async def get_all_bookings(self) -> List[BookingRecord]:
        params = {"select": "*", "order": "created_at.desc"}
        return await asyncio.to_thread(self._request, "GET", params)

    async def update_booking(self, booking_id: str, fields: BookingRecord) -> BookingRecord:
        params = {"id": f"eq.{booking_id}"}
        rows = await asyncio.to_thread(self._request, "PATCH", params, fields)
        return self._single(rows, booking_id)

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, params: Optional[Dict[str, str]] = None, payload: Any = None) -> Any:
        response = self.session.request(
            method,
            self.endpoint,
            params=params,
            json=payload,
            timeout=self.timeout_seconds,
        )

        if response.status_code >= 400:
            body = _json_or_none(response)
            if isinstance(body, dict) and body.get("code"):
                raise StorageError(
                    str(body["code"]),
                    body.get("message") or "Database operation failed",
                    body,
                )
            response.raise_for_status()

        if not response.content:
            return []
        return response.json()

    @staticmethod
    def _single(rows: Any, booking_id: Optional[str] = None) -> BookingRecord:
        if isinstance(rows, dict):
            return rows
        if not rows:
            raise StorageError("PGRST116", "Booking not found", {"id": booking_id})
        return rows[0]


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
