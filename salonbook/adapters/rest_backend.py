"""
HTTP client for the hosted salon backend.
"""

import asyncio
import logging
from typing import Any, Dict, List

import requests
from pendulum import Date, DateTime

from ..domain.exceptions import BackendError
from ..domain.models import Booking, BookingDraft, Employee, SalonConfig, Service
from .parsing import (
    booking_payload,
    parse_booking,
    parse_employee,
    parse_records,
    parse_salon_config,
    parse_service,
)

logger = logging.getLogger(__name__)


class RestSalonBackend:
    """
    Client for the salon backend's JSON API.

    Endpoints (relative to ``base_url``):
    - ``GET  /salons/{id}``                       salon settings
    - ``GET  /salons/{id}/services``              service catalog
    - ``GET  /salons/{id}/employees``             staff roster
    - ``GET  /salons/{id}/bookings?date=...``     bookings of one day
    - ``POST /salons/{id}/bookings``              create a booking

    Blocking ``requests`` calls run in a worker thread so the workflow's
    event loop is never blocked.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 10,
        session: requests.Session | None = None,
    ):
        """
        Initialize the backend client.

        Args:
            base_url: Root URL of the salon API
            api_key: Optional bearer token
            timeout_seconds: Per-request timeout
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    async def fetch_services(self, salon_id: str) -> List[Service]:
        data = await self._request("GET", f"/salons/{salon_id}/services")
        return parse_records(data, parse_service, "service")

    async def fetch_staff(self, salon_id: str) -> List[Employee]:
        data = await self._request("GET", f"/salons/{salon_id}/employees")
        return parse_records(data, parse_employee, "employee")

    async def fetch_bookings_for_day(self, salon_id: str, day: Date, timezone: str) -> List[Booking]:
        data = await self._request(
            "GET",
            f"/salons/{salon_id}/bookings",
            params={"date": day.isoformat(), "timezone": timezone},
        )
        return parse_records(
            data,
            lambda record: parse_booking(record, timezone),
            "booking",
        )

    async def fetch_salon_config(self, salon_id: str) -> SalonConfig:
        data = await self._request("GET", f"/salons/{salon_id}")
        return parse_salon_config(data)

    async def submit_booking(self, salon_id: str, draft: BookingDraft, start: DateTime) -> str:
        data = await self._request(
            "POST",
            f"/salons/{salon_id}/bookings",
            json=booking_payload(draft, start),
        )
        booking_id = data.get("id") if isinstance(data, dict) else None
        if not booking_id:
            raise BackendError("Backend did not return a booking id")
        return str(booking_id)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        return await asyncio.to_thread(self._send, method, path, **kwargs)

    def _send(self, method: str, path: str, **kwargs) -> Any:
        """
        Perform one API call.

        Raises:
            BackendError: If the request fails or the body is not JSON
        """
        url = f"{self.base_url}{path}"

        try:
            response = self.session.request(
                method,
                url,
                headers=self.headers,
                timeout=self.timeout_seconds,
                **kwargs
            )
            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise BackendError(f"Salon backend request failed: {e}") from e

        except ValueError as e:
            raise BackendError(f"Salon backend returned invalid JSON: {e}") from e

    def test_connection(self, salon_id: str) -> Dict[str, Any]:
        """
        Fetch the salon document to verify URL and credentials.

        Raises:
            BackendError: If the connection test fails
        """
        data = self._send("GET", f"/salons/{salon_id}")
        if not isinstance(data, dict):
            raise BackendError("Unexpected salon document")
        return data
