"""Async HTTP client for the back-office booking screens.

Wraps the availability, pricing and reservation routes. Pricing responses are
read through the synonym adapter, so a total under any accepted key works.
Only the latest pricing request per form is honoured: an answer for inputs
the operator has since changed is dropped, not applied.
"""

import itertools
import logging
from collections.abc import Hashable
from datetime import date, datetime

import httpx

from centrobook.core.config import settings
from centrobook.services.pricing import missing_pricing_inputs
from centrobook.services.pricing_adapter import PriceQuote, read_pricing_response
from centrobook.services.time_normalizer import InvalidTimeFormat, combine_date_and_time, normalize_to_hhmm

logger = logging.getLogger(__name__)


class BookingApiError(Exception):
    pass


class PricingUnavailable(BookingApiError):
    """No price can be shown yet. Not a failure of the API."""

    def __init__(self, reasons: list[str]):
        self.reasons = reasons
        super().__init__("; ".join(reasons))


class SchedulingConflict(BookingApiError):
    """The court is taken; `suggestions` holds the nearest free slots."""

    def __init__(self, message: str, suggestions: list[dict]):
        self.message = message
        self.suggestions = suggestions
        super().__init__(message)


class ReservationRejected(BookingApiError):
    def __init__(self, status_code: int, detail):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Reservation rejected ({status_code}): {detail}")


class LatestRequestGuard:
    """Remembers the most recent request; anything older is stale."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: tuple | None = None

    def begin(self, key: Hashable) -> tuple:
        token = (key, next(self._counter))
        self._latest = token
        return token

    def is_current(self, token: tuple) -> bool:
        return token == self._latest


class BookingApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.client_base_url).rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout or settings.client_timeout_seconds,
            transport=transport,
        )
        self.pricing_guard = LatestRequestGuard()

    async def __aenter__(self) -> "BookingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("API request failed: %s %s -> %s", method, path, e)
            raise

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def get_availability(self, court_id: int, day: date | str) -> dict:
        """GET /courts/{id}/availability: {court_id, date, slots, summary}."""
        day = day.isoformat() if isinstance(day, date) else day
        resp = await self._request("GET", f"/courts/{court_id}/availability", params={"date": day})
        resp.raise_for_status()
        return resp.json()

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    async def calculate_price(
        self,
        court_id: int | None,
        day: date | str | None,
        time: str | None,
        duration: int | None,
        timezone: str | None = None,
        user_id: int | None = None,
        lighting_selected: bool = False,
    ) -> PriceQuote | None:
        """Price the current selection.

        Raises PricingUnavailable when the selection is incomplete or the
        response carries no usable total, InvalidTimeFormat when `time`
        cannot be read, and httpx errors for transport or server failures.
        Returns None when a newer call has started in the meantime.
        """
        hhmm = normalize_to_hhmm(time) if time else None
        if time and hhmm is None:
            raise InvalidTimeFormat(time)

        missing = missing_pricing_inputs(court_id, day, hhmm, duration)
        if missing:
            raise PricingUnavailable(missing)

        token = self.pricing_guard.begin((court_id, str(day), hhmm, duration))
        start = combine_date_and_time(day, hhmm, timezone or settings.default_timezone)
        body = {"courtId": court_id, "startTime": start.isoformat(), "duration": duration}
        if user_id is not None:
            body["userId"] = user_id
        if lighting_selected:
            body["lightingSelected"] = True

        resp = await self._request("POST", "/pricing/calculate", json=body)
        if not self.pricing_guard.is_current(token):
            logger.debug("Dropping stale price for court %s at %s %s", court_id, day, hhmm)
            return None
        resp.raise_for_status()

        quote = read_pricing_response(resp.json())
        if quote is None:
            raise PricingUnavailable(["No price available for this selection."])
        return quote

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    async def create_reservation(
        self,
        court_id: int,
        start: datetime,
        duration: int,
        user_id: int | None = None,
        new_user: dict | None = None,
        payment: dict | None = None,
        pricing_override: dict | None = None,
        notes: str | None = None,
        send_notifications: bool = False,
    ) -> dict:
        """POST /admin/reservations. Returns the created reservation."""
        body = {
            "courtId": court_id,
            "startTime": start.isoformat(),
            "duration": duration,
            "payment": payment or {"method": "PENDING"},
            "sendNotifications": send_notifications,
        }
        if user_id is not None:
            body["userId"] = user_id
        if new_user is not None:
            body["newUser"] = new_user
        if pricing_override is not None:
            body["pricingOverride"] = pricing_override
        if notes:
            body["notes"] = notes

        resp = await self._request("POST", "/admin/reservations", json=body)
        if resp.status_code == httpx.codes.CONFLICT:
            data = resp.json()
            raise SchedulingConflict(data.get("error") or "Court not available", data.get("suggestions") or [])
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail")
            except ValueError:
                detail = resp.text
            raise ReservationRejected(resp.status_code, detail)
        return resp.json()

    async def suggest_after_conflict(
        self, court_id: int, day: date | str, time: str, duration: int | None = None
    ) -> list[dict]:
        """POST /admin/reservations/suggestions: nearest free slots, each priced."""
        body = {
            "courtId": court_id,
            "date": day.isoformat() if isinstance(day, date) else day,
            "time": time,
        }
        if duration is not None:
            body["duration"] = duration
        resp = await self._request("POST", "/admin/reservations/suggestions", json=body)
        resp.raise_for_status()
        return resp.json()["suggestions"]
