from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from api.schemas import CurrentVitals
from safety.errors import (
    EventNotFoundError,
    FeedUnavailableError,
    InvalidCredentialsError,
    UserExistsError,
    WorkerNotFoundError,
)
from safety.models import Event, EventFilter, EventStatus, HelmetData, Page, Session, VitalSample, Worker
from shared.logging import get_logger
from shared.retry import retry
from shared.settings import Settings

log = get_logger(__name__)

_TRANSIENT = (requests.ConnectionError, requests.Timeout, requests.HTTPError)


class HelmetApiClient:
    """
    Blocking client for the helmet API.

    Connection errors, timeouts and 5xx responses are retried with backoff and
    then surface as FeedUnavailableError. 404/401/409 map onto the domain
    errors the in-process accessors raise.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout_s: float = 10.0,
        max_attempts: int = 3,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.max_attempts = max_attempts
        self._http = http or requests.Session()

    @classmethod
    def from_settings(cls, s: Settings) -> "HelmetApiClient":
        return cls(
            s.API_BASE_URL,
            s.API_KEY,
            timeout_s=s.HTTP_TIMEOUT_SECONDS,
            max_attempts=s.HTTP_MAX_ATTEMPTS,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> requests.Response:
        headers = {"X-API-Key": self.api_key} if self.api_key else {}
        if token:
            headers["X-Session-Token"] = token

        def _send() -> requests.Response:
            r = self._http.request(
                method, f"{self.base_url}{path}", params=params, json=json, headers=headers, timeout=self.timeout_s
            )
            if r.status_code >= 500:
                r.raise_for_status()
            return r

        try:
            return retry(_send, name=f"{method} {path}", max_attempts=self.max_attempts, retry_on=_TRANSIENT)
        except requests.RequestException as e:
            log.warning("api_request_failed", extra={"method": method, "path": path, "error": str(e)})
            raise FeedUnavailableError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _json(r: requests.Response) -> Any:
        try:
            r.raise_for_status()
        except requests.HTTPError as e:
            log.warning("api_request_rejected", extra={"status_code": r.status_code, "url": r.url, "error": str(e)})
            raise FeedUnavailableError(f"request rejected with HTTP {r.status_code}: {e}") from e
        return r.json()

    # Data feed

    def list_workers(self) -> List[Worker]:
        return [Worker.model_validate(w) for w in self._json(self._request("GET", "/workers"))]

    def get_worker(self, worker_id: str) -> Optional[Worker]:
        r = self._request("GET", f"/workers/{worker_id}")
        if r.status_code == 404:
            return None
        return Worker.model_validate(self._json(r))

    def get_helmet(self, helmet_id: str) -> Optional[HelmetData]:
        r = self._request("GET", f"/helmets/{helmet_id}")
        if r.status_code == 404:
            return None
        return HelmetData.model_validate(self._json(r))

    def current_vitals(self, worker_id: str) -> CurrentVitals:
        r = self._request("GET", f"/workers/{worker_id}/vitals/current")
        if r.status_code == 404:
            raise WorkerNotFoundError(worker_id)
        return CurrentVitals.model_validate(self._json(r))

    def vital_history(self, worker_id: str) -> List[VitalSample]:
        rows = self._json(self._request("GET", f"/workers/{worker_id}/vitals/history"))
        return [VitalSample.model_validate(row) for row in rows]

    # Event store

    def events_page(self, flt: Optional[EventFilter] = None, page: int = 1, page_size: Optional[int] = None) -> Page[Event]:
        params: Dict[str, Any] = {"page": page}
        if page_size is not None:
            params["page_size"] = page_size
        if flt is not None:
            for key, value in flt.model_dump(exclude_none=True, mode="json").items():
                params[key] = value
        return Page[Event].model_validate(self._json(self._request("GET", "/events", params=params)))

    def list_events(self, flt: Optional[EventFilter] = None) -> List[Event]:
        events: List[Event] = []
        page = 1
        while True:
            result = self.events_page(flt, page=page, page_size=100)
            events.extend(result.items)
            if not result.has_next:
                return events
            page += 1

    def update_event_status(
        self, event_id: str, status: EventStatus, token: Optional[str] = None
    ) -> Event:
        r = self._request("PATCH", f"/events/{event_id}/status", json={"status": EventStatus(status).value}, token=token)
        if r.status_code == 404:
            raise EventNotFoundError(event_id)
        return Event.model_validate(self._json(r))

    # Sessions

    def login(self, email: str, password: str) -> Session:
        r = self._request("POST", "/auth/login", json={"email": email, "password": password})
        if r.status_code == 401:
            raise InvalidCredentialsError()
        return Session.model_validate(self._json(r))

    def register(self, name: str, email: str, password: str) -> Session:
        r = self._request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
        if r.status_code == 409:
            raise UserExistsError(email)
        return Session.model_validate(self._json(r))

    def current_session(self, token: str) -> Optional[Session]:
        r = self._request("GET", "/auth/session", token=token)
        if r.status_code == 401:
            return None
        return Session.model_validate(self._json(r))

    def logout(self, token: str) -> None:
        self._json(self._request("POST", "/auth/logout", token=token))
