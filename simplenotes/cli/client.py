"""
HTTP Client for CLI.

Provides async HTTP clients for the SimpleNotes API.
All requests include X-Frontend-ID: cli header for log routing.

Retry policy:
    GET requests are retried on transport errors (connection refused,
    timeouts, dropped connections) with exponential backoff plus jitter.
    POST/PUT/PATCH/DELETE are sent exactly once.

Error distinction:
    503 -> ServiceUnavailableError (the database is temporarily unreachable)
    other non-2xx -> APIError carrying the server's "error" message

Usage:
    async with NotesClient() as notes:
        for note in await notes.fetch_notes():
            print(note["title"])
"""

from functools import partial
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from simplenotes.backend.core.config import get_server_base_url
from simplenotes.backend.core.logging import get_logger
from simplenotes.backend.core.resilience import log_retry

logger = get_logger(__name__)


class APIError(Exception):
    """Raised for a non-2xx response from the API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ServiceUnavailableError(APIError):
    """Raised when the API answers 503."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable, please try again later",
    ) -> None:
        super().__init__(message, status_code=503)


class APIClient:
    """
    Thin httpx wrapper bound to the API's base URL.

    Every request carries ``X-Frontend-ID: cli`` so the server tags its log
    lines. Only GETs are retried; a write is never sent twice.

        async with APIClient() as api:
            response = await api.get("/notes")
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_attempts: int = 3,
        backoff_initial: float = 1.0,
        backoff_max: float = 10.0,
        backoff_jitter: float = 1.0,
    ) -> None:
        """
        Args:
            base_url: URL including the /api prefix. Defaults to
                SIMPLENOTES_API_URL, then application.yaml.
            timeout: Seconds per request. Defaults to application.yaml.
            max_attempts: Total tries for a GET
            backoff_initial: First wait between GET tries, in seconds
            backoff_max: Longest single wait
            backoff_jitter: Random extra added to each wait, at most this
        """
        if base_url is None or timeout is None:
            default_url, default_timeout = get_server_base_url()
            base_url = base_url or default_url
            timeout = default_timeout if timeout is None else timeout

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.backoff_jitter = backoff_jitter
        self._http: httpx.AsyncClient | None = None
        self._log = logger.bind(source="cli", base_url=self.base_url)

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _connection(self) -> httpx.AsyncClient:
        # Reopened lazily, so a closed client can be used again.
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"X-Frontend-ID": "cli"},
            )
        return self._http

    async def close(self) -> None:
        http, self._http = self._http, None
        if http is not None and not http.is_closed:
            await http.aclose()

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.backoff_initial,
                max=self.backoff_max,
                jitter=self.backoff_jitter,
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=partial(log_retry, dependency="simplenotes-api"),
            reraise=True,
        )

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        log = self._log.bind(method=method, path=path)
        log.debug("API request")
        try:
            response = await self._connection().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.warning("API request failed", error=str(e) or type(e).__name__)
            raise
        log.debug("API response", status_code=response.status_code)
        return response

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send one request and return the response whatever its status.

        Raises:
            httpx.HTTPError: transport failure, after the GET retries if any
        """
        method = method.upper()
        if method != "GET":
            return await self._send(method, path, **kwargs)

        async for attempt in self._retrying():
            with attempt:
                return await self._send(method, path, **kwargs)
        raise AssertionError("retry loop ended without an outcome")

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)


def raise_for_api_error(response: httpx.Response) -> None:
    """
    Turn a non-2xx response into APIError or ServiceUnavailableError.

    Raises:
        ServiceUnavailableError: For 503
        APIError: For any other non-2xx status
    """
    if response.is_success:
        return
    if response.status_code == 503:
        raise ServiceUnavailableError()

    try:
        payload = response.json()
    except ValueError:
        payload = None

    message = None
    if isinstance(payload, dict):
        message = payload.get("error")
    raise APIError(
        message or f"Request failed with status {response.status_code}",
        status_code=response.status_code,
    )


class NotesClient(APIClient):
    """Typed operations over the notes API, returning decoded JSON."""

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.request(method, path, **kwargs)
        raise_for_api_error(response)
        return response.json()

    async def fetch_notes(self) -> list[dict[str, Any]]:
        """Active notes, pinned first."""
        return await self._json("GET", "/notes")

    async def fetch_archived_notes(self) -> list[dict[str, Any]]:
        """Archived notes, most recently updated first."""
        return await self._json("GET", "/notes/archived")

    async def create_note(self, note: dict[str, Any]) -> dict[str, Any]:
        return await self._json("POST", "/notes", json=note)

    async def update_note(self, note_id: int, note: dict[str, Any]) -> dict[str, Any]:
        return await self._json("PUT", f"/notes/{note_id}", json=note)

    async def delete_note(self, note_id: int) -> dict[str, Any]:
        return await self._json("DELETE", f"/notes/{note_id}")

    async def set_archived(self, note_id: int, archived: bool) -> dict[str, Any]:
        return await self._json(
            "PATCH", f"/notes/{note_id}/archive", json={"archived": archived}
        )

    async def set_pinned(self, note_id: int, is_pinned: bool) -> dict[str, Any]:
        return await self._json(
            "PATCH", f"/notes/{note_id}/pin", json={"isPinned": is_pinned}
        )

    async def health(self) -> dict[str, Any]:
        """
        Database health as reported by /health.

        A 503 still carries a body describing the failure, so it is returned
        rather than raised.
        """
        response = await self.request("GET", "/health")
        if response.status_code == 503:
            return response.json()
        raise_for_api_error(response)
        return response.json()
