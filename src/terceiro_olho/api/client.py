# src/terceiro_olho/api/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.models import COVER_IDS

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """
    A failed request to the site API.

    status is None when the server could not be reached at all (connection refused,
    timeout, DNS); otherwise it is the HTTP status of the error response.
    """

    def __init__(self, message: str, *, endpoint: str, status: int | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status = status

    @property
    def offline(self) -> bool:
        return self.status is None

    @property
    def retryable(self) -> bool:
        return self.status is None or self.status >= 500


def friendly_api_error_message(err: Exception) -> str:
    if isinstance(err, ApiError):
        if err.offline:
            return "Server is unreachable. Working from local data."
        if err.status == 400:
            return f"Request rejected by the server: {err}"
        if err.retryable:
            return "Server error. Try again later."
    msg = str(err).strip()
    return msg or "Unexpected error."


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


class SiteApiClient:
    """
    Thin JSON client for the site server (/api/visits, /news, /comments, /votes, /test).

    Every call either returns the decoded JSON body or raises ApiError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=_make_timeout(connect_timeout, read_timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any, *, transport: httpx.BaseTransport | None = None) -> SiteApiClient:
        return cls(
            str(getattr(settings, "api_base_url", "http://localhost:3001/api")),
            connect_timeout=float(getattr(settings, "connect_timeout_seconds", 5.0)),
            read_timeout=float(getattr(settings, "read_timeout_seconds", 10.0)),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SiteApiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ---- transport ----

    def _request(self, method: str, endpoint: str, payload: dict[str, Any] | None = None) -> Any:
        try:
            response = self._client.request(method, endpoint, json=payload)
        except httpx.HTTPError as e:
            logger.debug("Request to %s failed: %s", endpoint, e.__class__.__name__)
            raise ApiError(f"Request to {endpoint} failed: {e}", endpoint=endpoint) from e

        if response.is_error:
            detail = ""
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = str(body.get("error") or "")
            except ValueError:
                detail = ""
            raise ApiError(
                detail or f"HTTP error {response.status_code}",
                endpoint=endpoint,
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"Invalid JSON from {endpoint}", endpoint=endpoint, status=response.status_code
            ) from e

    # ---- visits ----

    def increment_visit(self, page: str = "total") -> dict[str, Any]:
        return self._request("POST", "/visits/increment", {"page": page})

    def get_visits(self) -> dict[str, Any]:
        return self._request("GET", "/visits")

    # ---- news ----

    def get_news(self) -> list[dict[str, Any]]:
        return self._request("GET", "/news")

    def add_news(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/news", data)

    # ---- comments ----

    def get_comments(self) -> list[dict[str, Any]]:
        return self._request("GET", "/comments")

    def get_comments_by_page(self, page: str) -> list[dict[str, Any]]:
        return [c for c in self.get_comments() if c.get("page") == page]

    def add_comment(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/comments", data)

    # ---- votes ----

    def get_votes(self) -> dict[str, int]:
        return self._request("GET", "/votes")

    def vote(self, cover_id: str) -> dict[str, Any]:
        if cover_id not in COVER_IDS:
            raise ValueError(f"Invalid cover id: {cover_id!r}")
        return self._request("POST", "/votes", {"coverId": cover_id})

    # ---- utils ----

    def test(self) -> dict[str, Any]:
        return self._request("GET", "/test")

    def is_online(self) -> bool:
        try:
            self.test()
            return True
        except ApiError:
            return False
