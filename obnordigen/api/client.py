"""Thin HTTP wrapper around the Nordigen REST API."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from obnordigen.errors import ApiStatusError, ParseError, TransportError

logger = logging.getLogger(__name__)

API_BASE_URL = "https://ob.nordigen.com/api/v2"


class NordigenApi:
    """
    Shared ``httpx.Client`` bound to the API base URL.

    Every request sends ``Accept: application/json``; passing ``token`` adds
    the bearer header. Failures are raised as ``TransportError``,
    ``ApiStatusError`` or ``ParseError``.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> "NordigenApi":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get(self, path: str, token: str, params: dict[str, Any] | None = None) -> Any:
        response = self._send("GET", path, token=token, params=params)
        return _decode(response, path)

    def get_text(self, path: str, token: str) -> str:
        return self._send("GET", path, token=token).text

    def post(self, path: str, payload: dict[str, Any], token: str | None = None) -> Any:
        response = self._send("POST", path, token=token, json=payload)
        return _decode(response, path)

    def _send(self, method: str, path: str, token: str | None = None, **kwargs: Any) -> httpx.Response:
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if "json" in kwargs:
            headers["Content-Type"] = "application/json"
        logger.debug("%s %s", method, path)
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path}: {exc}") from exc
        if not response.is_success:
            raise ApiStatusError(response.status_code, response.text, path=path)
        return response


def _decode(response: httpx.Response, path: str) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError(f"Unable to parse response from {path}: {exc}") from exc


def require(payload: Any, *keys: str, context: str = "response") -> dict[str, Any]:
    """Check that a decoded payload is an object carrying ``keys``."""
    if not isinstance(payload, dict):
        raise ParseError(f"Unexpected {context}: expected an object")
    missing = [key for key in keys if key not in payload]
    if missing:
        raise ParseError(f"{context} missing fields: {', '.join(missing)}")
    return payload
