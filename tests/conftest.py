import json
from typing import Any, Callable

import httpx
import pytest

from obnordigen.api.client import NordigenApi


class FakeNordigen:
    """Routes requests to canned responses and records what was sent."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None, text: str | None = None) -> None:
        def _respond(_request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text)
            return httpx.Response(status, json=body)

        self.routes[(method, path)] = _respond

    def fail(self, method: str, path: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method, path)] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not found."})
        return route(request)

    def sent_json(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def fake() -> FakeNordigen:
    return FakeNordigen()


@pytest.fixture
def api(fake: FakeNordigen):
    client = NordigenApi(transport=httpx.MockTransport(fake.handler))
    yield client
    client.close()
