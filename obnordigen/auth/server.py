"""Local single-shot listener for the bank's consent redirect."""

from __future__ import annotations

import logging
import socketserver
import time
from typing import Any

from obnordigen.auth.constants import CALLBACK_HOST, CALLBACK_PORT, THANK_YOU_RESPONSE
from obnordigen.errors import (
    CallbackBadRequestError,
    CallbackBindError,
    CallbackCancelledError,
    CallbackError,
    CallbackMethodError,
    CallbackMissingQueryError,
    CallbackMissingRefError,
    CallbackTimeoutError,
)

logger = logging.getLogger(__name__)

_MAX_LINE = 65536


def parse_query(query: str) -> dict[str, str]:
    """
    Split ``a=1&b=2`` into a dict.

    Pairs that do not split into exactly two parts on ``=`` are dropped and
    later duplicates win. Values are kept as sent (no percent-decoding).
    """
    params: dict[str, str] = {}
    for pair in query.split("&"):
        parts = pair.split("=")
        if len(parts) != 2:
            continue
        params[parts[0]] = parts[1]
    return params


def parse_callback_request(lines: list[str]) -> str:
    """Extract ``ref`` from the request line of the bank's redirect."""
    if not lines:
        raise CallbackBadRequestError("empty request")
    request_line = lines[0].split()
    if len(request_line) < 3:
        raise CallbackBadRequestError(f"Unexpected request line: {lines[0]}")
    method, target = request_line[0], request_line[1]
    if method.lower() != "get":
        raise CallbackMethodError(f"Unexpected method: {method}")

    _, sep, query = target.partition("?")
    if not sep:
        raise CallbackMissingQueryError("No parameters provided!")

    params = parse_query(query)
    if "ref" not in params:
        raise CallbackMissingRefError("Callback did not provide ref")
    return params["ref"]


class _CallbackHandler(socketserver.StreamRequestHandler):
    """Read one request head, record the outcome, reply with a static page."""

    # Per-connection read timeout; a silent client should not stall the flow.
    timeout = 30

    def handle(self) -> None:
        outcome: str | CallbackError
        try:
            outcome = parse_callback_request(self._read_head())
        except CallbackError as exc:
            outcome = exc
        self.server.record(outcome)

        try:
            self.wfile.write(THANK_YOU_RESPONSE)
            self.wfile.flush()
        except OSError as exc:
            logger.warning("Error sending response: %s", exc)

    def _read_head(self) -> list[str]:
        lines: list[str] = []
        try:
            while True:
                raw = self.rfile.readline(_MAX_LINE)
                if not raw:
                    break
                if len(raw) >= _MAX_LINE and not raw.endswith(b"\n"):
                    raise CallbackBadRequestError(f"Request line longer than {_MAX_LINE} bytes")
                line = raw.decode("latin-1").rstrip("\r\n")
                if not line:
                    break
                lines.append(line)
        except OSError as exc:
            raise CallbackBadRequestError(f"Unable to read request: {exc}") from exc
        return lines


class CallbackServer(socketserver.TCPServer):
    """
    TCP listener that serves exactly one successfully accepted connection.

    ``wait`` blocks until that connection has been handled, the optional
    timeout elapses, or the user interrupts.
    """

    allow_reuse_address = True

    def __init__(self, server_address: tuple[str, int]):
        super().__init__(server_address, _CallbackHandler)
        self.outcome: str | CallbackError | None = None
        self.handled = False

    def record(self, outcome: str | CallbackError) -> None:
        self.outcome = outcome
        self.handled = True

    def handle_error(self, request: Any, client_address: Any) -> None:
        logger.exception("Error handling callback from %s", client_address)

    def wait(self, timeout: float | None = None) -> str:
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.handled:
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise CallbackTimeoutError(f"No callback received within {timeout:g}s")
                self.timeout = remaining
            # Returns without handling anything on a failed accept or a timeout.
            self.handle_request()

        if isinstance(self.outcome, CallbackError):
            raise self.outcome
        return self.outcome


def wait_for_callback(
    address: tuple[str, int] = (CALLBACK_HOST, CALLBACK_PORT),
    timeout: float | None = None,
) -> str:
    """Bind ``address``, wait for the bank's redirect and return its ``ref``."""
    try:
        server = CallbackServer(address)
    except OSError as exc:
        raise CallbackBindError(f"Unable to listen on {address[0]}:{address[1]}: {exc}") from exc

    logger.debug("Waiting for callback on %s:%s", *server.server_address[:2])
    with server:
        try:
            ref = server.wait(timeout)
        except KeyboardInterrupt as exc:
            raise CallbackCancelledError("Interrupted while waiting for the bank's callback") from exc
    logger.debug("Callback received")
    return ref
