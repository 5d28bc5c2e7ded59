"""Nordigen token issue, refresh and reuse."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from obnordigen.api.client import NordigenApi
from obnordigen.auth.constants import TOKEN_NEW_PATH, TOKEN_REFRESH_PATH
from obnordigen.auth.models import TokenState
from obnordigen.auth.storage import get_token_path, load_token, save_token
from obnordigen.errors import AuthError, NordigenError, StateNotFoundError
from obnordigen.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def _parse_token_payload(payload: Any, fields: tuple[str, ...], missing_message: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise AuthError(missing_message)
    for key in fields:
        value = payload.get(key)
        if key.endswith("_expires"):
            if isinstance(value, bool) or not isinstance(value, int):
                raise AuthError(missing_message)
        elif not value or not isinstance(value, str):
            raise AuthError(missing_message)
    return payload


def authorize(
    api: NordigenApi,
    secret_id: str,
    secret_key: str,
    now: datetime | None = None,
) -> TokenState:
    """Exchange the API secrets for a fresh access/refresh pair."""
    if not secret_id or not secret_key:
        raise AuthError("Nordigen secrets not configured. Run `nordigen onboard` and set secretId/secretKey.")
    try:
        payload = api.post(TOKEN_NEW_PATH, {"secret_id": secret_id, "secret_key": secret_key})
    except NordigenError as exc:
        raise AuthError(f"Unable to obtain token: {exc}") from exc

    data = _parse_token_payload(
        payload,
        ("access", "access_expires", "refresh", "refresh_expires"),
        "Token response missing fields",
    )
    return TokenState(
        access=data["access"],
        access_expires=data["access_expires"],
        refresh=data["refresh"],
        refresh_expires=data["refresh_expires"],
        issued_at=now or utcnow(),
    )


def refresh(api: NordigenApi, refresh_token: str) -> tuple[str, int]:
    """Mint a new access token. The refresh token itself is not rotated."""
    try:
        payload = api.post(TOKEN_REFRESH_PATH, {"refresh": refresh_token})
    except NordigenError as exc:
        raise AuthError(f"Unable to refresh token: {exc}") from exc

    data = _parse_token_payload(payload, ("access", "access_expires"), "Token refresh response missing fields")
    return data["access"], data["access_expires"]


def get_token(
    api: NordigenApi,
    secret_id: str,
    secret_key: str,
    path: Path | None = None,
    *,
    force: bool = False,
    now: datetime | None = None,
) -> TokenState:
    """
    Get a usable token, reusing or refreshing the stored one when possible.

    The stored record is returned untouched while its access token is valid.
    Otherwise the access token is refreshed while the refresh token is
    still valid, and a full re-authorization happens when neither is. Any
    new record is written back to ``path``.
    """
    path = path or get_token_path()
    now = now or utcnow()

    token: TokenState | None = None
    if not force:
        try:
            token = load_token(path)
        except StateNotFoundError:
            logger.debug("No stored token at %s", path)

    if token and token.is_access_valid(now):
        logger.debug("Stored access token valid until %s", token.access_expires_on())
        return token

    if token and token.is_refresh_valid(now):
        logger.debug("Access token expired, refreshing")
        access, access_expires = refresh(api, token.refresh)
        token = token.with_access(access, access_expires, now=now)
    else:
        logger.debug("No usable token, authorizing with secrets")
        token = authorize(api, secret_id, secret_key, now=now)

    save_token(token, path)
    return token
