"""Token and bank-link state storage."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from obnordigen.auth.constants import BANK_STATE_FILENAME, TOKEN_FILENAME
from obnordigen.auth.models import BankAuthState, TokenState
from obnordigen.errors import StateCorruptError, StateNotFoundError, StateWriteError
from obnordigen.utils.helpers import get_data_path

logger = logging.getLogger(__name__)


def get_token_path() -> Path:
    return get_data_path() / TOKEN_FILENAME


def get_bank_state_path() -> Path:
    return get_data_path() / BANK_STATE_FILENAME


def load_token(path: Path | None = None) -> TokenState:
    """Load the stored token pair; raises StateNotFoundError / StateCorruptError."""
    path = path or get_token_path()
    data = _read_json(path)
    try:
        return TokenState.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise StateCorruptError(f"Invalid token state in {path}: {exc}") from exc


def save_token(token: TokenState, path: Path | None = None) -> None:
    _write_json(path or get_token_path(), token.to_dict())


def load_bank_state(path: Path | None = None) -> BankAuthState:
    path = path or get_bank_state_path()
    data = _read_json(path)
    try:
        return BankAuthState.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise StateCorruptError(f"Invalid bank state in {path}: {exc}") from exc


def save_bank_state(state: BankAuthState, path: Path | None = None) -> None:
    _write_json(path or get_bank_state_path(), state.to_dict())


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise StateNotFoundError(f"State file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise StateCorruptError(f"Unable to read state file {path}: {exc}") from exc


def _write_json(path: Path, data: dict[str, Any]) -> None:
    try:
        payload = json.dumps(data, ensure_ascii=True, indent=2)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        raise StateWriteError(f"Unable to write state file {path}: {exc}") from exc
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Ignore permission setting failures.
        logger.debug("Could not restrict permissions on %s", path)
    logger.debug("Wrote state file %s", path)
