import json
from datetime import datetime, timedelta, timezone

import pytest

from obnordigen.auth.models import BankAuthState, BankRequisitionState, TokenState
from obnordigen.auth.storage import load_bank_state, load_token, save_bank_state, save_token
from obnordigen.errors import StateCorruptError, StateNotFoundError, StateWriteError

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_token(**overrides) -> TokenState:
    data = {
        "access": "access-1",
        "access_expires": 86400,
        "refresh": "refresh-1",
        "refresh_expires": 2592000,
        "issued_at": T0,
    }
    data.update(overrides)
    return TokenState(**data)


def test_access_valid_until_exact_expiry() -> None:
    token = make_token(access_expires=60)

    assert token.is_access_valid(T0)
    assert token.is_access_valid(T0 + timedelta(seconds=59, microseconds=999999))
    assert not token.is_access_valid(T0 + timedelta(seconds=60))
    assert not token.is_access_valid(T0 + timedelta(seconds=61))


def test_refresh_validity_uses_its_own_ttl() -> None:
    token = make_token(access_expires=60, refresh_expires=3600)
    later = T0 + timedelta(seconds=120)

    assert not token.is_access_valid(later)
    assert token.is_refresh_valid(later)
    assert not token.is_refresh_valid(T0 + timedelta(seconds=3600))


def test_expiry_dates_are_issued_at_plus_ttl() -> None:
    token = make_token(access_expires=10, refresh_expires=20)
    assert token.access_expires_on() == T0 + timedelta(seconds=10)
    assert token.refresh_expires_on() == T0 + timedelta(seconds=20)


def test_save_then_load_roundtrip(tmp_path) -> None:
    path = tmp_path / "token.json"
    token = make_token()

    save_token(token, path)
    loaded = load_token(path)

    assert loaded == token


def test_saved_file_uses_persisted_field_names(tmp_path) -> None:
    path = tmp_path / "token.json"
    save_token(make_token(), path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"token", "token_expires", "refresh_token", "refresh_expires", "last_updated"}
    assert data["token"] == "access-1"
    assert data["refresh_expires"] == 2592000
    assert (path.stat().st_mode & 0o777) == 0o600


def test_save_overwrites_existing_file(tmp_path) -> None:
    path = tmp_path / "token.json"
    path.write_text("old contents that are much longer than what will be written afterwards" * 10)

    save_token(make_token(access="new"), path)

    assert load_token(path).access == "new"


def test_load_missing_file_raises_not_found(tmp_path) -> None:
    with pytest.raises(StateNotFoundError):
        load_token(tmp_path / "missing.json")


@pytest.mark.parametrize(
    "content",
    [
        "this is not json",
        "[1, 2, 3]",
        '{"token": "a"}',
        '{"token": "a", "token_expires": "soon", "refresh_token": "r", "refresh_expires": 1, "last_updated": "2024-03-01T12:00:00+00:00"}',
        '{"token": "a", "token_expires": 1, "refresh_token": "r", "refresh_expires": 1, "last_updated": "yesterday"}',
    ],
)
def test_load_garbage_raises_corrupt(tmp_path, content: str) -> None:
    path = tmp_path / "token.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StateCorruptError):
        load_token(path)


def test_save_into_unwritable_location_raises_write_error(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")

    with pytest.raises(StateWriteError):
        save_token(make_token(), blocker / "token.json")


def test_bank_state_roundtrip(tmp_path) -> None:
    path = tmp_path / "bank.json"
    state = BankAuthState(
        bank_id="SANDBOXFINANCE_SFIN0000",
        requisition=BankRequisitionState(requisition_id="req-1", created_at=T0),
    )

    save_bank_state(state, path)

    assert load_bank_state(path) == state
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {
        "bank_id": "SANDBOXFINANCE_SFIN0000",
        "requisition": {"requisition_id": "req-1", "created_at": "2024-03-01T12:00:00+00:00"},
    }


def test_bank_state_missing_requisition_is_corrupt(tmp_path) -> None:
    path = tmp_path / "bank.json"
    path.write_text('{"bank_id": "X"}', encoding="utf-8")

    with pytest.raises(StateCorruptError):
        load_bank_state(path)
