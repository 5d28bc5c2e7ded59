from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

import obnordigen.api.accounts as accounts
import obnordigen.auth.requisition as requisition
import obnordigen.auth.tokens as tokens
import obnordigen.cli.commands as commands
from obnordigen import __version__
from obnordigen.auth.models import BankAuthState, BankRequisitionState, TokenState
from obnordigen.auth.storage import load_bank_state, save_bank_state, save_token
from obnordigen.errors import AuthError

runner = CliRunner()


@pytest.fixture(autouse=True)
def data_home(tmp_path, monkeypatch):
    monkeypatch.setenv("OBNORDIGEN_HOME", str(tmp_path))
    monkeypatch.setenv("NORDIGEN_SECRET_ID", "sid")
    monkeypatch.setenv("NORDIGEN_SECRET_KEY", "skey")
    monkeypatch.setattr(commands.webbrowser, "open", lambda url: True)
    return tmp_path


def fresh_token() -> TokenState:
    return TokenState("access-1", 3600, "refresh-1", 7200, issued_at=datetime.now(timezone.utc))


def test_version() -> None:
    result = runner.invoke(commands.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_onboard_writes_config(data_home) -> None:
    result = runner.invoke(commands.app, ["onboard"])

    assert result.exit_code == 0
    assert (data_home / "config.json").exists()


def test_auth_status_without_state() -> None:
    result = runner.invoke(commands.app, ["auth", "status"])

    assert result.exit_code == 0
    assert "linked" in result.output


def test_auth_status_shows_stored_state() -> None:
    save_token(fresh_token())
    save_bank_state(
        BankAuthState("SANDBOXFINANCE_SFIN0000", BankRequisitionState("req-1", datetime.now(timezone.utc)))
    )

    result = runner.invoke(commands.app, ["auth", "status"])

    assert result.exit_code == 0
    assert "valid" in result.output
    assert "req-1" in result.output


def test_auth_login_reuses_stored_token(monkeypatch) -> None:
    save_token(fresh_token())

    def _no_network(*args, **kwargs):
        raise AssertionError("should not hit the network")

    monkeypatch.setattr(tokens, "authorize", _no_network)
    monkeypatch.setattr(tokens, "refresh", _no_network)

    result = runner.invoke(commands.app, ["auth", "login"])

    assert result.exit_code == 0
    assert "Token ready" in result.output


def test_auth_login_error_exits_nonzero(monkeypatch) -> None:
    def _deny(*args, **kwargs):
        raise AuthError("Unable to obtain token: 401")

    monkeypatch.setattr(tokens, "authorize", _deny)

    result = runner.invoke(commands.app, ["auth", "login", "--force"])

    assert result.exit_code == 1
    assert "Unable to obtain token" in result.output


def test_accounts_without_linked_bank_exits_nonzero() -> None:
    result = runner.invoke(commands.app, ["accounts", "list"])

    assert result.exit_code == 1
    assert "No bank linked" in result.output


def test_banks_authorize_persists_bank_state(monkeypatch) -> None:
    save_token(fresh_token())
    created = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def _start(self):
        self.requisition = requisition.Requisition("req-7", created, "https://bank.example/consent", self.bank_id)
        self.state = requisition.FlowState.REQUISITION_STARTED
        return self.requisition.link

    def _wait(self, timeout=None):
        assert timeout == 5
        self.state = requisition.FlowState.COMPLETED
        return BankRequisitionState("req-7", created)

    monkeypatch.setattr(requisition.BankAuthorization, "start", _start)
    monkeypatch.setattr(requisition.BankAuthorization, "wait_for_consent", _wait)

    result = runner.invoke(commands.app, ["banks", "authorize", "SANDBOXFINANCE_SFIN0000", "--timeout", "5"])

    assert result.exit_code == 0, result.output
    assert "https://bank.example/consent" in result.output
    state = load_bank_state()
    assert state.bank_id == "SANDBOXFINANCE_SFIN0000"
    assert state.requisition.requisition_id == "req-7"
    assert state.requisition.created_at == created


def test_expired_token_state_is_reported(monkeypatch) -> None:
    save_token(TokenState("a", 1, "r", 2, issued_at=datetime.now(timezone.utc) - timedelta(days=1)))

    result = runner.invoke(commands.app, ["auth", "status"])

    assert result.exit_code == 0
    assert "expired" in result.output


def _start_requisition(self):
    created = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    self.requisition = requisition.Requisition("req-7", created, "https://bank.example/consent", self.bank_id)
    self.state = requisition.FlowState.REQUISITION_STARTED
    return self.requisition.link


def test_banks_authorize_zero_timeout_waits_forever(monkeypatch) -> None:
    save_token(fresh_token())
    seen = {}

    def _wait(self, timeout=None):
        seen["timeout"] = timeout
        self.state = requisition.FlowState.COMPLETED
        return BankRequisitionState("req-7", self.requisition.created_at)

    monkeypatch.setattr(requisition.BankAuthorization, "start", _start_requisition)
    monkeypatch.setattr(requisition.BankAuthorization, "wait_for_consent", _wait)

    result = runner.invoke(commands.app, ["banks", "authorize", "SANDBOXFINANCE_SFIN0000", "--timeout", "0"])

    assert result.exit_code == 0, result.output
    assert seen == {"timeout": None}


def test_banks_authorize_rejects_negative_timeout_before_starting(monkeypatch) -> None:
    save_token(fresh_token())
    started = []
    monkeypatch.setattr(requisition.BankAuthorization, "start", lambda self: started.append(self) or "")

    result = runner.invoke(commands.app, ["banks", "authorize", "SANDBOXFINANCE_SFIN0000", "--timeout", "-1"])

    assert result.exit_code == 2
    assert started == []


def _link_bank() -> None:
    save_token(fresh_token())
    save_bank_state(
        BankAuthState(
            "SANDBOXFINANCE_SFIN0000",
            BankRequisitionState("req-7", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        )
    )


def test_accounts_transactions_uses_requested_days(monkeypatch) -> None:
    _link_bank()
    seen = {}

    def _transactions(self, account_id, date_from=None, date_to=None):
        seen.update(account_id=account_id, days=(date_to - date_from).days)
        return accounts.AccountTransactions()

    monkeypatch.setattr(accounts.Accounts, "transactions", _transactions)

    result = runner.invoke(commands.app, ["accounts", "transactions", "acc-1", "--days", "7"])

    assert result.exit_code == 0, result.output
    assert seen == {"account_id": "acc-1", "days": 7}


def test_accounts_transactions_defaults_to_configured_days(monkeypatch) -> None:
    _link_bank()
    seen = {}

    def _transactions(self, account_id, date_from=None, date_to=None):
        seen["days"] = (date_to - date_from).days
        return accounts.AccountTransactions()

    monkeypatch.setattr(accounts.Accounts, "transactions", _transactions)

    result = runner.invoke(commands.app, ["accounts", "transactions", "acc-1"])

    assert result.exit_code == 0, result.output
    assert seen == {"days": 30}


def test_accounts_transactions_rejects_zero_days(monkeypatch) -> None:
    _link_bank()
    called = []
    monkeypatch.setattr(accounts.Accounts, "transactions", lambda self, *a, **kw: called.append(a))

    result = runner.invoke(commands.app, ["accounts", "transactions", "acc-1", "--days", "0"])

    assert result.exit_code == 2
    assert called == []
