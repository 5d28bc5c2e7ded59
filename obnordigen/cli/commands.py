"""CLI commands for obnordigen."""

import json
import logging
import webbrowser
from datetime import timedelta
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from obnordigen import __logo__, __version__
from obnordigen.errors import NordigenError, StateCorruptError, StateNotFoundError

app = typer.Typer(
    name="nordigen",
    help=f"{__logo__} nordigen - Open Banking accounts from the command line",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} obnordigen v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable debug logging"),
):
    """nordigen - Open Banking accounts from the command line."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


def _fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error: {error}[/red]")
    if isinstance(error, StateCorruptError):
        console.print("Re-run [cyan]nordigen auth login --force[/cyan] or [cyan]nordigen banks authorize[/cyan] to rewrite it.")
    raise typer.Exit(1)


def _open_api(config):
    from obnordigen.api.client import NordigenApi

    return NordigenApi(base_url=config.api.base_url, timeout=config.api.timeout)


def _token(api, config, force: bool = False):
    from obnordigen.auth.tokens import get_token

    return get_token(api, config.nordigen.secret_id, config.nordigen.secret_key, force=force)


def _requisition_id(requisition: str | None) -> str:
    from obnordigen.auth.storage import load_bank_state

    if requisition:
        return requisition
    try:
        return load_bank_state().requisition.requisition_id
    except StateNotFoundError:
        console.print("[red]No bank linked yet.[/red]")
        console.print("Run [cyan]nordigen banks authorize BANK_ID[/cyan] first.")
        raise typer.Exit(1)
    except StateCorruptError as e:
        _fail(e)


def _fmt(value) -> str:
    if value is None:
        return "[dim]-[/dim]"
    return str(value)


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize obnordigen configuration."""
    from obnordigen.config.loader import get_config_path, save_config
    from obnordigen.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")

    console.print(f"\n{__logo__} obnordigen is ready!")
    console.print("\nNext steps:")
    console.print(f"  1. Add your secretId and secretKey to [cyan]{config_path}[/cyan]")
    console.print("     (or export NORDIGEN_SECRET_ID / NORDIGEN_SECRET_KEY)")
    console.print("  2. Log in: [cyan]nordigen auth login[/cyan]")
    console.print("  3. Link a bank: [cyan]nordigen banks authorize BANK_ID[/cyan]")


# ============================================================================
# Auth Commands
# ============================================================================


auth_app = typer.Typer(help="Manage API tokens")
app.add_typer(auth_app, name="auth")


@auth_app.command("login")
def auth_login(
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the stored token and re-authorize"),
):
    """Obtain, refresh or reuse an access token."""
    from obnordigen.config.loader import load_config

    config = load_config()
    try:
        with _open_api(config) as api:
            token = _token(api, config, force=force)
    except NordigenError as e:
        _fail(e)

    console.print("[green]✓[/green] Token ready")
    console.print(f"  access expires:  {token.access_expires_on():%Y-%m-%d %H:%M:%S %Z}")
    console.print(f"  refresh expires: {token.refresh_expires_on():%Y-%m-%d %H:%M:%S %Z}")


@auth_app.command("status")
def auth_status():
    """Show token and bank link status."""
    from obnordigen.auth.storage import get_token_path, load_bank_state, load_token

    table = Table(title="Auth Status")
    table.add_column("Item", style="cyan")
    table.add_column("State")
    table.add_column("Details", style="yellow")

    try:
        token = load_token()
    except StateNotFoundError:
        table.add_row("Token", "[dim]none[/dim]", str(get_token_path()))
    except StateCorruptError as e:
        table.add_row("Token", "[red]corrupt[/red]", str(e))
    else:
        access = "[green]valid[/green]" if token.is_access_valid() else "[red]expired[/red]"
        refresh = "[green]valid[/green]" if token.is_refresh_valid() else "[red]expired[/red]"
        table.add_row("Access token", access, f"until {token.access_expires_on():%Y-%m-%d %H:%M:%S}")
        table.add_row("Refresh token", refresh, f"until {token.refresh_expires_on():%Y-%m-%d %H:%M:%S}")

    try:
        bank = load_bank_state()
    except StateNotFoundError:
        table.add_row("Bank", "[dim]not linked[/dim]", "")
    except StateCorruptError as e:
        table.add_row("Bank", "[red]corrupt[/red]", str(e))
    else:
        table.add_row(
            "Bank",
            bank.bank_id,
            f"requisition {bank.requisition.requisition_id} ({bank.requisition.created_at:%Y-%m-%d})",
        )

    console.print(table)


# ============================================================================
# Bank Commands
# ============================================================================


banks_app = typer.Typer(help="Find and link banks")
app.add_typer(banks_app, name="banks")


@banks_app.command("list")
def banks_list(
    country: str = typer.Option(None, "--country", "-c", help="ISO 3166 country code, e.g. PT"),
):
    """List supported institutions."""
    from obnordigen.api.banks import list_banks
    from obnordigen.config.loader import load_config

    config = load_config()
    try:
        with _open_api(config) as api:
            token = _token(api, config)
            banks = list_banks(api, token.access, country=country)
    except NordigenError as e:
        _fail(e)

    if not banks:
        console.print("No institutions found.")
        return

    table = Table(title="Institutions")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("BIC")
    table.add_column("Days")
    table.add_column("Countries")
    for bank in banks:
        table.add_row(bank.id, bank.name, bank.bic, bank.transaction_total_days, ",".join(bank.countries))
    console.print(table)


@banks_app.command("authorize")
def banks_authorize(
    bank_id: str = typer.Argument(..., help="Institution id from `banks list`"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Print the consent URL without opening it"),
    timeout: float = typer.Option(None, "--timeout", "-t", min=0, help="Seconds to wait for the bank's callback (0 waits forever)"),
):
    """Link a bank account through the bank's consent page."""
    from obnordigen.auth.requisition import BankAuthorization
    from obnordigen.auth.storage import save_bank_state
    from obnordigen.config.loader import load_config

    config = load_config()
    wait = (timeout if timeout is not None else config.callback.timeout) or None
    try:
        with _open_api(config) as api:
            token = _token(api, config)
            flow = BankAuthorization(
                api,
                token.access,
                bank_id,
                callback_address=config.callback_address,
                user_language=config.user_language,
            )
            link = flow.start()

            console.print(f"{__logo__} Open this link to grant access:\n")
            console.print(link, soft_wrap=True)
            if not no_browser:
                webbrowser.open(link)
            console.print(f"\nWaiting for the bank to redirect to [cyan]{config.redirect_url}[/cyan]...")

            flow.wait_for_consent(timeout=wait)
            save_bank_state(flow.auth_state())
    except NordigenError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Linked {bank_id} (requisition {flow.requisition.id})")


# ============================================================================
# Account Commands
# ============================================================================


accounts_app = typer.Typer(help="Query linked accounts")
app.add_typer(accounts_app, name="accounts")


@accounts_app.command("list")
def accounts_list(
    requisition: str = typer.Option(None, "--requisition", "-r", help="Requisition id (defaults to the linked bank)"),
):
    """List linked accounts."""
    from obnordigen.api.accounts import Accounts
    from obnordigen.config.loader import load_config

    config = load_config()
    requisition_id = _requisition_id(requisition)
    try:
        with _open_api(config) as api:
            token = _token(api, config)
            metas = Accounts(api, token.access, requisition_id).meta_all()
    except NordigenError as e:
        _fail(e)

    if not metas:
        console.print("No accounts linked.")
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="cyan")
    table.add_column("IBAN")
    table.add_column("Name")
    table.add_column("Owner")
    table.add_column("Currency")
    table.add_column("Type")
    table.add_column("Last Accessed")
    for meta in metas:
        accessed = f"{meta.accessed_at:%Y-%m-%d %H:%M}" if meta.accessed_at else None
        table.add_row(
            meta.id,
            meta.iban,
            _fmt(meta.name or meta.product),
            _fmt(meta.owner_name),
            meta.currency,
            _fmt(meta.account_type),
            _fmt(accessed),
        )
    console.print(table)


@accounts_app.command("transactions")
def accounts_transactions(
    account_id: str = typer.Argument(..., help="Account id from `accounts list`"),
    days: int = typer.Option(None, "--days", "-d", min=1, help="How many days back to fetch"),
    requisition: str = typer.Option(None, "--requisition", "-r", help="Requisition id (defaults to the linked bank)"),
):
    """Show booked and pending transactions."""
    from obnordigen.api.accounts import Accounts
    from obnordigen.config.loader import load_config
    from obnordigen.utils.helpers import utcnow

    config = load_config()
    requisition_id = _requisition_id(requisition)
    date_to = utcnow().date()
    date_from = date_to - timedelta(days=days if days is not None else config.transaction_days)
    try:
        with _open_api(config) as api:
            token = _token(api, config)
            accounts = Accounts(api, token.access, requisition_id)
            result = accounts.transactions(account_id, date_from=date_from, date_to=date_to)
    except NordigenError as e:
        _fail(e)

    booked = Table(title=f"Booked ({date_from} → {date_to})")
    booked.add_column("Date", style="cyan")
    booked.add_column("Amount", justify="right")
    booked.add_column("Counterparty")
    booked.add_column("Description")
    for tx in result.booked:
        booked.add_row(
            tx.booking_date,
            f"{tx.amount} {tx.currency}",
            _fmt(tx.debtor_name or tx.debtor_account),
            _fmt(tx.remittance_information),
        )
    console.print(booked)

    if result.pending:
        pending = Table(title="Pending")
        pending.add_column("Date", style="cyan")
        pending.add_column("Amount", justify="right")
        pending.add_column("Description")
        for tx in result.pending:
            pending.add_row(tx.value_date, f"{tx.amount} {tx.currency}", _fmt(tx.remittance_information))
        console.print(pending)


@accounts_app.command("balance")
def accounts_balance(
    account_id: str = typer.Argument(..., help="Account id from `accounts list`"),
    requisition: str = typer.Option(None, "--requisition", "-r", help="Requisition id (defaults to the linked bank)"),
):
    """Print the raw balances payload."""
    from obnordigen.api.accounts import Accounts
    from obnordigen.config.loader import load_config

    config = load_config()
    requisition_id = _requisition_id(requisition)
    try:
        with _open_api(config) as api:
            token = _token(api, config)
            raw = Accounts(api, token.access, requisition_id).balance(account_id)
    except NordigenError as e:
        _fail(e)

    try:
        console.print_json(raw)
    except json.JSONDecodeError:
        console.print(raw, markup=False)


if __name__ == "__main__":
    app()
