"""Account queries for a linked requisition."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from obnordigen.api.client import NordigenApi, require
from obnordigen.errors import ParseError
from obnordigen.utils.helpers import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTION_DAYS = 30


@dataclass
class AccountMeta:
    id: str
    iban: str
    institution_id: str
    currency: str
    created_at: datetime | None = None
    accessed_at: datetime | None = None
    owner_name: str | None = None
    name: str | None = None
    product: str | None = None
    account_type: str | None = None


@dataclass
class BookedTransaction:
    transaction_id: str
    amount: str
    currency: str
    booking_date: str
    value_date: str
    debtor_name: str | None = None
    debtor_account: str | None = None
    bank_transaction_code: str | None = None
    remittance_information: str | None = None
    internal_transaction_id: str | None = None


@dataclass
class PendingTransaction:
    amount: str
    currency: str
    value_date: str
    remittance_information: str | None = None


@dataclass
class AccountTransactions:
    booked: list[BookedTransaction] = field(default_factory=list)
    pending: list[PendingTransaction] = field(default_factory=list)


class Accounts:
    """Stateless queries against the accounts linked to one requisition."""

    def __init__(self, api: NordigenApi, token: str, requisition_id: str):
        self.api = api
        self.token = token
        self.requisition_id = requisition_id

    def list(self) -> list[str]:
        payload = require(
            self.api.get(f"requisitions/{self.requisition_id}/", self.token),
            "accounts",
            context="requisition",
        )
        accounts = payload["accounts"]
        if not isinstance(accounts, list):
            raise ParseError("Error listing accounts: accounts is not an array")
        return [str(account_id) for account_id in accounts]

    def info(self, account_id: str) -> dict[str, Any]:
        return require(
            self.api.get(f"accounts/{account_id}/", self.token),
            "id",
            "iban",
            "institution_id",
            context="account info",
        )

    def details(self, account_id: str) -> dict[str, Any]:
        payload = require(self.api.get(f"accounts/{account_id}/details/", self.token), "account", context="account details")
        return require(payload["account"], "currency", context="account details")

    def meta(self, account_id: str) -> AccountMeta:
        info = self.info(account_id)
        details = self.details(account_id)
        try:
            return AccountMeta(
                id=str(info["id"]),
                iban=str(info["iban"]),
                institution_id=str(info["institution_id"]),
                currency=str(details["currency"]),
                created_at=_optional_timestamp(info.get("created")),
                accessed_at=_optional_timestamp(info.get("last_accessed")),
                owner_name=details.get("ownerName"),
                name=details.get("name"),
                product=details.get("product"),
                account_type=details.get("cashAccountType"),
            )
        except ValueError as exc:
            raise ParseError(f"Error obtaining account metadata: {exc}") from exc

    def meta_all(self) -> list[AccountMeta]:
        """Metadata for every linked account, ordered by account id."""
        return [self.meta(account_id) for account_id in sorted(self.list())]

    def transactions(
        self,
        account_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> AccountTransactions:
        date_to = date_to or utcnow().date()
        date_from = date_from or date_to - timedelta(days=DEFAULT_TRANSACTION_DAYS)
        params = {"date_from": date_from.isoformat(), "date_to": date_to.isoformat()}
        logger.debug("Fetching transactions for %s from %s to %s", account_id, date_from, date_to)

        payload = require(
            self.api.get(f"accounts/{account_id}/transactions/", self.token, params=params),
            "transactions",
            context="transactions",
        )
        transactions = require(payload["transactions"], "booked", context="transactions")
        return AccountTransactions(
            booked=[_booked(item) for item in transactions["booked"] or []],
            pending=[_pending(item) for item in transactions.get("pending") or []],
        )

    def balance(self, account_id: str) -> str:
        """Raw balances payload, passed through as returned by the API."""
        return self.api.get_text(f"accounts/{account_id}/balances/", self.token)


def _optional_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return parse_timestamp(value)


def _amount(item: dict[str, Any]) -> tuple[str, str]:
    amount = require(item.get("transactionAmount"), "amount", "currency", context="transaction amount")
    return str(amount["amount"]), str(amount["currency"])


def _booked(item: Any) -> BookedTransaction:
    item = require(item, "bookingDate", context="booked transaction")
    amount, currency = _amount(item)
    debtor_account = item.get("debtorAccount")
    if isinstance(debtor_account, dict):
        debtor_account = debtor_account.get("iban")
    return BookedTransaction(
        transaction_id=str(item.get("transactionId") or item.get("internalTransactionId") or ""),
        amount=amount,
        currency=currency,
        booking_date=str(item["bookingDate"]),
        value_date=str(item.get("valueDate") or item["bookingDate"]),
        debtor_name=item.get("debtorName"),
        debtor_account=debtor_account,
        bank_transaction_code=item.get("bankTransactionCode"),
        remittance_information=item.get("remittanceInformationUnstructured"),
        internal_transaction_id=item.get("internalTransactionId"),
    )


def _pending(item: Any) -> PendingTransaction:
    item = require(item, context="pending transaction")
    amount, currency = _amount(item)
    return PendingTransaction(
        amount=amount,
        currency=currency,
        value_date=str(item.get("valueDate") or ""),
        remittance_information=item.get("remittanceInformationUnstructured"),
    )
