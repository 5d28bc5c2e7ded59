"""Nordigen REST API access."""

from obnordigen.api.accounts import AccountMeta, Accounts, AccountTransactions
from obnordigen.api.banks import BankEntry, list_banks
from obnordigen.api.client import API_BASE_URL, NordigenApi

__all__ = [
    "API_BASE_URL",
    "AccountMeta",
    "AccountTransactions",
    "Accounts",
    "BankEntry",
    "NordigenApi",
    "list_banks",
]
