"""Institution listing."""

from __future__ import annotations

from dataclasses import dataclass, field

from obnordigen.api.client import NordigenApi, require
from obnordigen.errors import ParseError


@dataclass
class BankEntry:
    id: str
    name: str
    bic: str
    transaction_total_days: str
    countries: list[str] = field(default_factory=list)
    logo: str = ""


def list_banks(api: NordigenApi, token: str, country: str | None = None) -> list[BankEntry]:
    """List institutions, optionally restricted to one ISO country code."""
    params = {"country": country} if country else None
    payload = api.get("institutions/", token, params=params)
    if not isinstance(payload, list):
        raise ParseError("Unable to parse bank list: expected an array")

    banks = []
    for item in payload:
        entry = require(item, "id", "name", context="bank entry")
        banks.append(
            BankEntry(
                id=str(entry["id"]),
                name=str(entry["name"]),
                bic=str(entry.get("bic") or ""),
                transaction_total_days=str(entry.get("transaction_total_days") or ""),
                countries=list(entry.get("countries") or []),
                logo=str(entry.get("logo") or ""),
            )
        )
    return banks
