"""Nordigen auth data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from obnordigen.utils.helpers import parse_timestamp, utcnow


@dataclass
class TokenState:
    """
    Access/refresh token pair as issued by Nordigen.

    Expiries are TTLs in seconds counted from ``issued_at``.
    """

    access: str
    access_expires: int
    refresh: str
    refresh_expires: int
    issued_at: datetime = field(default_factory=utcnow)

    def access_expires_on(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.access_expires)

    def refresh_expires_on(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.refresh_expires)

    def is_access_valid(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) < self.access_expires_on()

    def is_refresh_valid(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) < self.refresh_expires_on()

    def with_access(self, access: str, access_expires: int, now: datetime | None = None) -> TokenState:
        """
        Build the record that replaces this one after a refresh.

        The refresh token and its TTL are carried over unchanged while
        ``issued_at`` moves to ``now``, so the computed refresh expiry
        shifts forward on every refresh.
        """
        return TokenState(
            access=access,
            access_expires=access_expires,
            refresh=self.refresh,
            refresh_expires=self.refresh_expires,
            issued_at=now or utcnow(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.access,
            "token_expires": self.access_expires,
            "refresh_token": self.refresh,
            "refresh_expires": self.refresh_expires,
            "last_updated": self.issued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenState:
        access = data["token"]
        refresh = data["refresh_token"]
        if not isinstance(access, str) or not isinstance(refresh, str):
            raise ValueError("token fields must be strings")
        return cls(
            access=access,
            access_expires=_as_ttl(data["token_expires"]),
            refresh=refresh,
            refresh_expires=_as_ttl(data["refresh_expires"]),
            issued_at=parse_timestamp(data["last_updated"]),
        )


@dataclass
class Requisition:
    """A bank consent session as created on the remote side."""

    id: str
    created_at: datetime
    link: str
    bank_id: str


@dataclass
class BankRequisitionState:
    requisition_id: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "requisition_id": self.requisition_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BankRequisitionState:
        requisition_id = data["requisition_id"]
        if not isinstance(requisition_id, str):
            raise ValueError("requisition_id must be a string")
        return cls(requisition_id=requisition_id, created_at=parse_timestamp(data["created_at"]))


@dataclass
class BankAuthState:
    """What we keep on disk about the linked bank between runs."""

    bank_id: str
    requisition: BankRequisitionState

    def to_dict(self) -> dict[str, Any]:
        return {"bank_id": self.bank_id, "requisition": self.requisition.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BankAuthState:
        bank_id = data["bank_id"]
        if not isinstance(bank_id, str):
            raise ValueError("bank_id must be a string")
        return cls(bank_id=bank_id, requisition=BankRequisitionState.from_dict(data["requisition"]))


def _as_ttl(value: Any) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Invalid TTL: {value!r}")
    return value
