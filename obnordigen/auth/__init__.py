"""Nordigen token lifecycle and bank authorization."""

from obnordigen.auth.models import BankAuthState, BankRequisitionState, Requisition, TokenState
from obnordigen.auth.requisition import BankAuthorization, FlowState
from obnordigen.auth.server import wait_for_callback
from obnordigen.auth.tokens import authorize, get_token, refresh

__all__ = [
    "BankAuthState",
    "BankAuthorization",
    "BankRequisitionState",
    "FlowState",
    "Requisition",
    "TokenState",
    "authorize",
    "get_token",
    "refresh",
    "wait_for_callback",
]
