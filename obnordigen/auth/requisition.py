"""Bank authorization (requisition) flow."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from obnordigen.api.client import NordigenApi, require
from obnordigen.auth.constants import (
    CALLBACK_HOST,
    CALLBACK_PORT,
    DEFAULT_USER_LANGUAGE,
    REQUISITIONS_PATH,
    redirect_url,
)
from obnordigen.auth.models import BankAuthState, BankRequisitionState, Requisition
from obnordigen.auth.server import wait_for_callback
from obnordigen.errors import (
    CallbackCancelledError,
    CallbackError,
    CallbackTimeoutError,
    FlowCancelledError,
    FlowError,
    FlowStateError,
    FlowTimeoutError,
    NoRequisitionError,
    NordigenError,
    RefMismatchError,
)
from obnordigen.utils.helpers import parse_timestamp

logger = logging.getLogger(__name__)

CallbackWaiter = Callable[[tuple[str, int], float | None], str]


class FlowState(str, Enum):
    CREATED = "created"
    REQUISITION_STARTED = "requisition_started"
    COMPLETED = "completed"
    FAILED = "failed"


class BankAuthorization:
    """
    Link one bank to the account via a Nordigen requisition.

    ``start`` creates the requisition and hands back the consent URL;
    ``wait_for_consent`` then blocks on the local callback listener and
    checks that the bank reports back the requisition we created. The
    requisition id is the only correlation between the two, so it has to
    match exactly.
    """

    def __init__(
        self,
        api: NordigenApi,
        token: str,
        bank_id: str,
        callback_address: tuple[str, int] = (CALLBACK_HOST, CALLBACK_PORT),
        user_language: str = DEFAULT_USER_LANGUAGE,
        wait_for_callback: CallbackWaiter = wait_for_callback,
    ):
        self.api = api
        self.token = token
        self.bank_id = bank_id
        self.callback_address = callback_address
        self.user_language = user_language
        self._wait_for_callback = wait_for_callback
        self.state = FlowState.CREATED
        self.requisition: Requisition | None = None
        self.error: NordigenError | None = None

    @property
    def redirect_url(self) -> str:
        return redirect_url(*self.callback_address)

    def start(self) -> str:
        """Create the requisition and return the bank's consent URL."""
        if self.state is not FlowState.CREATED:
            raise FlowStateError(f"Cannot start authorization in state {self.state.value}")

        body = {
            "redirect": self.redirect_url,
            "institution_id": self.bank_id,
            "user_language": self.user_language,
        }
        try:
            payload = require(
                self.api.post(REQUISITIONS_PATH, body, token=self.token),
                "id",
                "created",
                "link",
                context="requisition response",
            )
            requisition = Requisition(
                id=str(payload["id"]),
                created_at=parse_timestamp(payload["created"]),
                link=str(payload["link"]),
                bank_id=self.bank_id,
            )
        except (NordigenError, ValueError) as exc:
            raise self._fail(FlowError(f"Error obtaining authorization: {exc}"), exc)

        logger.debug("Created requisition %s for %s", requisition.id, self.bank_id)
        self.requisition = requisition
        self.state = FlowState.REQUISITION_STARTED
        return requisition.link

    def wait_for_consent(self, timeout: float | None = None) -> BankRequisitionState:
        """Block until the bank redirects back, then validate the session ref."""
        if self.state is not FlowState.REQUISITION_STARTED or self.requisition is None:
            raise NoRequisitionError("Unable to find existing requisition!")

        try:
            bank_ref = self._wait_for_callback(self.callback_address, timeout)
        except CallbackTimeoutError as exc:
            raise self._fail(FlowTimeoutError(f"Timed out waiting for the bank's callback: {exc}"), exc)
        except CallbackCancelledError as exc:
            raise self._fail(FlowCancelledError(str(exc)), exc)
        except CallbackError as exc:
            raise self._fail(FlowError(f"Unable to obtain bank's callback: {exc}"), exc)

        if bank_ref != self.requisition.id:
            raise self._fail(RefMismatchError(self.requisition.id, bank_ref))

        self.state = FlowState.COMPLETED
        return BankRequisitionState(
            requisition_id=self.requisition.id,
            created_at=self.requisition.created_at,
        )

    def auth_state(self) -> BankAuthState:
        """The persistable form of a completed flow."""
        if self.state is not FlowState.COMPLETED or self.requisition is None:
            raise FlowStateError("Authorization has not completed")
        return BankAuthState(
            bank_id=self.bank_id,
            requisition=BankRequisitionState(
                requisition_id=self.requisition.id,
                created_at=self.requisition.created_at,
            ),
        )

    def _fail(self, error: FlowError, cause: BaseException | None = None) -> FlowError:
        self.state = FlowState.FAILED
        self.error = error
        if cause is not None:
            error.__cause__ = cause
        logger.debug("Bank authorization failed: %s", error)
        return error
