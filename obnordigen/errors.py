"""Exception types raised by obnordigen."""

from __future__ import annotations


class NordigenError(Exception):
    """Base class for every error surfaced by obnordigen."""


# Alias used by the account/bank query helpers.
ApiError = NordigenError


class TransportError(NordigenError):
    """The remote API could not be reached."""


class ParseError(NordigenError):
    """A response body was not the JSON we expected."""


class ProtocolError(NordigenError):
    """The remote side answered, but not in a way we can use."""


class ApiStatusError(ProtocolError):
    """Non-success HTTP status from the remote API."""

    def __init__(self, status_code: int, body: str, path: str = ""):
        self.status_code = status_code
        self.body = body
        self.path = path
        snippet = body[:200] if body else ""
        super().__init__(f"{path or 'request'} failed with status {status_code}: {snippet}")


class StateError(NordigenError):
    """Local state file problems."""


class StateNotFoundError(StateError):
    pass


class StateCorruptError(StateError):
    pass


class StateWriteError(StateError):
    pass


class AuthError(NordigenError):
    """Token issue or refresh failed."""


class CallbackError(NordigenError):
    """The bank's redirect could not be captured or understood."""


class CallbackBindError(CallbackError):
    pass


class CallbackBadRequestError(CallbackError):
    pass


class CallbackMethodError(CallbackError):
    pass


class CallbackMissingQueryError(CallbackError):
    pass


class CallbackMissingRefError(CallbackError):
    pass


class CallbackTimeoutError(CallbackError):
    pass


class CallbackCancelledError(CallbackError):
    pass


class FlowError(NordigenError):
    """Bank authorization flow failure."""


class FlowStateError(FlowError):
    """Operation not allowed in the flow's current state."""


class NoRequisitionError(FlowStateError):
    pass


class RefMismatchError(FlowError):
    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(f"Mismatch between requisition id and bank's callback: {received}")


class FlowTimeoutError(FlowError):
    pass


class FlowCancelledError(FlowError):
    pass
