from dataclasses import dataclass, field
from enum import StrEnum

from .keys import ExchangeContext
from .policy import ResolvedMode


class ExchangeState(StrEnum):
    START = "start"
    MODE_RESOLVED = "mode_resolved"
    BODY_VALIDATED = "body_validated"
    HANDLER_INVOKED = "handler_invoked"
    RESPONSE_ENCODED = "response_encoded"
    DONE = "done"
    FAILED = "failed"


_FORWARD = {
    ExchangeState.START: ExchangeState.MODE_RESOLVED,
    ExchangeState.MODE_RESOLVED: ExchangeState.BODY_VALIDATED,
    ExchangeState.BODY_VALIDATED: ExchangeState.HANDLER_INVOKED,
    ExchangeState.HANDLER_INVOKED: ExchangeState.RESPONSE_ENCODED,
    ExchangeState.RESPONSE_ENCODED: ExchangeState.DONE,
}

TERMINAL_STATES = frozenset({ExchangeState.DONE, ExchangeState.FAILED})


@dataclass
class Exchange:
    """One request/response cycle through the transport layer."""

    context: ExchangeContext = field(default_factory=ExchangeContext)
    mode: ResolvedMode | None = None
    state: ExchangeState = ExchangeState.START
    error: BaseException | None = None

    def advance(self, target: ExchangeState):
        if target is ExchangeState.FAILED:
            raise RuntimeError("Use Exchange.fail() to enter the FAILED state")

        expected = _FORWARD.get(self.state)
        if expected is not target:
            raise RuntimeError(f"Illegal exchange transition {self.state} -> {target}")

        self.state = target

    def fail(self, error: BaseException):
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Exchange already finished in state {self.state}")

        self.error = error
        self.state = ExchangeState.FAILED

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES
