from enum import StrEnum


class TransportCryptoError(Exception):
    """Base class for failures raised by the transport-encryption layer."""


class KeyDerivationError(TransportCryptoError):
    """The master secret is absent or unusable. Fatal at startup."""


class EncodeError(TransportCryptoError):
    """A payload could not be serialized for sealing."""


class DecodeReason(StrEnum):
    MALFORMED_ENVELOPE = "malformed_envelope"
    AUTH_FAILURE = "auth_failure"
    PARSE_FAILURE = "parse_failure"
    EXPIRED = "expired"


class DecodeError(TransportCryptoError):
    """An inbound envelope could not be opened.

    ``reason`` is for operators only. Clients always receive the same
    response regardless of which reason applied.
    """

    def __init__(self, reason: DecodeReason, detail: str = ""):
        super().__init__(f"{reason}: {detail}" if detail else str(reason))
        self.reason = reason
        self.detail = detail


class ModeMismatchError(TransportCryptoError):
    """The shape of a body contradicts the resolved mode."""

    def __init__(self, expected, detail: str = ""):
        super().__init__(detail or f"body does not match {expected} mode")
        self.expected = expected
        self.detail = detail


class EncryptionRequiredError(ModeMismatchError):
    """The exchange must be encrypted but the client did not comply."""


class HandlerError(Exception):
    """Wraps whatever the downstream handler raised."""

    def __init__(self, original: BaseException):
        super().__init__(f"{type(original).__name__}: {original}")
        self.original = original
