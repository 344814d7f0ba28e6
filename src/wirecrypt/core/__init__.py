from .codec import PayloadCodec
from .errors import (
    DecodeError,
    DecodeReason,
    EncodeError,
    EncryptionRequiredError,
    HandlerError,
    KeyDerivationError,
    ModeMismatchError,
    TransportCryptoError,
)
from .exchange import Exchange, ExchangeState
from .keys import ExchangeContext, KeyMaterial, SymmetricKey
from .negotiation import NegotiationHeader, NegotiationResolver, resolve
from .policy import PolicyState, ResolvedMode
from .transport import Transport

__all__ = [
    "DecodeError",
    "DecodeReason",
    "EncodeError",
    "EncryptionRequiredError",
    "Exchange",
    "ExchangeContext",
    "ExchangeState",
    "HandlerError",
    "KeyDerivationError",
    "KeyMaterial",
    "ModeMismatchError",
    "NegotiationHeader",
    "NegotiationResolver",
    "PayloadCodec",
    "PolicyState",
    "ResolvedMode",
    "SymmetricKey",
    "Transport",
    "TransportCryptoError",
    "resolve",
]
