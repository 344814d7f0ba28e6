from .envelope import ENVELOPE_VERSION, EnvelopeBody, ErrorBody, WireEnvelope
from .serde_base import SerdeBase

__all__ = [
    "ENVELOPE_VERSION",
    "EnvelopeBody",
    "ErrorBody",
    "SerdeBase",
    "WireEnvelope",
]
