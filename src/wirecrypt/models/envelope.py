from typing import Any, Literal

from pydantic import Field

from .serde_base import SerdeBase

ENVELOPE_VERSION = "2.0"


class EnvelopeBody(SerdeBase):
    ciphertext: str  # Base64 AES-GCM ciphertext, tag excluded
    nonce: str  # Base64 12-byte nonce
    tag: str  # Base64 16-byte GCM tag
    timestamp: int = Field(ge=0)  # Milliseconds since epoch, authenticated


class WireEnvelope(SerdeBase):
    """Replaces a plaintext JSON body on the wire.

    {"encrypted": true, "version": "2.0", "payload": {...}}
    """

    encrypted: Literal[True] = True
    version: str = ENVELOPE_VERSION
    payload: EnvelopeBody

    @staticmethod
    def looks_like(body: Any) -> bool:
        """Content-shape check telling an envelope apart from a plain JSON body."""
        return isinstance(body, dict) and body.get("encrypted") is True


class ErrorBody(SerdeBase):
    error: str
    code: str
