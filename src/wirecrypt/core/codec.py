import base64
import binascii
import json
import os
import time
from collections.abc import Callable, Mapping
from contextlib import contextmanager
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import ValidationError

from wirecrypt.models import ENVELOPE_VERSION, EnvelopeBody, WireEnvelope
from wirecrypt.shared import Logger

from .errors import DecodeError, DecodeReason, EncodeError
from .keys import SymmetricKey

__all__ = [
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "PayloadCodec",
    "canonical_json",
    "serialization_guard",
]

logger = Logger(__name__).get_logger()

NONCE_LENGTH = 12  # 96-bit GCM nonce
TAG_LENGTH = 16  # 128-bit GCM tag


@contextmanager
def serialization_guard(stacklevel=1):
    # Go 3 levels up to escape @contextmanager methods and current function
    stack_level = 2 + stacklevel
    kw = {"stacklevel": stack_level}
    try:
        yield

    except (TypeError, ValueError) as e:
        logger.error("Failed to serialize payload: %s", e, **kw)
        raise EncodeError(str(e)) from e


def canonical_json(obj: Any) -> bytes:
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def _refuse_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def _associated_data(version: str, timestamp: int) -> bytes:
    return f"{version}|{timestamp}".encode("ascii")


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(data: str, field_name: str, expected_length: int | None = None) -> bytes:
    try:
        decoded = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(
            DecodeReason.MALFORMED_ENVELOPE, f"invalid base64 in {field_name}"
        ) from e

    if expected_length is not None and len(decoded) != expected_length:
        raise DecodeError(
            DecodeReason.MALFORMED_ENVELOPE,
            f"{field_name} must be {expected_length} bytes, got {len(decoded)}",
        )
    return decoded


class PayloadCodec:
    """AES-256-GCM sealing of JSON payloads into WireEnvelopes.

    Every call to ``seal`` draws a fresh nonce from the OS CSPRNG. The
    envelope version and timestamp are bound to the ciphertext as
    associated data, so neither can be altered without failing
    authentication.

    ``max_age`` (seconds) bounds how old an authenticated envelope may be
    before it is refused as a replay. ``None`` disables the check.
    """

    def __init__(
        self,
        max_age: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.max_age = max_age
        self.__clock = clock

    # ------------------------------------------------------------------
    #       Raw AEAD
    # ------------------------------------------------------------------
    def seal(self, plaintext: bytes, key: SymmetricKey) -> WireEnvelope:
        nonce = os.urandom(NONCE_LENGTH)
        timestamp = int(self.__clock() * 1000)

        sealed = AESGCM(key.raw).encrypt(
            nonce, plaintext, _associated_data(ENVELOPE_VERSION, timestamp)
        )
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return WireEnvelope(
            version=ENVELOPE_VERSION,
            payload=EnvelopeBody(
                ciphertext=_b64encode(ciphertext),
                nonce=_b64encode(nonce),
                tag=_b64encode(tag),
                timestamp=timestamp,
            ),
        )

    def open(self, envelope: WireEnvelope | Mapping, key: SymmetricKey) -> bytes:
        envelope = self.__coerce(envelope)

        if envelope.version != ENVELOPE_VERSION:
            raise DecodeError(
                DecodeReason.MALFORMED_ENVELOPE,
                f"unsupported envelope version {envelope.version!r}",
            )

        body = envelope.payload
        ciphertext = _b64decode(body.ciphertext, "ciphertext")
        nonce = _b64decode(body.nonce, "nonce", NONCE_LENGTH)
        tag = _b64decode(body.tag, "tag", TAG_LENGTH)

        try:
            plaintext = AESGCM(key.raw).decrypt(
                nonce,
                ciphertext + tag,
                _associated_data(envelope.version, body.timestamp),
            )
        except InvalidTag as e:
            raise DecodeError(
                DecodeReason.AUTH_FAILURE, "authentication tag mismatch"
            ) from e

        self.__check_freshness(body.timestamp)
        return plaintext

    # ------------------------------------------------------------------
    #       JSON payloads
    # ------------------------------------------------------------------
    def encode(self, obj: Any, key: SymmetricKey) -> WireEnvelope:
        with serialization_guard():
            plaintext = canonical_json(obj)
        return self.seal(plaintext, key)

    def decode(self, envelope: WireEnvelope | Mapping, key: SymmetricKey) -> Any:
        plaintext = self.open(envelope, key)
        try:
            payload = json.loads(plaintext.decode("utf-8"), parse_constant=_refuse_constant)
            # Lone surrogate escapes parse but cannot be re-encoded as UTF-8
            canonical_json(payload)
        except ValueError as e:
            raise DecodeError(DecodeReason.PARSE_FAILURE, str(e)) from e
        return payload

    # ------------------------------------------------------------------
    #       Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def __coerce(envelope) -> WireEnvelope:
        if isinstance(envelope, WireEnvelope):
            return envelope

        if not isinstance(envelope, Mapping):
            raise DecodeError(
                DecodeReason.MALFORMED_ENVELOPE,
                f"expected a JSON object, got {type(envelope).__name__}",
            )

        try:
            return WireEnvelope.model_validate(dict(envelope))
        except ValidationError as e:
            missing = ", ".join(".".join(map(str, err["loc"])) for err in e.errors())
            raise DecodeError(
                DecodeReason.MALFORMED_ENVELOPE, f"invalid fields: {missing}"
            ) from e

    def __check_freshness(self, timestamp: int):
        if self.max_age is None:
            return

        age_ms = int(self.__clock() * 1000) - timestamp
        if abs(age_ms) > self.max_age * 1000:
            raise DecodeError(
                DecodeReason.EXPIRED, f"envelope age {age_ms} ms outside replay window"
            )
