import json
from collections.abc import Mapping

from wirecrypt.models import ENVELOPE_VERSION, WireEnvelope
from wirecrypt.shared import Logger

from .codec import PayloadCodec, canonical_json
from .errors import (
    DecodeError,
    EncodeError,
    EncryptionRequiredError,
    KeyDerivationError,
    ModeMismatchError,
    TransportCryptoError,
)
from .exchange import Exchange, ExchangeState
from .keys import ExchangeContext, KeyMaterial, SymmetricKey
from .negotiation import NegotiationResolver
from .policy import PolicyState, ResolvedMode

__all__ = ["SESSION_ID_HEADER", "Transport"]

logger = Logger(__name__).get_logger()

SESSION_ID_HEADER = "x-session-id"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    return next((v for k, v in headers.items() if k.lower() == name), None)


class Transport:
    """Framework-independent driver for a single exchange.

    The HTTP layer calls ``begin``, ``open_request``, runs the downstream
    handler, then calls ``seal_response`` and ``finish``. Each step moves the
    Exchange through its state machine; any transport failure moves it to
    FAILED before the error is re-raised to the caller.
    """

    def __init__(
        self,
        policy: PolicyState,
        key_material: KeyMaterial | None = None,
        codec: PayloadCodec | None = None,
    ):
        if policy.enabled and key_material is None:
            raise KeyDerivationError("Encryption is enabled but no master key was provided")

        self.policy = policy
        self.resolver = NegotiationResolver(policy)
        self.key_material = key_material
        self.codec = codec or PayloadCodec()

    def begin(self, headers: Mapping[str, str]) -> Exchange:
        exchange = Exchange(
            context=ExchangeContext.from_header(_header(headers, SESSION_ID_HEADER))
        )
        exchange.mode = self.resolver.resolve_headers(headers)
        exchange.advance(ExchangeState.MODE_RESOLVED)

        if self.policy.debug:
            logger.info(
                "Resolved %s mode (session %s, policy %s)",
                exchange.mode,
                self.__session_hint(exchange),
                self.policy.label,
            )
        return exchange

    def open_request(self, exchange: Exchange, body: bytes) -> bytes:
        """Validate the inbound body against the resolved mode and return the
        plaintext bytes the downstream handler should see."""
        try:
            plain = self.__open(exchange, body)
        except TransportCryptoError as e:
            exchange.fail(e)
            self.__log_failure(exchange, e)
            raise

        exchange.advance(ExchangeState.BODY_VALIDATED)
        return plain

    def seal_response(self, exchange: Exchange, body: bytes, bodyless: bool = False) -> bytes:
        """Seal the handler's response body under the exchange's mode.

        ``bodyless`` marks responses that must not carry a body (HEAD, 1xx,
        204, 304); those are passed through without an envelope.
        """
        if bodyless:
            exchange.advance(ExchangeState.RESPONSE_ENCODED)
            return b""

        if exchange.mode is not ResolvedMode.ENCRYPTED:
            exchange.advance(ExchangeState.RESPONSE_ENCODED)
            return body

        try:
            sealed = self.__seal(exchange, body)
        except EncodeError as e:
            exchange.fail(e)
            self.__log_failure(exchange, e)
            raise

        exchange.advance(ExchangeState.RESPONSE_ENCODED)
        return sealed

    def finish(self, exchange: Exchange):
        exchange.advance(ExchangeState.DONE)

    def response_headers(self, exchange: Exchange) -> dict[str, str]:
        if exchange.mode is not ResolvedMode.ENCRYPTED:
            return {}

        return {
            "X-Encrypted": "true",
            "X-Crypto-Version": ENVELOPE_VERSION,
            "X-Crypto-Policy": self.policy.label,
            "X-Session-Id": exchange.context.session_id,
        }

    # ------------------------------------------------------------------
    #       Internals
    # ------------------------------------------------------------------
    def __open(self, exchange: Exchange, body: bytes) -> bytes:
        if exchange.mode is ResolvedMode.REJECTED:
            raise EncryptionRequiredError(
                ResolvedMode.ENCRYPTED, "client did not negotiate encryption"
            )

        # Layer disabled: the body is never inspected
        if not self.policy.enabled or not body.strip():
            return body

        try:
            parsed = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            parsed = None

        is_envelope = WireEnvelope.looks_like(parsed)

        if exchange.mode is ResolvedMode.PLAINTEXT:
            if is_envelope:
                raise ModeMismatchError(
                    ResolvedMode.PLAINTEXT, "received an envelope in plaintext mode"
                )
            return body

        if not is_envelope:
            raise EncryptionRequiredError(
                ResolvedMode.ENCRYPTED, "received a plain body in encrypted mode"
            )

        payload = self.codec.decode(parsed, self.__key(exchange))
        return canonical_json(payload)

    def __seal(self, exchange: Exchange, body: bytes) -> bytes:
        try:
            payload = json.loads(body) if body.strip() else None
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise EncodeError("response body is not JSON") from e

        return self.codec.encode(payload, self.__key(exchange)).to_json_bytes()

    def __key(self, exchange: Exchange) -> SymmetricKey:
        return self.key_material.derive_key(exchange.context)

    @staticmethod
    def __session_hint(exchange: Exchange) -> str:
        return exchange.context.session_id[:8] + "..."

    def __log_failure(self, exchange: Exchange, error: TransportCryptoError):
        session = self.__session_hint(exchange)

        if isinstance(error, DecodeError):
            if self.policy.debug:
                logger.warning(
                    "Refused encrypted payload (session %s): %s %s",
                    session,
                    error.reason,
                    error.detail,
                )
            else:
                logger.info("Refused encrypted payload (session %s)", session)
        elif isinstance(error, EncryptionRequiredError):
            logger.info("Encryption required (session %s): %s", session, error.detail)
        elif isinstance(error, ModeMismatchError):
            logger.warning("Body/mode mismatch (session %s): %s", session, error.detail)
        else:
            logger.error("Failed to encode response (session %s): %s", session, error)
