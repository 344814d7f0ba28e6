from dataclasses import dataclass, field

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import KeyDerivationError

MASTER_KEY_MIN_LENGTH = 32
KEY_LENGTH = 32  # AES-256

HKDF_SALT = b"wirecrypt.transport.v2"
HKDF_INFO_PREFIX = b"wirecrypt/2.0|"

DEFAULT_SESSION_ID = "default"


@dataclass(frozen=True)
class ExchangeContext:
    """Per-exchange key derivation input, shared by both endpoints."""

    session_id: str = DEFAULT_SESSION_ID

    @classmethod
    def from_header(cls, value: str | None) -> "ExchangeContext":
        if not value or not value.strip():
            return cls()
        return cls(session_id=value.strip())

    def info(self) -> bytes:
        return HKDF_INFO_PREFIX + self.session_id.encode("utf-8")


@dataclass(frozen=True)
class SymmetricKey:
    raw: bytes = field(repr=False)

    def __post_init__(self):
        if len(self.raw) != KEY_LENGTH:
            raise KeyDerivationError(f"Derived key must be {KEY_LENGTH} bytes")


class KeyMaterial:
    """Holds the shared master secret for the lifetime of the process.

    Keys are derived with HKDF-SHA256, so the same master secret and
    ExchangeContext always produce the same key on either end of the pair.
    """

    def __init__(self, master_key: str | bytes | None):
        self.__master_key = self.__validate(master_key)

    @staticmethod
    def __validate(master_key) -> bytes:
        if master_key is None:
            raise KeyDerivationError("Master key is not configured")

        if isinstance(master_key, str):
            master_key = master_key.encode("utf-8")
        elif not isinstance(master_key, bytes):
            raise KeyDerivationError(
                f"Master key must be str or bytes, got {type(master_key).__name__}"
            )

        if not master_key:
            raise KeyDerivationError("Master key is empty")

        if len(master_key) < MASTER_KEY_MIN_LENGTH:
            raise KeyDerivationError(
                f"Master key must be at least {MASTER_KEY_MIN_LENGTH} bytes"
            )

        return master_key

    @classmethod
    def from_settings(cls, settings) -> "KeyMaterial":
        secret = settings.master_key
        return cls(secret.get_secret_value() if secret is not None else None)

    def derive_key(self, context: ExchangeContext | None = None) -> SymmetricKey:
        context = context or ExchangeContext()
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=HKDF_SALT,
            info=context.info(),
        )
        return SymmetricKey(hkdf.derive(self.__master_key))

    def __repr__(self):
        return f"{type(self).__name__}(master_key=<redacted>)"
