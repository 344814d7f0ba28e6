from dataclasses import dataclass, fields
from enum import StrEnum


class ResolvedMode(StrEnum):
    ENCRYPTED = "encrypted"
    PLAINTEXT = "plaintext"
    REJECTED = "rejected"


@dataclass(frozen=True)
class PolicyState:
    """Server-side enforcement flags, fixed for the lifetime of the process.

    ``debug`` only controls diagnostic verbosity and never takes part in
    the mode decision.
    """

    enabled: bool
    force: bool = False
    allow_plain: bool = False
    debug: bool = False

    def __post_init__(self):
        for field in fields(self):
            value = getattr(self, field.name)
            if not isinstance(value, bool):
                raise TypeError(
                    f"Policy flag '{field.name}' must be a bool, got {type(value).__name__}"
                )

    @classmethod
    def from_settings(cls, settings) -> "PolicyState":
        return cls(
            enabled=settings.enabled,
            force=settings.force,
            allow_plain=settings.allow_plain,
            debug=settings.debug,
        )

    def required_mode(self, client_accepts_crypto: bool) -> ResolvedMode:
        if not self.enabled:
            return ResolvedMode.PLAINTEXT

        if self.force or client_accepts_crypto:
            return ResolvedMode.ENCRYPTED

        if self.allow_plain:
            return ResolvedMode.PLAINTEXT

        return ResolvedMode.REJECTED

    @property
    def label(self) -> str:
        # Value of the X-Crypto-Policy response header
        return "forced" if self.force else "negotiated"
