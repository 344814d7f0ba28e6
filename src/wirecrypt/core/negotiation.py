from collections.abc import Mapping
from dataclasses import dataclass

from .policy import PolicyState, ResolvedMode

ACCEPT_CRYPTO_HEADER = "x-accept-crypto"


@dataclass(frozen=True)
class NegotiationHeader:
    """Capability hint sent by the caller. Chooses a codec path, never authorises."""

    accepts_crypto: bool

    @classmethod
    def parse(cls, raw: str | None) -> "NegotiationHeader | None":
        if raw is None:
            return None
        return cls(accepts_crypto=raw.strip().lower() == "true")


def resolve(policy: PolicyState, header: NegotiationHeader | None) -> ResolvedMode:
    accepts_crypto = header.accepts_crypto if header is not None else False
    return policy.required_mode(accepts_crypto)


class NegotiationResolver:
    def __init__(self, policy: PolicyState):
        self.policy = policy

    def resolve(self, header: NegotiationHeader | None = None) -> ResolvedMode:
        return resolve(self.policy, header)

    def resolve_headers(self, headers: Mapping[str, str]) -> ResolvedMode:
        raw = next(
            (v for k, v in headers.items() if k.lower() == ACCEPT_CRYPTO_HEADER),
            None,
        )
        return self.resolve(NegotiationHeader.parse(raw))
