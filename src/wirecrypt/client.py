from dataclasses import dataclass
from typing import Any

import requests

from wirecrypt.core import ExchangeContext, KeyMaterial, PayloadCodec
from wirecrypt.core.negotiation import ACCEPT_CRYPTO_HEADER
from wirecrypt.core.transport import SESSION_ID_HEADER
from wirecrypt.models import WireEnvelope
from wirecrypt.shared import Logger

logger = Logger(__name__).get_logger()


@dataclass(frozen=True)
class Reply:
    status_code: int
    body: Any
    encrypted: bool

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class CryptoClient:
    """The calling end of a deployment pair.

    Shares KeyMaterial with the server, always declares ``x-accept-crypto``
    and seals request bodies. Replies are opened when they are envelopes and
    returned untouched otherwise (e.g. the fixed-shape rejection bodies).
    """

    def __init__(
        self,
        base_url: str,
        key_material: KeyMaterial,
        session_id: str | None = None,
        codec: PayloadCodec | None = None,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.context = ExchangeContext.from_header(session_id)
        self.codec = codec or PayloadCodec()
        self.timeout = timeout

        self.__key = key_material.derive_key(self.context)
        self.__session = session or requests.Session()

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            ACCEPT_CRYPTO_HEADER: "true",
            SESSION_ID_HEADER: self.context.session_id,
        }

    def seal(self, payload: Any) -> dict:
        return self.codec.encode(payload, self.__key).to_wire()

    def unseal(self, body: Any) -> Any:
        if WireEnvelope.looks_like(body):
            return self.codec.decode(body, self.__key)
        return body

    def read(self, status_code: int, body: Any) -> Reply:
        encrypted = WireEnvelope.looks_like(body)
        return Reply(status_code=status_code, body=self.unseal(body), encrypted=encrypted)

    def post(self, path: str, payload: Any) -> Reply:
        response = self.__session.post(
            self.base_url + path,
            json=self.seal(payload),
            headers=self.headers,
            timeout=self.timeout,
        )
        logger.debug("POST %s -> %s", path, response.status_code)
        return self.read(response.status_code, response.json())

    def get(self, path: str) -> Reply:
        response = self.__session.get(
            self.base_url + path,
            headers=self.headers,
            timeout=self.timeout,
        )
        logger.debug("GET %s -> %s", path, response.status_code)
        return self.read(response.status_code, response.json())
