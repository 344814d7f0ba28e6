import base64
from typing import Annotated, Any

import pytest
from fastapi import APIRouter, Body, FastAPI, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from wirecrypt.core import KeyMaterial, PayloadCodec, PolicyState, Transport
from wirecrypt.middleware import TransportEncryption
from wirecrypt.shared import Config

MASTER_KEY = "unit-test-master-key-0123456789abcdef"

ACCEPT_CRYPTO = {"x-accept-crypto": "true"}


def make_config(logs: str = "logs", **crypto) -> Config:
    crypto_settings = {"enabled": True, "master_key": MASTER_KEY, "max_age": None}
    crypto_settings.update(crypto)
    return Config(
        general={"title": "wirecrypt test"},
        paths={"logs": logs},
        logging={"level": "DEBUG"},
        network={"host": "127.0.0.1", "port": 8000, "reload": False},
        crypto=crypto_settings,
    )


def flip_byte(value_b64: str, index: int = 0) -> str:
    raw = bytearray(base64.b64decode(value_b64))
    raw[index] ^= 0x01
    return base64.b64encode(bytes(raw)).decode()


class Recorder:
    """Downstream handlers used to observe what the transport layer passes on."""

    def __init__(self):
        self.payloads: list[Any] = []
        self.exchanges: list[Any] = []
        self.router = APIRouter()

        @self.router.post("/record")
        async def record(request: Request, payload: Annotated[Any, Body()] = None):
            self.payloads.append(payload)
            self.exchanges.append(request.state.exchange)
            return {"ok": True, "payload": payload}

        @self.router.get("/record")
        async def record_get(request: Request):
            self.exchanges.append(request.state.exchange)
            return {"ok": True}

        @self.router.head("/record")
        async def record_head(request: Request):
            self.exchanges.append(request.state.exchange)
            return {"ok": True}

        @self.router.delete("/gone")
        async def gone(request: Request):
            self.exchanges.append(request.state.exchange)
            return Response(status_code=204)

        @self.router.get("/missing")
        async def missing():
            raise HTTPException(status_code=404, detail="Nothing here")

        @self.router.get("/boom")
        async def boom():
            raise RuntimeError("handler exploded")

        @self.router.get("/text")
        async def text():
            return PlainTextResponse("not json")

        @self.router.get("/health")
        async def health():
            return {"status": "ok"}

    @property
    def called(self) -> bool:
        return bool(self.payloads or self.exchanges)


def build_app(
    policy: PolicyState,
    recorder: Recorder,
    codec: PayloadCodec | None = None,
    offload_threshold: int = 64 * 1024,
) -> FastAPI:
    key_material = KeyMaterial(MASTER_KEY) if policy.enabled else None
    transport = Transport(policy, key_material, codec or PayloadCodec())

    app = FastAPI()
    app.state.transport = transport
    app.include_router(recorder.router)
    app.add_middleware(
        TransportEncryption,
        transport=transport,
        exclude_paths=["/health"],
        offload_threshold=offload_threshold,
    )
    return app


@pytest.fixture
def key_material():
    return KeyMaterial(MASTER_KEY)


@pytest.fixture
def key(key_material):
    return key_material.derive_key()


@pytest.fixture
def codec():
    return PayloadCodec()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def client_for(recorder):
    def factory(**flags) -> TestClient:
        return TestClient(build_app(PolicyState(**flags), recorder))

    return factory
