from collections.abc import Iterable

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wirecrypt.core import KeyMaterial, PayloadCodec, PolicyState, Transport
from wirecrypt.middleware import TransportEncryption
from wirecrypt.routers import get_routers
from wirecrypt.shared import Config, Logger, attach_file_handler, load_config

logger = Logger(__name__).get_logger()


def build_transport(config: Config) -> Transport:
    """Build the process-wide Transport. Raises KeyDerivationError when
    encryption is enabled without a usable master key."""
    crypto = config.crypto
    policy = PolicyState.from_settings(crypto)

    key_material = KeyMaterial.from_settings(crypto) if policy.enabled else None

    return Transport(
        policy=policy,
        key_material=key_material,
        codec=PayloadCodec(max_age=crypto.max_age),
    )


def create_app(
    config: Config | None = None,
    routers: Iterable[APIRouter] | None = None,
) -> FastAPI:
    if config is None:
        config = load_config()

    attach_file_handler(config.paths.logs)
    transport = build_transport(config)

    logger.info(
        "Transport encryption: enabled=%s force=%s allow_plain=%s debug=%s",
        transport.policy.enabled,
        transport.policy.force,
        transport.policy.allow_plain,
        transport.policy.debug,
    )

    app = FastAPI(title=config.general.title)
    app.state.transport = transport

    for router in get_routers():
        app.include_router(router)
    for router in routers or ():
        app.include_router(router)

    app.add_middleware(
        TransportEncryption,
        transport=transport,
        exclude_paths=config.crypto.exclude_paths,
        offload_threshold=config.crypto.offload_threshold,
    )

    # Added last so preflight responses never reach the transport layer
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Encrypted", "X-Crypto-Version", "X-Crypto-Policy", "X-Session-Id"],
    )

    return app
