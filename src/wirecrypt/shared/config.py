import os
from collections.abc import Mapping
from logging import CRITICAL, DEBUG, ERROR, INFO, WARNING
from os import PathLike
from pathlib import Path
from tomllib import load

from pydantic import BaseModel, SecretStr, StrictBool, field_validator

DEFAULT_CONFIG_PATH = Path("config.toml")

# Environment variable -> [crypto] field
ENV_FLAG_OVERRIDES = {
    "CRYPTO_ENABLED": "enabled",
    "CRYPTO_FORCE": "force",
    "CRYPTO_ALLOW_PLAINTEXT": "allow_plain",
    "CRYPTO_DEBUG": "debug",
}
ENV_MASTER_KEY = "CRYPTO_MASTER_KEY"


class General(BaseModel):
    title: str


class Logging(BaseModel):
    level: int

    @field_validator("level", mode="before")
    @classmethod
    def convert_log_level(cls, value):
        if isinstance(value, int):
            return value

        log_levels = {
            "DEBUG": DEBUG,
            "INFO": INFO,
            "WARNING": WARNING,
            "ERROR": ERROR,
            "CRITICAL": CRITICAL,
        }
        return log_levels.get(value.upper(), INFO)


class Paths(BaseModel):
    logs: str


class Network(BaseModel):
    host: str
    port: int
    reload: bool


class Crypto(BaseModel):
    enabled: StrictBool  # no default: a missing flag must fail startup
    force: StrictBool = False
    allow_plain: StrictBool = False
    debug: StrictBool = False

    master_key: SecretStr | None = None

    max_age: float | None = 300  # seconds
    exclude_paths: list[str] = ["/health", "/docs", "/redoc", "/openapi.json"]
    offload_threshold: int = 65536  # bytes


class Config(BaseModel):
    general: General
    paths: Paths
    logging: Logging
    network: Network
    crypto: Crypto


def parse_env_flag(name: str, value: str) -> bool:
    normalised = value.strip().lower()
    if normalised == "true":
        return True
    if normalised == "false":
        return False
    raise ValueError(f"{name} must be 'true' or 'false', got {value!r}")


def apply_env_overrides(config_data: dict, environ: Mapping[str, str]) -> dict:
    """Overlay CRYPTO_* environment variables onto the [crypto] table."""
    crypto = dict(config_data.get("crypto", {}))

    for env_name, field in ENV_FLAG_OVERRIDES.items():
        if env_name in environ:
            crypto[field] = parse_env_flag(env_name, environ[env_name])

    if environ.get(ENV_MASTER_KEY):
        crypto["master_key"] = environ[ENV_MASTER_KEY]

    config_data["crypto"] = crypto
    return config_data


def load_config(
    shared_config_file: PathLike = DEFAULT_CONFIG_PATH,
    specific_config_file: PathLike | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load and merge configurations from TOML files and the environment."""
    # Load shared config
    with Path(shared_config_file).open("rb") as f:
        config_data = load(f)

    # Load and merge specific config if provided
    if specific_config_file:
        with Path(specific_config_file).open("rb") as f:
            specific_data = load(f)
            config_data.update(specific_data)

    if environ is None:
        environ = os.environ

    return Config(**apply_env_overrides(config_data, environ))
