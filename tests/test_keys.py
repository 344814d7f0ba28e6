import pytest

from wirecrypt.core import ExchangeContext, KeyDerivationError, KeyMaterial
from wirecrypt.core.keys import KEY_LENGTH

from .conftest import MASTER_KEY, make_config


def test_derivation_is_deterministic():
    first = KeyMaterial(MASTER_KEY).derive_key(ExchangeContext("alice"))
    second = KeyMaterial(MASTER_KEY).derive_key(ExchangeContext("alice"))
    assert first == second
    assert len(first.raw) == KEY_LENGTH


def test_contexts_derive_distinct_keys(key_material):
    assert key_material.derive_key(ExchangeContext("alice")) != key_material.derive_key(
        ExchangeContext("bob")
    )


def test_default_context(key_material):
    assert key_material.derive_key() == key_material.derive_key(ExchangeContext("default"))
    assert ExchangeContext.from_header(None).session_id == "default"
    assert ExchangeContext.from_header("   ").session_id == "default"
    assert ExchangeContext.from_header(" s-1 ").session_id == "s-1"


def test_bytes_and_str_secrets_agree():
    assert KeyMaterial(MASTER_KEY).derive_key() == KeyMaterial(MASTER_KEY.encode()).derive_key()


@pytest.mark.parametrize("secret", [None, "", b"", "too-short", 12345])
def test_unusable_master_key(secret):
    with pytest.raises(KeyDerivationError):
        KeyMaterial(secret)


def test_secret_is_not_exposed_in_repr(key_material, key):
    assert MASTER_KEY not in repr(key_material)
    assert "raw" not in repr(key)


def test_from_settings():
    settings = make_config().crypto
    assert KeyMaterial.from_settings(settings).derive_key() == KeyMaterial(MASTER_KEY).derive_key()

    with pytest.raises(KeyDerivationError):
        KeyMaterial.from_settings(make_config(master_key=None).crypto)
