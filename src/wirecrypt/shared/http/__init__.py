from .responses import (
    ENCODE_FAILURE,
    ENCRYPTION_REQUIRED,
    INVALID_PAYLOAD,
    crypto_error_response,
)

__all__ = [
    "ENCODE_FAILURE",
    "ENCRYPTION_REQUIRED",
    "INVALID_PAYLOAD",
    "crypto_error_response",
]
