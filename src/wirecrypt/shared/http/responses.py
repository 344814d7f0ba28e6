from fastapi.responses import JSONResponse

from wirecrypt.core.errors import (
    DecodeError,
    EncodeError,
    EncryptionRequiredError,
    ModeMismatchError,
    TransportCryptoError,
)
from wirecrypt.models import ErrorBody

__all__ = [
    "ENCODE_FAILURE",
    "ENCRYPTION_REQUIRED",
    "INVALID_PAYLOAD",
    "crypto_error_response",
]

ENCRYPTION_REQUIRED = ErrorBody(error="Encryption required", code="CRYPTO_REQUIRED")
INVALID_PAYLOAD = ErrorBody(error="Invalid encrypted payload", code="CRYPTO_INVALID")
ENCODE_FAILURE = ErrorBody(error="Encryption failure", code="CRYPTO_ENCODE_ERROR")


def crypto_error_response(error: TransportCryptoError) -> JSONResponse:
    """Map a transport failure to its fixed client-facing response.

    Every DecodeError reason and every non-rejection mismatch collapse to the
    same body so clients cannot tell them apart.
    """
    if isinstance(error, EncryptionRequiredError):
        body, status_code = ENCRYPTION_REQUIRED, 400
    elif isinstance(error, (DecodeError, ModeMismatchError)):
        body, status_code = INVALID_PAYLOAD, 400
    elif isinstance(error, EncodeError):
        body, status_code = ENCODE_FAILURE, 500
    else:
        raise TypeError(f"No client response defined for {type(error).__name__}")

    return JSONResponse(status_code=status_code, content=body.to_wire())
