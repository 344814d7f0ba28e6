from collections.abc import AsyncIterator, Callable, Sequence

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from wirecrypt.core import Exchange, ExchangeState, ResolvedMode, Transport
from wirecrypt.core.errors import HandlerError, TransportCryptoError
from wirecrypt.shared import Logger
from wirecrypt.shared.http import crypto_error_response

logger = Logger(__name__).get_logger()

DEFAULT_OFFLOAD_THRESHOLD = 64 * 1024


async def _replay(body: bytes) -> AsyncIterator[bytes]:
    if body:
        yield body


def _is_bodyless(method: str, status_code: int) -> bool:
    return method == "HEAD" or status_code < 200 or status_code in (204, 304)


class TransportEncryption(BaseHTTPMiddleware):
    """Negotiates, enforces and applies payload encryption per exchange.

    Inbound bodies are opened before the downstream handler sees them and
    the handler's response is sealed under the same resolved mode.
    Excluded paths and CORS preflights skip the layer entirely.
    """

    def __init__(
        self,
        app,
        dispatch=None,
        transport: Transport | None = None,
        exclude_paths: Sequence[str] = (),
        offload_threshold: int = DEFAULT_OFFLOAD_THRESHOLD,
    ):
        super().__init__(app, dispatch)

        if transport is None:
            raise ValueError("TransportEncryption requires a Transport")

        # Params
        self.__transport = transport
        self.__exclude_paths = tuple(exclude_paths)
        self.__offload_threshold = offload_threshold

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        # Skip for OPTIONS requests (CORS preflight) and excluded routes
        if request.method == "OPTIONS" or self.__is_excluded(request.url.path):
            return await call_next(request)

        transport = self.__transport
        exchange = transport.begin(request.headers)
        request.state.exchange = exchange

        raw_body = await request.body()
        try:
            body = await self.__run(transport.open_request, exchange, raw_body)
        except TransportCryptoError as e:
            return crypto_error_response(e)

        # Private Starlette attribute (_CachedRequest, starlette>=0.28): call_next
        # replays request._body to the downstream app
        request._body = body

        try:
            response = await call_next(request)
        except Exception as e:
            handler_error = HandlerError(e)
            exchange.fail(handler_error)
            logger.error("Downstream handler failed on %s: %s", request.url.path, e)
            raise handler_error from e

        exchange.advance(ExchangeState.HANDLER_INVOKED)
        bodyless = _is_bodyless(request.method, response.status_code)
        return await self.__seal(exchange, response, bodyless)

    async def __seal(self, exchange: Exchange, response: Response, bodyless: bool) -> Response:
        transport = self.__transport

        chunks = [chunk async for chunk in response.body_iterator]
        raw = b"".join(chunks)

        if bodyless:
            transport.seal_response(exchange, raw, bodyless=True)
            transport.finish(exchange)
            response.body_iterator = _replay(b"")
            return response

        try:
            sealed = await self.__run(transport.seal_response, exchange, raw)
        except TransportCryptoError as e:
            return crypto_error_response(e)

        response.body_iterator = _replay(sealed)
        response.headers["content-length"] = str(len(sealed))
        for name, value in transport.response_headers(exchange).items():
            response.headers[name] = value
        if exchange.mode is ResolvedMode.ENCRYPTED:
            response.headers["content-type"] = "application/json"

        transport.finish(exchange)
        return response

    async def __run(self, func: Callable[[Exchange, bytes], bytes], exchange, body):
        # CPU-bound AEAD work on large bodies goes to the worker pool
        if len(body) >= self.__offload_threshold:
            return await run_in_threadpool(func, exchange, body)
        return func(exchange, body)

    def __is_excluded(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.__exclude_paths)
