from typing import Annotated, Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from wirecrypt.shared import Logger

logger = Logger(__name__).get_logger()

router = APIRouter()


@router.post("/echo")
async def echo(
    request: Request,
    payload: Annotated[Any, Body()] = None,
):
    """
    Returns the payload exactly as the handler received it, along with the
    mode negotiated for this exchange. Used to check a client's setup end to
    end.
    """
    exchange = getattr(request.state, "exchange", None)
    mode = str(exchange.mode) if exchange is not None else None
    logger.debug("Echoing payload (mode: %s)", mode)

    return JSONResponse(content={"received": payload, "mode": mode})
