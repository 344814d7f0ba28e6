from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from wirecrypt.shared import Logger

logger = Logger(__name__).get_logger()

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """
    Liveness check. Excluded from the transport layer so that load balancers
    and clients can read the active policy before negotiating.
    """
    policy = request.app.state.transport.policy

    return JSONResponse(
        content={
            "status": "ok",
            "crypto": {
                "enabled": policy.enabled,
                "force": policy.force,
                "allow_plain": policy.allow_plain,
            },
        }
    )
