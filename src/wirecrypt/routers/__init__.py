from .echo import router as echo_router
from .health import router as health_router

_routers = [health_router, echo_router]

__all__ = ["get_routers"]


def get_routers():
    return _routers
