"""Health check tool and HTTP route."""

from typing import Optional

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from src.models.health import HealthSnapshot, HealthStatus
from src.services.health_cache import HealthCache

NOT_READY_OUTPUT = "Health snapshot not ready"


def snapshot_payload(snapshot: Optional[HealthSnapshot]) -> tuple[int, dict]:
    """Map a cached snapshot to an HTTP status code and body.

    ``pass`` is 200; ``warn``, ``fail`` and a missing snapshot are 503.
    """
    if snapshot is None:
        return 503, {"status": HealthStatus.FAIL.value, "output": NOT_READY_OUTPUT}
    status_code = 200 if snapshot.status == HealthStatus.PASS else 503
    return status_code, snapshot.to_dict()


def register_health_tool(
    mcp: FastMCP,
    cache: HealthCache
) -> None:
    """Register the health tool and the /healthcheck route.

    Args:
        mcp: The FastMCP server instance.
        cache: The health cache to read from.
    """

    @mcp.tool()
    async def health_check() -> dict:
        """
        Get the cached PostgreSQL readiness of the service.

        Returns:
            The latest health snapshot, or a "not ready" payload.
        """
        _, body = snapshot_payload(cache.get())
        return body

    @mcp.custom_route("/healthcheck", methods=["GET"])
    async def healthcheck_route(request: Request) -> JSONResponse:
        status_code, body = snapshot_payload(cache.get())
        return JSONResponse(body, status_code=status_code)
