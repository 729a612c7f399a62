"""HydraIQ Server - Entry point.

Runs the MCP server and the JSON day-summary API over HTTP.
Uses Starlette with the MCP HTTP app mounted at root.
"""

import logging

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .core.dates import is_valid_day
from .shell.mcp_server import current_user_id, day_view, get_config, get_service, mcp, uses_imperial


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


# ==================== Route Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "healthy", "service": "hydraiq"})


async def day_summary(request: Request) -> JSONResponse:
    """Snapshot for ?date=YYYY-MM-DD (defaults to today)."""
    user_id = current_user_id.get()
    if user_id is None:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    service = get_service(user_id)
    day = request.query_params.get("date") or service.today()
    if not is_valid_day(day):
        return JSONResponse({"error": "date must be YYYY-MM-DD"}, status_code=400)

    try:
        snapshot = service.ensure_snapshot(day)
    except Exception as e:
        logger.error("Day summary failed for %s: %s", day, str(e))
        return JSONResponse({"error": "Unexpected error"}, status_code=500)

    return JSONResponse(day_view(snapshot, uses_imperial(service)))


async def trend(request: Request) -> JSONResponse:
    """Score trend over ?days=N (1-90, default 30)."""
    user_id = current_user_id.get()
    if user_id is None:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        days = int(request.query_params.get("days", 30))
    except ValueError:
        return JSONResponse({"error": "days must be an integer"}, status_code=400)

    report = get_service(user_id).trend(days)
    return JSONResponse(report.model_dump(mode="json"))


# ==================== User Context Middleware ====================


class UserContextMiddleware(BaseHTTPMiddleware):
    """Identify the acting user.

    Authentication happens upstream; the gateway forwards the user id in the
    X-User-Id header. Single-user deployments can set HYDRAIQ_DEFAULT_USER.
    """

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(("/mcp", "/api")):
            return await call_next(request)

        user_id = request.headers.get(USER_HEADER, "").strip() or get_config().default_user
        token = current_user_id.set(user_id or None)
        if user_id:
            logger.debug("Acting as user: %s", user_id[:8])
        try:
            return await call_next(request)
        finally:
            current_user_id.reset(token)


# ==================== Create ASGI App ====================


def create_app() -> Starlette:
    """Create the Starlette application with MCP at root.

    The MCP streamable_http_app() handles /mcp/ internally when mounted at root.
    We use its lifespan context to ensure proper initialization.
    """
    mcp_app = mcp.streamable_http_app()

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/api/day-summary", day_summary, methods=["GET"]),
        Route("/api/trend", trend, methods=["GET"]),
        Mount("/", app=mcp_app),
    ]

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["http://localhost:3000"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(UserContextMiddleware),
        ],
        lifespan=mcp_app.router.lifespan_context,
    )

    return app


app = create_app()


def main() -> None:
    """Run the server."""
    config = get_config()

    logger.info("Starting HydraIQ server on %s:%d", config.host, config.port)

    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
