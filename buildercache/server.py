import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from buildercache.cache.registry import get_registry
from buildercache.cache.sweeper import ExpirySweeper
from buildercache.ratelimit import get_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Start the optional cache and rate-limit sweepers for the server lifecycle."""
    from buildercache.config import get_settings

    settings = get_settings()
    registry = get_registry()
    limiter_sweeper: ExpirySweeper | None = None

    if settings.sweeper_enabled:
        interval = settings.cache_cleanup_interval_seconds
        registry.start_sweepers(interval)  # type: ignore[arg-type]
        limiter_sweeper = ExpirySweeper(get_rate_limiter(), interval, label="rate-limiter")  # type: ignore[arg-type]
        limiter_sweeper.start()
        logger.info("Expiry sweep enabled every %.1fs", interval)

    try:
        yield {"registry": registry}
    finally:
        if limiter_sweeper is not None:
            await limiter_sweeper.stop()
        await registry.stop_sweepers()
        logger.info("Cache server stopped")


mcp = FastMCP("buildercache", lifespan=app_lifespan)


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request | None) -> JSONResponse:
    """Liveness probe with a size and hit-rate summary per cache."""
    caches = {
        name: {"size": s.size, "hit_rate": round(s.hit_rate, 4)}
        for name, s in get_registry().all_stats().items()
    }
    return JSONResponse({"status": "ok", "caches": caches})


def setup_logging(log_level: str, data_dir: Path) -> None:
    """Configure logging with file rotation and console output.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        data_dir: Base data directory; logs go to data_dir/logs/server.log.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Exact type check: FileHandler subclasses StreamHandler
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    log_dir = data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
        file_handler = RotatingFileHandler(
            log_dir / "server.log",
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def initialize() -> FastMCP:
    """Set up directories, logging, auth and tools. Returns the MCP server."""
    from buildercache.config import get_settings

    settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(settings.log_level, settings.data_dir)

    if settings.mcp_auth_token:
        from buildercache.auth import BearerTokenVerifier

        mcp.auth = BearerTokenVerifier(
            settings.mcp_auth_token, readonly_token=settings.mcp_readonly_token
        )

    from buildercache.tools.cache_admin import register_cache_tools
    from buildercache.tools.rate_limits import register_rate_limit_tools

    register_cache_tools(mcp)
    register_rate_limit_tools(mcp)

    logger.info("Cache admin server initialized")
    return mcp
