"""
SEO Search Box API

FastAPI application that:
1. Gates dashboard pages behind sign-in (route gate middleware)
2. Serves read-only JSON views over searches, rank history and wiki analysis
3. Proxies Search Console connection status from the status backend

Every error body has the shape {"error": "<message>"}.
"""

import logging
import sys
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.auth.config import get_auth_config
from src.auth.middleware import RouteGateMiddleware
from src.auth.resolver import SessionResolver, build_session_resolver
from src.database.session import check_db_connection, is_database_configured
from src.integrations.status_client import StatusClient, create_status_client
from src.utils.config import get_settings

from api import export, gsc, rank_track, searches, wiki_analysis

load_dotenv()

VERSION = "0.1.0"

# Configure logging to stdout
logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


# ============================================================================
# ERROR MAPPING
# ============================================================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Bad query parameters are a 400, same body shape as everything else."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# ============================================================================
# APP FACTORY
# ============================================================================

def create_app(
    session_resolver: Optional[SessionResolver] = None,
    status_client: Optional[StatusClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        session_resolver: Resolver for the route gate and handlers
            (default: selected by SESSION_STRATEGY)
        status_client: Client for the status backend (default: MCP_SERVER_URL)
    """
    auth_config = get_auth_config()
    session_resolver = session_resolver or build_session_resolver(auth_config)
    status_client = status_client or create_status_client()

    app = FastAPI(
        title="SEO Search Box API",
        description="Search history, rank tracking and wiki analysis for the SEO Search Box dashboard",
        version=VERSION,
    )
    app.state.session_resolver = session_resolver
    app.state.status_client = status_client

    app.add_middleware(
        RouteGateMiddleware,
        resolver=session_resolver,
        protected_prefixes=auth_config.protected_prefix_list,
        signin_path=auth_config.signin_path,
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(rank_track.router)
    app.include_router(wiki_analysis.router)
    app.include_router(gsc.router)
    app.include_router(searches.router)
    app.include_router(export.router)

    @app.on_event("startup")
    async def startup_event():
        if not is_database_configured():
            logger.warning("DATABASE_URL not set - database endpoints will return empty results")
        logger.info(f"Session strategy: {auth_config.session_strategy}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.status_client.close()

    @app.get("/health")
    def health():
        """Liveness plus database status."""
        configured = is_database_configured()
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "version": VERSION,
            "database": {
                "configured": configured,
                "connected": check_db_connection() if configured else False,
            },
        }

    return app


app = create_app()


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
