"""
JSONWire — FastAPI Application Factory
========================================

What:  Creates a FastAPI application serving jsonwire handlers, and the demo
       application `app`.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
       Every API is mounted as a raw ASGI route (jsonwire.handler.Handler),
       so the envelope protocol, not FastAPI, shapes each response.
Who:   Applications call create_app(); uvicorn serves the demo with
       `uvicorn jsonwire.main:app`.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  jsonwire Chain (per API, last attached first):     │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐ │
    │  │  Request ID  │→│ Logging  │→│  Session        │ │
    │  └──────────────┘ └──────────┘ └─────────────────┘ │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────────┐ ┌─────────────────┐  │
    │  │ POST /api/greeting/...   │ │ GET /health     │  │
    │  └──────────────────────────┘ └─────────────────┘  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   configure logging
    Shutdown:  dispose the database engine, close the shared HTTP client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Iterable, Optional

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from jsonwire import __version__
from jsonwire.client import close_default_client
from jsonwire.config import settings
from jsonwire.database import dispose_engine
from jsonwire.middleware import Chain, basic_format, log_err_in, request_id, use
from jsonwire.register import API, convert_camel_to_slash, find_apis, register
from jsonwire.routes.greeting import SESSION_KEY, GreetingAPI
from jsonwire.routes.health import health_handler
from jsonwire.sessions import InCookieSimple, MemoryStore, SessionManager, session

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    What:    Sets up logging with consistent format across all modules.
    When:    Called once during app startup (before ANY other initialization).
    """
    log_format = (
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,  # Override any existing logging config
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: startup and shutdown procedures.

    Shutdown releases the pooled database connections and the shared outbound
    HTTP client; both are created lazily, so this is a no-op when unused.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("JSONWire %s starting up (log level %s)", __version__, settings.log_level)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("JSONWire shutting down...")
    await dispose_engine()
    await close_default_client()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    apis: Iterable[API] = (),
    chain: Optional[Chain] = None,
    engine: Optional[AsyncEngine] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        apis:   APIs to mount.
        chain:  Middlewares wrapped around every API in `apis`; the health
                endpoint is never wrapped.
        engine: Database probed by the health endpoint.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="JSONWire",
        description="JSON API handlers speaking the {data} / {errors} envelope.",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Register Routes ───────────────────────────────────────────────────
    register(app, [API("/health", health_handler(engine))])

    if chain is not None:
        chain.register(app, apis)
    else:
        register(app, apis)

    return app


# ── Demo Application ─────────────────────────────────────────────────────
# Why module-level: uvicorn expects `jsonwire.main:app` to be importable
demo_chain = (
    use(session(SessionManager(InCookieSimple(settings.session_cookie_name), MemoryStore()), SESSION_KEY))
    .use(log_err_in(basic_format(logging.getLogger("jsonwire.access"))))
    .use(request_id)
)

app = create_app(
    find_apis("/api/greeting", GreetingAPI(), convert_camel_to_slash),
    chain=demo_chain,
)
