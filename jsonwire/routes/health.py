"""
JSONWire — Health Check Handler
=================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   A jsonwire handler returning a HealthResponse. When a database engine
       is configured it runs `SELECT 1`; an unreachable database answers 503
       with the same body, so probes and humans both get the details.
Who:   Mounted at /health by jsonwire.main.create_app().

Status levels:
    - healthy:   All configured dependencies operational (HTTP 200)
    - unhealthy: The database is unreachable (HTTP 503)
"""

import logging
import time
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from jsonwire import __version__
from jsonwire.handler import HandlerFunc
from jsonwire.request import Context, Request
from jsonwire.schemas.service import HealthResponse

logger = logging.getLogger(__name__)

# Track when the service started for uptime reporting
_start_time = time.time()


def health_handler(engine: Optional[AsyncEngine] = None) -> HandlerFunc:
    """Create the health handler, probing `engine` when given."""

    async def health_check(ctx: Context, req: Request) -> HealthResponse:
        db_status = "not_configured"
        overall = "healthy"

        if engine is not None:
            db_status = "connected"
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            except (SQLAlchemyError, OSError) as e:
                db_status = "disconnected"
                overall = "unhealthy"
                logger.warning("Health check: database unreachable: %s", str(e))

        if overall == "unhealthy":
            req.writer.write_header(503)

        return HealthResponse(
            status=overall,
            version=__version__,
            database=db_status,
            uptime_seconds=round(time.time() - _start_time, 2),
        )

    return health_check
