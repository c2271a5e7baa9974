"""
JSONWire — Service Schemas
============================

What:  Pydantic models of the built-in service endpoints (health check and
       the demo greeting API).
Who:   Returned by handlers in jsonwire.routes; pydantic models are
       serialized by the envelope like plain dicts.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer health checks.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Library version")
    database: str = Field(description="Database connectivity: connected, disconnected, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")


class HelloArgs(BaseModel):
    """Parameters of the greeting API."""
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class HelloReply(BaseModel):
    message: str
    visits: Optional[int] = Field(default=None, description="Calls made in this session")
