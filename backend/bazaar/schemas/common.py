"""
Bazaar Backend — Shared Envelope Schemas
=========================================

Every JSON response uses one of these envelopes:

    success:   {"success": true, "message": "...", "data": ...}
    error:     {"success": false, "message": "...", "error": ..., "errors": [...], "details": {...}}
    cache hit: {"fromCache": true, "data": ...}

Field names are camelCase on the wire (populate_by_name keeps snake_case
usable from Python).
"""

from typing import Any, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ErrorEnvelope(CamelModel):
    """Shape emitted by the error classifier and by guards."""

    success: bool = False
    message: str
    error: Optional[Union[str, dict]] = None
    errors: Optional[Union[List[Any], str]] = None
    details: Optional[Any] = None


class CachedEnvelope(CamelModel):
    from_cache: bool = True
    data: Any = None


class CountOut(CamelModel):
    count: int


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    cache: str = Field(description="Cache connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
