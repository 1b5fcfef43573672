"""Shared enums for the dynamic link service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["CacheStatus", "HealthStatus", "Platform", "RequestStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"



class Platform(StrEnum):
    """Requester classification driving the redirect strategy."""

    CRAWLER = "crawler"
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"

    @property
    def is_mobile(self) -> bool:
        return self in (Platform.IOS, Platform.ANDROID)


class RequestStatus(StrEnum):
    """Outcome labels for link creation metrics."""

    SUCCESS = "success"
    COLLISION = "collision"
    ERROR = "error"


class CacheStatus(StrEnum):
    HIT = "hit"
    MISS = "miss"
    ERROR = "error"
