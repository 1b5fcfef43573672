"""Pydantic schemas for request/response validation in the dynamic link service.

This module defines Pydantic models for API input validation, output serialization,
and the cached copy of a link configuration.

Schema Hierarchy
=================
::
    LinkPayload (Input, create and update)
    ├─ webFallbackUrl: str (required, absolute http(s) URL)
    ├─ description, iosBundleId, iosAppStoreId, iosDeepLink: str | None
    ├─ androidPackageName, androidDeepLink: str | None
    └─ socialTitle (<=70), socialDescription (<=200), socialImageUrl: str | None

    LinkConfig (Cache payload / resolver result)
    ├─ id, shortCode
    ├─ every LinkPayload field
    └─ createdAt, updatedAt

    LinkResponse (Output)
    └─ LinkConfig + shortUrl (computed)

How to Use
===========
**Step 1: Input validation**::
    @router.post("/api/links")
    async def create_link(payload: LinkPayload):
        ...

**Step 2: Cache round trip**::
    raw = LinkConfig.model_validate(link).model_dump_json(by_alias=True)
    config = LinkConfig.model_validate_json(raw)

Key Behaviours
===============
- JSON field names are camelCase; snake_case names are accepted too.
- Strings are trimmed and empty strings are treated as absent.
- A missing or blank webFallbackUrl is a validation error.
"""

import datetime
from typing import Any

import validators
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from dynalink.enums import HealthStatus

__all__ = [
    "DeferredLinkResponse",
    "HealthResponse",
    "LinkConfig",
    "LinkPayload",
    "LinkResponse",
]

_OPTIONAL_TEXT_FIELDS = (
    "description",
    "ios_bundle_id",
    "ios_app_store_id",
    "ios_deep_link",
    "android_package_name",
    "android_deep_link",
    "social_title",
    "social_description",
    "social_image_url",
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkPayload(CamelModel):
    web_fallback_url: str
    description: str | None = None
    ios_bundle_id: str | None = None
    ios_app_store_id: str | None = None
    ios_deep_link: str | None = None
    android_package_name: str | None = None
    android_deep_link: str | None = None
    social_title: str | None = Field(None, max_length=70)
    social_description: str | None = Field(None, max_length=200)
    social_image_url: str | None = None

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("web_fallback_url")
    @classmethod
    def validate_web_fallback_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Web fallback URL is required.")
        if not v.startswith(("https://", "http://")) or not validators.url(v, simple_host=True):
            raise ValueError("Web fallback URL must be an absolute http(s) URL")
        return v

    @field_validator("social_image_url")
    @classmethod
    def validate_social_image_url(cls, v: str | None) -> str | None:
        if v is not None and not validators.url(v, simple_host=True):
            raise ValueError("Social image URL must be a valid URL")
        return v


class LinkConfig(CamelModel):
    """Serialized link configuration, shared by the store and the resolution cache."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    short_code: str
    web_fallback_url: str
    description: str | None = None
    ios_bundle_id: str | None = None
    ios_app_store_id: str | None = None
    ios_deep_link: str | None = None
    android_package_name: str | None = None
    android_deep_link: str | None = None
    social_title: str | None = None
    social_description: str | None = None
    social_image_url: str | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class LinkResponse(LinkConfig):
    short_url: str


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class DeferredLinkResponse(CamelModel):
    message: str
    deep_link_data: dict[str, Any] | None = None
