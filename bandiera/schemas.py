from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, StrictBool, confloat, field_validator


class CacheStrategy(str, Enum):
    SINGLE_FEATURE = "single_feature"
    GROUP = "group"
    ALL = "all"


class ClientConfig(BaseModel):
    base_uri: str = Field(
        "http://localhost", validate_default=True, description="Bandiera server, /api is appended if missing"
    )
    timeout: confloat(gt=0) = 0.2
    client_name: Optional[str] = None
    cache_enabled: bool = False
    cache_strategy: CacheStrategy = CacheStrategy.SINGLE_FEATURE
    cache_ttl: confloat(gt=0) = 5.0
    redis_url: Optional[str] = None

    @field_validator("base_uri")
    @classmethod
    def normalize_base_uri(cls, value: str) -> str:
        value = value.rstrip("/")
        if not value.endswith("/api"):
            value = f"{value}/api"
        return value


# Envelopes returned by the v2 API; strict so "true" or 1 never pass as a flag.

class FeatureEnvelope(BaseModel):
    response: StrictBool
    warning: Optional[str] = None


class GroupEnvelope(BaseModel):
    response: Dict[str, StrictBool]
    warning: Optional[str] = None


class AllEnvelope(BaseModel):
    response: Dict[str, Dict[str, StrictBool]]
    warning: Optional[str] = None
