"""Domain classification models."""

from enum import Enum

from pydantic import BaseModel, Field


class DomainCategory(str, Enum):
    CORE = "core"  # main cleaning machines
    SUPPORT = "support"  # mops, buckets, pads, discs...
    PERIPHERAL = "peripheral"  # electronics, standalone motors, ladders
    UNKNOWN = "unknown"


class DomainClassification(BaseModel):
    category: DomainCategory
    confidence: float = Field(ge=0.0, le=1.0)

    model_config = {"frozen": True}
