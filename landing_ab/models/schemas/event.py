from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class EventName(str, Enum):
    PAGE_VIEW = "page_view"
    EMAIL_SUBMIT = "email_submit"
    CTA_CLICK = "cta_click"
    FEATURE_VIEW = "feature_view"
    VARIANT_ASSIGNED = "variant_assigned"


#  event posting flow


class AnalyticsEventCreateModel(BaseModel):
    """Schema for an event posted to the collector (API Input)."""

    # Clients may attach arbitrary extra top-level fields.
    model_config = ConfigDict(extra="allow")

    event: str = Field(..., min_length=1, description="e.g., 'page_view', 'cta_click'")
    # Upper bound is the last millisecond of year 9999
    timestamp: float = Field(
        ..., gt=0, le=253_402_300_799_999, description="Epoch milliseconds at the client."
    )
    variant: Optional[str] = None
    properties: Optional[Dict[str, Any]] = Field(
        default=None, description="Flexible JSON object."
    )

    def resolved_variant(self) -> Optional[str]:
        """Top-level variant, falling back to properties['variant']."""
        if self.variant:
            return self.variant
        if self.properties and isinstance(self.properties.get("variant"), str):
            return self.properties["variant"]
        return None


class AnalyticsEventResponseModel(BaseModel):
    success: bool = True


class AnalyticsErrorModel(BaseModel):
    error: str


class VariantEventSummaryModel(BaseModel):
    """Event counts per variant, keyed by event name."""

    total_events: int
    variants: Dict[str, Dict[str, int]] = Field(default_factory=dict)
