# services/event_service.py
import logging
from typing import Optional

from sqlalchemy.orm import Session
from starlette import status

from landing_ab.repositories.event_repo import EventRepository
from landing_ab.models.schemas.event import (
    AnalyticsEventCreateModel,
    AnalyticsEventResponseModel,
    VariantEventSummaryModel,
)

logger = logging.getLogger(__name__)

# Summary bucket for events that arrived without any variant
UNASSIGNED = "unassigned"


class AnalyticsError(Exception):
    """Collector failure surfaced to the client as {"error": message}."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class EventService:
    def __init__(self, db: Session):
        """Initializes the service with the repositories it needs."""
        self.event_repo = EventRepository(db)

    def record_event(self, event_data: AnalyticsEventCreateModel) -> AnalyticsEventResponseModel:
        """
        Stores an event posted by the client-side tracker.

        Storage failures become a 500; shape validation has already happened
        by the time the model exists.
        """
        try:
            recorded_event = self.event_repo.create_event(event_data=event_data)
        except Exception:
            logger.exception("Analytics error while storing '%s' event", event_data.event)
            raise AnalyticsError(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                message="Internal server error",
            )

        logger.info(
            "Analytics event received: event=%s variant=%s timestamp=%s",
            recorded_event.event,
            recorded_event.variant,
            recorded_event.occurred_at.isoformat(),
        )
        logger.debug("Stored analytics event %s", recorded_event.to_dict())

        return AnalyticsEventResponseModel(success=True)

    def get_variant_summary(self, event: Optional[str] = None) -> VariantEventSummaryModel:
        """Aggregates stored events into counts per variant and event name."""
        variants: dict[str, dict[str, int]] = {}
        total = 0
        for variant, event_name, count in self.event_repo.count_by_variant(event):
            bucket = variants.setdefault(variant or UNASSIGNED, {})
            bucket[event_name] = bucket.get(event_name, 0) + count
            total += count

        return VariantEventSummaryModel(total_events=total, variants=variants)
