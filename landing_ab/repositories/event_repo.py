from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from landing_ab.models.orm.event import AnalyticsEventORM
from landing_ab.models.schemas.event import AnalyticsEventCreateModel


class EventRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def create_event(self, event_data: AnalyticsEventCreateModel) -> AnalyticsEventORM:
        """
        Creates a new analytics event record in the database.

        Args:
            event_data: The validated event as posted by the client.

        Returns:
            The created AnalyticsEventORM object.

        Raises:
            RuntimeError: if the database rejects the write.
        """
        occurred_at = datetime.fromtimestamp(
            event_data.timestamp / 1000.0, tz=timezone.utc
        ).replace(tzinfo=None)

        db_event = AnalyticsEventORM(
            event=event_data.event,
            variant=event_data.resolved_variant(),
            occurred_at=occurred_at,
            received_at=datetime.utcnow(),
            properties=event_data.properties or {},
            payload=event_data.model_dump(mode="json"),
        )
        try:
            self.db.add(db_event)
            self.db.commit()
            self.db.refresh(db_event)

        except SQLAlchemyError as e:
            self.db.rollback()
            raise RuntimeError(f"A database error occurred while storing the event: {e}")

        return db_event

    def count_by_variant(self, event: Optional[str] = None) -> list[tuple[Optional[str], str, int]]:
        """Returns (variant, event, count) rows, optionally for a single event name."""
        stmt = select(
            AnalyticsEventORM.variant,
            AnalyticsEventORM.event,
            func.count(AnalyticsEventORM.id),
        ).group_by(AnalyticsEventORM.variant, AnalyticsEventORM.event)

        if event:
            stmt = stmt.where(AnalyticsEventORM.event == event)

        return [tuple(row) for row in self.db.execute(stmt).all()]
