from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, JSON

from .base import Base


class AnalyticsEventORM(Base):
    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event = Column(String, nullable=False, index=True)

    # Nullable: page views before assignment carry no variant
    variant = Column(String, nullable=True, index=True)

    # Client clock, converted from epoch milliseconds
    occurred_at = Column(DateTime, nullable=False, index=True)

    received_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    properties = Column(JSON, default=dict, nullable=False)

    # Whole request body, including any extra top-level fields
    payload = Column(JSON, default=dict, nullable=False)
