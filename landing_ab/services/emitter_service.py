"""Fire-and-forget analytics emission.

Synopsis:
Packages an event name, the visitor's variant and free-form properties into
the collector's JSON contract and posts it from a background thread. The
caller never waits for, or hears about, the outcome.

Glossary:
- Debug sink: a log line mirroring each event, enabled by ANALYTICS_DEBUG.
- Collector: the POST /api/analytics endpoint receiving the payloads.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Mapping

import requests

from landing_ab.models.schemas.event import EventName

logger = logging.getLogger(__name__)


class EventEmitter:
    """Best-effort relay to the analytics collector. Never raises, never retries."""

    def __init__(
        self,
        endpoint: str | None = None,
        *,
        session: Any = None,
        timeout: float = 2.0,
        debug: bool = False,
        max_workers: int = 4,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.debug = debug
        self._owns_session = session is None and endpoint is not None
        self.session = session if session is not None else (requests.Session() if endpoint else None)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="analytics-emitter"
        )

    @staticmethod
    def build_event(event_name: str, properties: Mapping[str, Any] | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event": event_name,
            "timestamp": int(time.time() * 1000),
        }
        if properties is not None:
            props = dict(properties)
            payload["properties"] = props
            if props.get("variant") is not None:
                payload["variant"] = str(props["variant"])
        return payload

    def track(self, event_name: str | EventName, properties: Mapping[str, Any] | None = None) -> None:
        """Queue one event for delivery and return immediately."""
        try:
            name = EventName(event_name).value
        except ValueError:
            logger.warning("Dropping unknown analytics event %r", event_name)
            return

        try:
            payload = self.build_event(name, properties)
        except Exception:
            logger.exception("Could not build analytics event '%s'", name)
            return

        if self.debug:
            logger.info("Analytics event: %s", payload)

        if not self.endpoint:
            return

        try:
            self._executor.submit(self._send, payload)
        except RuntimeError as e:
            # Raised once the pool has been shut down.
            logger.warning("Analytics emitter closed, dropping '%s': %s", name, e)

    def _send(self, payload: dict[str, Any]) -> None:
        try:
            response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Failed to track event '%s': %s", payload.get("event"), e)
        except Exception:
            logger.exception("Unexpected error tracking event '%s'", payload.get("event"))

    def close(self) -> None:
        """Waits for in-flight sends, then releases the pool and HTTP session."""
        self._executor.shutdown(wait=True)
        if self._owns_session and self.session is not None:
            self.session.close()

    def track_page_view(self, variant: str | None = None) -> None:
        self.track(EventName.PAGE_VIEW, {"variant": variant})

    def track_conversion(self, variant: str, email: str | None = None) -> None:
        # Only the domain leaves the page; the address itself is never sent.
        email_domain = email.split("@", 1)[1] if email and "@" in email else None
        self.track(EventName.EMAIL_SUBMIT, {"variant": variant, "email_domain": email_domain})

    def track_cta_click(self, variant: str, cta_location: str) -> None:
        self.track(EventName.CTA_CLICK, {"variant": variant, "location": cta_location})

    def track_feature_view(self, variant: str, feature: str) -> None:
        self.track(EventName.FEATURE_VIEW, {"variant": variant, "feature": feature})

    def track_variant_assignment(self, variant: str) -> None:
        self.track(EventName.VARIANT_ASSIGNED, {"variant": variant})
