import asyncio
from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from config import Settings
from enrichment.forwarder import DeliveryError, DownstreamForwarder
from enrichment.stats import compute_stats, find_no_shows
from models import (
    EnrichedBody,
    EnrichedEventPayload,
    Record,
    StartedBody,
    StartedEventPayload,
    StartedWebinarInfo,
    WebinarInfo,
    WebinarObject,
)
from utils.logging_utils import get_logger
from zoom.auth import AuthError
from zoom.pagination import UpstreamFetchError
from zoom.reports import ZoomReportClient

logger = get_logger(__name__)


class MalformedPayloadError(Exception):
    pass


def parse_webinar(event_payload: Dict[str, Any]) -> WebinarObject:
    obj = event_payload.get("object") if isinstance(event_payload, dict) else None
    if not isinstance(obj, dict):
        raise MalformedPayloadError("payload.object is missing")
    try:
        return WebinarObject(**obj)
    except ValidationError as exc:
        raise MalformedPayloadError(f"payload.object is invalid: {exc.errors()}") from exc


def build_enriched_payload(
    webinar: WebinarObject, participants: List[Record], registrants: List[Record]
) -> EnrichedEventPayload:
    no_shows = find_no_shows(registrants, participants)
    return EnrichedEventPayload(
        payload=EnrichedBody(
            webinar_info=WebinarInfo(
                id=webinar.id,
                topic=webinar.topic,
                start_time=webinar.start_time,
                end_time=webinar.end_time,
                duration=webinar.duration,
            ),
            statistics=compute_stats(registrants, participants, no_shows),
            participants=participants,
            registrants=registrants,
            no_shows=no_shows,
        )
    )


class EnrichmentPipeline:
    """
    Post-acknowledgement work for webinar lifecycle events.

    `run` and `forward_started` are the background entry points: they never raise and
    report every failure through the log. `enrich` is the raising core.
    """

    def __init__(
        self,
        settings: Settings,
        reports: Optional[ZoomReportClient] = None,
        forwarder: Optional[DownstreamForwarder] = None,
    ):
        self.reports = reports or ZoomReportClient(settings)
        self.forwarder = forwarder or DownstreamForwarder(settings)
        self.ended_url = settings.n8n_webhook_url
        self.started_url = settings.start_webhook_url
        self.delivery_timeout = settings.delivery_timeout_seconds
        self.start_delivery_timeout = settings.start_delivery_timeout_seconds

    async def fetch_attendance(self, webinar_id) -> Tuple[List[Record], List[Record]]:
        # The first failure propagates; the other branch's result is discarded.
        participants, registrants = await asyncio.gather(
            run_in_threadpool(self.reports.fetch_participants, webinar_id),
            run_in_threadpool(self.reports.fetch_registrants, webinar_id),
        )
        return participants, registrants

    async def enrich(self, webinar: WebinarObject) -> EnrichedEventPayload:
        participants, registrants = await self.fetch_attendance(webinar.id)
        enriched = build_enriched_payload(webinar, participants, registrants)
        stats = enriched.payload.statistics
        logger.info(
            "Webinar %s: participants=%s registrants=%s no_shows=%s attendance=%s%%",
            webinar.id,
            stats.total_participants,
            stats.total_registrants,
            stats.no_shows_count,
            stats.attendance_rate_percent,
        )
        await run_in_threadpool(
            self.forwarder.deliver,
            enriched.model_dump(mode="json"),
            self.ended_url,
            self.delivery_timeout,
        )
        return enriched

    async def run(self, event_payload: Dict[str, Any]) -> bool:
        try:
            webinar = parse_webinar(event_payload)
        except MalformedPayloadError as exc:
            logger.error("Ignoring webinar.ended with malformed payload: %s", exc)
            return False

        try:
            await self.enrich(webinar)
        except AuthError as exc:
            logger.error("Enrichment for webinar %s aborted, token exchange failed: %s", webinar.id, exc)
        except UpstreamFetchError as exc:
            logger.error("Enrichment for webinar %s aborted, report fetch failed: %s", webinar.id, exc)
        except DeliveryError as exc:
            logger.error("Enrichment for webinar %s aborted, delivery failed: %s", webinar.id, exc)
        except Exception:
            logger.exception("Enrichment for webinar %s failed unexpectedly", webinar.id)
        else:
            logger.info("Enriched webinar.ended for %s delivered", webinar.id)
            return True
        return False

    async def forward_started(self, event_payload: Dict[str, Any]) -> bool:
        try:
            webinar = parse_webinar(event_payload)
        except MalformedPayloadError as exc:
            logger.error("Ignoring webinar.started with malformed payload: %s", exc)
            return False

        started = StartedEventPayload(
            payload=StartedBody(
                webinar_info=StartedWebinarInfo(
                    id=webinar.id,
                    topic=webinar.topic,
                    start_time=webinar.start_time,
                    timezone=webinar.timezone,
                )
            )
        )
        try:
            await run_in_threadpool(
                self.forwarder.deliver,
                started.model_dump(mode="json"),
                self.started_url,
                self.start_delivery_timeout,
            )
        except DeliveryError as exc:
            logger.error("Forwarding webinar.started for %s failed: %s", webinar.id, exc)
            return False
        return True
