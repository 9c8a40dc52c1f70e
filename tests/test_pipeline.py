"""Tests for the webinar.ended enrichment pipeline and webinar.started forwarding."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import ended_event

from config import Settings
from enrichment.forwarder import DeliveryError
from enrichment.pipeline import EnrichmentPipeline, MalformedPayloadError, parse_webinar
from zoom.auth import AuthError
from zoom.pagination import TooManyPagesError, UpstreamFetchError


@pytest.fixture
def reports() -> MagicMock:
    reports = MagicMock()
    reports.fetch_participants.return_value = [
        {"user_email": "a@X.com", "join_time": "2024-01-10T15:01:00Z", "duration": 3500},
        {"user_email": "c@x.com", "join_time": "2024-01-10T15:05:00Z", "duration": 1200},
    ]
    reports.fetch_registrants.return_value = [
        {"email": "a@x.com", "status": "approved"},
        {"email": "B@x.com", "status": "approved"},
        {"email": "c@x.com", "status": "approved"},
        {"email": "d@x.com", "status": "approved"},
    ]
    return reports


@pytest.fixture
def forwarder() -> MagicMock:
    forwarder = MagicMock()
    forwarder.deliver.return_value = 200
    return forwarder


@pytest.fixture
def pipeline(settings: Settings, reports: MagicMock, forwarder: MagicMock) -> EnrichmentPipeline:
    return EnrichmentPipeline(settings, reports=reports, forwarder=forwarder)


class TestParseWebinar:
    def test_valid(self) -> None:
        webinar = parse_webinar(ended_event()["payload"])
        assert webinar.id == 987654321
        assert webinar.topic == "Quarterly product update"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"object": None},
            {"object": {"topic": "no id"}},
            {"object": {"id": ""}},
            {"object": {"id": "   "}},
            {"object": {"id": 0}},
            {"id": 1},
            None,
            "text",
        ],
    )
    def test_malformed(self, payload) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_webinar(payload)


class TestRun:
    async def test_delivers_enriched_payload(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        assert await pipeline.run(ended_event()["payload"]) is True

        reports.fetch_participants.assert_called_once_with(987654321)
        reports.fetch_registrants.assert_called_once_with(987654321)
        forwarder.deliver.assert_called_once()
        body, url, timeout = forwarder.deliver.call_args.args
        assert url == "https://n8n.example.com/webhook/ended"
        assert timeout == 30.0

        assert body["event"] == "webinar.ended"
        payload = body["payload"]
        assert payload["webinar_info"] == {
            "id": 987654321,
            "topic": "Quarterly product update",
            "start_time": "2024-01-10T15:00:00Z",
            "end_time": "2024-01-10T16:00:00Z",
            "duration": 60,
        }
        assert payload["statistics"] == {
            "total_registrants": 4,
            "total_participants": 2,
            "no_shows_count": 2,
            "attendance_rate_percent": 50,
        }
        assert payload["participants"] == reports.fetch_participants.return_value
        assert payload["registrants"] == reports.fetch_registrants.return_value
        assert payload["no_shows"] == [
            {"email": "B@x.com", "status": "approved"},
            {"email": "d@x.com", "status": "approved"},
        ]

    async def test_no_registrants_gives_zero_rate(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        reports.fetch_registrants.return_value = []
        assert await pipeline.run(ended_event()["payload"]) is True
        body = forwarder.deliver.call_args.args[0]
        assert body["payload"]["statistics"]["attendance_rate_percent"] == 0
        assert body["payload"]["no_shows"] == []

    async def test_registrant_fetch_failure_sends_nothing(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        reports.fetch_registrants.side_effect = UpstreamFetchError("500 from Zoom")
        assert await pipeline.run(ended_event()["payload"]) is False
        assert forwarder.deliver.call_count == 0

    async def test_participant_fetch_failure_sends_nothing(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        reports.fetch_participants.side_effect = TooManyPagesError("endless")
        assert await pipeline.run(ended_event()["payload"]) is False
        assert forwarder.deliver.call_count == 0

    async def test_auth_failure_sends_nothing(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        reports.fetch_participants.side_effect = AuthError("bad credentials")
        assert await pipeline.run(ended_event()["payload"]) is False
        assert forwarder.deliver.call_count == 0

    async def test_delivery_failure_is_not_retried(
        self, pipeline: EnrichmentPipeline, forwarder: MagicMock
    ) -> None:
        forwarder.deliver.side_effect = DeliveryError("n8n down")
        assert await pipeline.run(ended_event()["payload"]) is False
        assert forwarder.deliver.call_count == 1

    async def test_malformed_payload_makes_no_calls(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        assert await pipeline.run({"object": {"topic": "missing id"}}) is False
        reports.fetch_participants.assert_not_called()
        reports.fetch_registrants.assert_not_called()
        forwarder.deliver.assert_not_called()

    async def test_blank_webinar_id_makes_no_calls(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        assert await pipeline.run({"object": {"id": "", "topic": "blank"}}) is False
        reports.fetch_participants.assert_not_called()
        reports.fetch_registrants.assert_not_called()
        forwarder.deliver.assert_not_called()

    async def test_enrich_raises_for_callers(
        self, pipeline: EnrichmentPipeline, reports: MagicMock
    ) -> None:
        reports.fetch_registrants.side_effect = UpstreamFetchError("boom")
        with pytest.raises(UpstreamFetchError):
            await pipeline.enrich(parse_webinar(ended_event()["payload"]))


class TestForwardStarted:
    async def test_minimal_payload_to_start_url(
        self, pipeline: EnrichmentPipeline, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        payload = ended_event()["payload"]
        assert await pipeline.forward_started(payload) is True

        body, url, timeout = forwarder.deliver.call_args.args
        assert url == "https://n8n.example.com/webhook/started"
        assert timeout == 10.0
        assert body == {
            "event": "webinar.started",
            "payload": {
                "webinar_info": {
                    "id": 987654321,
                    "topic": "Quarterly product update",
                    "start_time": "2024-01-10T15:00:00Z",
                    "timezone": "America/New_York",
                }
            },
        }
        reports.fetch_participants.assert_not_called()

    async def test_start_url_falls_back_to_ended_url(
        self, settings: Settings, reports: MagicMock, forwarder: MagicMock
    ) -> None:
        single_url = settings.model_copy(update={"n8n_start_webhook_url": None})
        pipeline = EnrichmentPipeline(single_url, reports=reports, forwarder=forwarder)
        await pipeline.forward_started(ended_event()["payload"])
        assert forwarder.deliver.call_args.args[1] == "https://n8n.example.com/webhook/ended"

    async def test_delivery_failure_is_logged_not_raised(
        self, pipeline: EnrichmentPipeline, forwarder: MagicMock
    ) -> None:
        forwarder.deliver.side_effect = DeliveryError("n8n down")
        assert await pipeline.forward_started(ended_event()["payload"]) is False

    async def test_malformed_payload_is_dropped(
        self, pipeline: EnrichmentPipeline, forwarder: MagicMock
    ) -> None:
        assert await pipeline.forward_started({}) is False
        forwarder.deliver.assert_not_called()
