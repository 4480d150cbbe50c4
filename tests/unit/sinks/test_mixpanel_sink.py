# tests/unit/sinks/test_mixpanel_sink.py
"""Tests for MixpanelSink against a mocked ingestion API (respx)."""

import json
from typing import Any

import httpx
import pytest
import respx

from mixtrack.errors import SinkConfigurationError
from mixtrack.sinks.mixpanel import MixpanelSink
from tests.helpers import make_settings

API_HOST = "https://api.mixpanel.com"
OK = {"status": 1, "error": None}


def body_of(route: respx.Route, index: int = -1) -> Any:
    return json.loads(route.calls[index].request.content)


async def ready_sink(**overrides: object) -> MixpanelSink:
    sink = MixpanelSink()
    await sink.initialize(make_settings(sink="mixpanel", token="tok-123", api_host=API_HOST, **overrides))
    return sink


# =============================================================================
# Initialization
# =============================================================================


class TestMixpanelSinkInitialize:
    @pytest.mark.asyncio
    async def test_empty_token_rejected(self) -> None:
        with pytest.raises(SinkConfigurationError, match="token is required"):
            await MixpanelSink().initialize(make_settings(token="   "))

    @pytest.mark.asyncio
    async def test_send_before_initialize_raises(self) -> None:
        with pytest.raises(RuntimeError, match="before initialize"):
            await MixpanelSink().send("FeedbackButtonClicked", {})

    @pytest.mark.asyncio
    async def test_reinitialize_replaces_client(self) -> None:
        sink = await ready_sink()
        await sink.initialize(make_settings(token="tok-456", api_host=API_HOST))
        await sink.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        sink = await ready_sink()
        await sink.close()
        await sink.close()


# =============================================================================
# Tracking
# =============================================================================


class TestMixpanelSinkSend:
    @pytest.mark.asyncio
    async def test_track_request(self) -> None:
        with respx.mock:
            route = respx.post(host="api.mixpanel.com", path="/track").mock(return_value=httpx.Response(200, json=OK))
            sink = await ready_sink()
            sink.register({"platform": "web", "app_version": "1.0.0"})
            await sink.send("FeedbackSubmitted", {"feedback_text": "great app", "event_category": "Feedback"})
            await sink.close()

        assert route.call_count == 1
        request = route.calls.last.request
        assert request.url.params["verbose"] == "1"

        [event] = body_of(route)
        assert event["event"] == "FeedbackSubmitted"
        properties = event["properties"]
        assert properties["feedback_text"] == "great app"
        assert properties["event_category"] == "Feedback"
        assert properties["platform"] == "web"
        assert properties["token"] == "tok-123"
        assert properties["distinct_id"].startswith("$device:")
        assert isinstance(properties["time"], int)
        assert len(properties["$insert_id"]) == 32

    @pytest.mark.asyncio
    async def test_rejected_event_raises(self) -> None:
        with respx.mock:
            respx.post(host="api.mixpanel.com", path="/track").mock(
                return_value=httpx.Response(200, json={"status": 0, "error": "token, missing or empty"})
            )
            sink = await ready_sink()
            with pytest.raises(RuntimeError, match="token, missing or empty"):
                await sink.send("FeedbackButtonClicked", {})
            await sink.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        with respx.mock:
            respx.post(host="api.mixpanel.com", path="/track").mock(return_value=httpx.Response(503))
            sink = await ready_sink()
            with pytest.raises(httpx.HTTPStatusError):
                await sink.send("FeedbackButtonClicked", {})
            await sink.close()

    @pytest.mark.asyncio
    async def test_network_error_raises(self) -> None:
        with respx.mock:
            respx.post(host="api.mixpanel.com", path="/track").mock(side_effect=httpx.ConnectError("offline"))
            sink = await ready_sink()
            with pytest.raises(httpx.ConnectError):
                await sink.send("FeedbackButtonClicked", {})
            await sink.close()

    @pytest.mark.asyncio
    async def test_custom_api_host(self) -> None:
        with respx.mock:
            route = respx.post(host="api-eu.mixpanel.com", path="/track").mock(
                return_value=httpx.Response(200, json=OK)
            )
            sink = MixpanelSink()
            await sink.initialize(make_settings(token="tok", api_host="https://api-eu.mixpanel.com"))
            await sink.send("FeedbackButtonClicked", {})
            await sink.close()

        assert route.called


# =============================================================================
# Identity
# =============================================================================


class TestMixpanelSinkIdentity:
    @pytest.mark.asyncio
    async def test_first_identify_links_anonymous_id(self) -> None:
        with respx.mock:
            track = respx.post(host="api.mixpanel.com", path="/track").mock(return_value=httpx.Response(200, json=OK))
            engage = respx.post(host="api.mixpanel.com", path="/engage").mock(
                return_value=httpx.Response(200, json=OK)
            )
            sink = await ready_sink()
            anonymous_id = sink.distinct_id
            await sink.identify("u1", {"email": "a@b.com"})
            await sink.send("FeedbackButtonClicked", {})
            await sink.close()

        identify_event = body_of(track, 0)[0]
        assert identify_event["event"] == "$identify"
        assert identify_event["properties"]["$anon_distinct_id"] == anonymous_id
        assert identify_event["properties"]["$identified_id"] == "u1"

        assert body_of(engage) == [{"$token": "tok-123", "$distinct_id": "u1", "$set": {"email": "a@b.com"}}]
        assert body_of(track, 1)[0]["properties"]["distinct_id"] == "u1"

    @pytest.mark.asyncio
    async def test_failed_link_keeps_anonymous_identity(self) -> None:
        with respx.mock:
            track = respx.post(host="api.mixpanel.com", path="/track").mock(
                side_effect=[httpx.Response(503), httpx.Response(200, json=OK), httpx.Response(200, json=OK)]
            )
            sink = await ready_sink()
            anonymous_id = sink.distinct_id

            with pytest.raises(httpx.HTTPStatusError):
                await sink.identify("u1", None)
            assert sink.distinct_id == anonymous_id

            await sink.identify("u1", None)
            await sink.send("FeedbackButtonClicked", {})
            await sink.close()

        retried_link = body_of(track, 1)[0]
        assert retried_link["event"] == "$identify"
        assert retried_link["properties"]["$anon_distinct_id"] == anonymous_id
        assert retried_link["properties"]["distinct_id"] == "u1"
        assert sink.distinct_id == "u1"
        assert body_of(track, 2)[0]["properties"]["distinct_id"] == "u1"

    @pytest.mark.asyncio
    async def test_identify_without_properties_skips_engage(self) -> None:
        with respx.mock:
            respx.post(host="api.mixpanel.com", path="/track").mock(return_value=httpx.Response(200, json=OK))
            engage = respx.post(host="api.mixpanel.com", path="/engage").mock(
                return_value=httpx.Response(200, json=OK)
            )
            sink = await ready_sink()
            await sink.identify("u1", None)
            await sink.close()

        assert not engage.called

    @pytest.mark.asyncio
    async def test_second_identify_does_not_relink(self) -> None:
        with respx.mock:
            track = respx.post(host="api.mixpanel.com", path="/track").mock(return_value=httpx.Response(200, json=OK))
            sink = await ready_sink()
            await sink.identify("u1", None)
            await sink.identify("u2", None)
            await sink.close()

        assert track.call_count == 1
        assert sink.distinct_id == "u2"

    @pytest.mark.asyncio
    async def test_reset_generates_new_anonymous_id(self) -> None:
        with respx.mock:
            respx.post(host="api.mixpanel.com", path="/track").mock(return_value=httpx.Response(200, json=OK))
            sink = await ready_sink()
            await sink.identify("u1", None)
            await sink.reset()
            await sink.close()

        assert sink.distinct_id.startswith("$device:")
