"""
Tests for the ProcessHost command handling and the FastAPI application.
"""

import asyncio
import datetime
import threading
from functools import partial

import pytest
from fastapi.testclient import TestClient

from fakes import FailingBrowser, FakeBrowser, RecordingFlow
from main import (
    ALREADY_RUNNING_MESSAGE,
    BROWSER_FAILURE_MESSAGE,
    INVALID_MESSAGE,
    INVALID_QUERY_MESSAGE,
    READY_MESSAGE,
    UNKNOWN_MESSAGE,
    ProcessHost,
    calculate_execution_time,
    create_app,
)


def make_host(messages, browser_factory=FakeBrowser, release=None, calls=None):
    """
    Builds a host with fake browser and flow, and a recording client attached.

    :param messages: List receiving every delivered message
    :param browser_factory: Callable creating the browser double
    :param release: Event the flow waits on before finishing (None to finish at once)
    :param calls: List receiving the queries of every flow
    :return: The ProcessHost
    """

    host = ProcessHost(browser_factory=browser_factory, flow_factory=partial(RecordingFlow, release=release, calls=calls))
    host.channel.attach(object(), messages.append)
    return host


class RecordingWebSocket:
    """WebSocket double recording the JSON messages sent to it."""

    def __init__(self):
        self.sent = []

    async def send_json(self, message):
        self.sent.append(message)


def errors_of(messages):
    """Returns the text of every error message, in order."""
    return [message["message"] for message in messages if message["type"] == "error"]


class TestCommandHandling:
    """Validation of the inbound commands."""

    @pytest.mark.asyncio
    async def test_unknown_type(self, messages):
        host = make_host(messages)

        assert await host.handle_message({"type": "stop_search"}) is False
        assert errors_of(messages) == [UNKNOWN_MESSAGE]
        assert host.is_processing is False

    @pytest.mark.asyncio
    async def test_invalid_json(self, messages):
        host = make_host(messages)

        assert await host.handle_raw_message("{not json") is False
        assert await host.handle_raw_message('["start_universal_search"]') is False
        assert errors_of(messages) == [INVALID_MESSAGE, INVALID_MESSAGE]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    async def test_invalid_query(self, messages, query):
        host = make_host(messages)
        session_before = host.session_data

        assert await host.handle_message({"type": "start_universal_search", "query": query}) is False
        assert errors_of(messages) == [INVALID_QUERY_MESSAGE]
        assert host.session_data is session_before
        assert host.is_processing is False

    @pytest.mark.asyncio
    async def test_rejected_while_processing(self, messages):
        host = make_host(messages)
        host.is_processing = True
        session_before = host.session_data

        assert await host.handle_message({"type": "start_universal_search", "query": "usb hub"}) is False
        assert errors_of(messages) == [ALREADY_RUNNING_MESSAGE]
        assert host.session_data is session_before
        assert host.is_processing is True


class TestFlowLifecycle:
    """Starting, rejecting and finishing flows."""

    @pytest.mark.asyncio
    async def test_flow_runs_and_releases_flag(self, messages):
        calls = []
        host = make_host(messages, calls=calls)

        assert await host.handle_raw_message('{"type": "start_universal_search", "query": "wireless mouse"}') is True
        assert host.is_processing is True

        analysis = await host.flow_future

        assert calls == ["wireless mouse"]
        assert analysis.original_query == "wireless mouse"
        assert host.session_data.analysis is analysis
        assert host.is_processing is False
        assert host.browser.is_launched  # Launched on the first search when no client connected before
        await host.shutdown()

    @pytest.mark.asyncio
    async def test_second_search_rejected_until_first_finishes(self, messages):
        release = threading.Event()
        calls = []
        host = make_host(messages, release=release, calls=calls)

        assert await host.handle_message({"type": "start_universal_search", "query": "wireless mouse"}) is True
        first_session = host.session_data

        assert await host.handle_message({"type": "start_universal_search", "query": "usb hub"}) is False
        assert errors_of(messages) == [ALREADY_RUNNING_MESSAGE]
        assert host.session_data is first_session

        release.set()
        await host.flow_future

        assert await host.handle_message({"type": "start_universal_search", "query": "usb hub"}) is True
        await host.flow_future
        assert calls == ["wireless mouse", "usb hub"]
        await host.shutdown()

    @pytest.mark.asyncio
    async def test_browser_failure_is_reported(self, messages):
        host = make_host(messages, browser_factory=FailingBrowser)

        assert await host.handle_message({"type": "start_universal_search", "query": "usb hub"}) is False
        assert errors_of(messages) == [BROWSER_FAILURE_MESSAGE]
        assert host.is_processing is False
        assert host.browser is None
        await host.shutdown()

    @pytest.mark.asyncio
    async def test_concurrent_clients_share_one_launch(self, messages):
        launched = []

        def counting_browser():
            browser = FakeBrowser()
            launched.append(browser)
            return browser

        host = make_host(messages, browser_factory=counting_browser)
        first_client, second_client = RecordingWebSocket(), RecordingWebSocket()

        await asyncio.gather(host.attach_client(first_client), host.attach_client(second_client))
        await asyncio.sleep(0.05)  # Let the scheduled sends run

        assert len(launched) == 1
        assert host.browser is launched[0]
        assert host.browser_launch is None
        assert first_client.sent == []  # Replaced before the launch finished
        assert {"type": "status", "message": READY_MESSAGE} in second_client.sent

        await host.shutdown()
        assert launched[0].closed is True

    @pytest.mark.asyncio
    async def test_failed_launch_can_be_retried(self, messages):
        factories = [FailingBrowser, FakeBrowser]
        host = make_host(messages, browser_factory=lambda: factories.pop(0)())

        assert await host.initialize_browser() is False
        assert await host.initialize_browser() is True
        assert host.browser.is_launched
        await host.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_closes_browser_once(self, messages):
        host = make_host(messages)
        assert await host.initialize_browser() is True
        browser = host.browser

        await host.shutdown()
        await host.shutdown()

        assert browser.closed is True
        assert host.browser is None
        assert host.channel.is_attached is False


class TestApplication:
    """HTTP and WebSocket endpoints."""

    def test_index_page(self):
        app = create_app(ProcessHost(browser_factory=FakeBrowser, flow_factory=RecordingFlow))

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 200
        assert "Shopkeeper AI" in response.text

    def test_websocket_session(self):
        host = ProcessHost(browser_factory=FakeBrowser, flow_factory=RecordingFlow)
        app = create_app(host)

        with TestClient(app) as client:
            with client.websocket_connect("/ws") as websocket:
                assert websocket.receive_json() == {"type": "status", "message": READY_MESSAGE}

                websocket.send_text('{"type": "ping"}')
                assert websocket.receive_json() == {"type": "error", "message": UNKNOWN_MESSAGE}

                websocket.send_text("not json")
                assert websocket.receive_json() == {"type": "error", "message": INVALID_MESSAGE}

                websocket.send_json({"type": "start_universal_search", "query": "wireless mouse"})
                message = websocket.receive_json()

                assert message["type"] == "analysis"
                assert message["analysis"]["originalQuery"] == "wireless mouse"
                assert message["analysis"]["sitesSearched"] == ["Amazon", "Flipkart"]
                assert "products" not in message["analysis"]

            browser = host.browser

        assert browser.closed is True  # Released by the lifespan shutdown
        assert host.is_shut_down is True


def test_calculate_execution_time():
    start = datetime.datetime(2026, 10, 2, 12, 0, 0)

    assert calculate_execution_time(start, start + datetime.timedelta(seconds=3725)) == "1h 2m 5s"
    assert calculate_execution_time(start, start + datetime.timedelta(seconds=65)) == "1m 5s"
    assert calculate_execution_time(start, start) == "0s"


def test_shutdown_without_browser():
    host = ProcessHost(browser_factory=FakeBrowser, flow_factory=RecordingFlow)

    asyncio.run(host.shutdown())

    assert host.is_shut_down is True
