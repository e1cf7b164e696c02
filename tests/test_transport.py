"""Tests for the Gemini Live websocket transport."""
import asyncio
import json

import pytest

from mockprep.infrastructure.audio import encode_pcm16
from mockprep.interview import (
    LiveEventBus, LiveEventType, LiveSessionConfig, LiveTransport, TransportConnectionError,
    parse_server_message, build_setup_message
)


class FakeWebSocket:
    """Minimal stand-in for a websockets client connection."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.closed = False

    async def send(self, data):
        self.sent.append(json.loads(data))

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True
        self.incoming.put_nowait(None)

    def deliver(self, message):
        self.incoming.put_nowait(json.dumps(message) if isinstance(message, dict) else message)

    def end(self):
        self.incoming.put_nowait(None)


class FakeConnector:
    def __init__(self, error=None):
        self.error = error
        self.urls = []
        self.socket = None

    async def __call__(self, url, **kwargs):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        self.socket = FakeWebSocket()
        return self.socket


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


def config(api_key="key-123"):
    return LiveSessionConfig(api_key=api_key, system_instruction="Interview me", voice_name="Fenrir",
                             model="models/live-test")


def recorder(bus):
    events = []
    bus.subscribe_all(events.append)
    return events


def test_setup_message_shape():
    message = build_setup_message(config())

    assert message == {
        "setup": {
            "model": "models/live-test",
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": "Fenrir"}}},
            },
            "systemInstruction": {"parts": [{"text": "Interview me"}]},
        }
    }


def test_parse_audio_then_interruption():
    message = {
        "serverContent": {
            "modelTurn": {"parts": [
                {"inlineData": {"mimeType": "audio/pcm;rate=24000", "data": "AAAA"}},
                {"text": "ignored"},
                {"inlineData": {"mimeType": "audio/pcm;rate=24000", "data": "BBBB"}},
            ]},
            "interrupted": True,
        }
    }

    events = parse_server_message(json.dumps(message).encode("utf-8"), "s-1", timestamp=1.0)

    assert [e.event_type for e in events] == [
        LiveEventType.AUDIO_CHUNK, LiveEventType.AUDIO_CHUNK, LiveEventType.INTERRUPTED
    ]
    assert [e.audio_data for e in events[:2]] == ["AAAA", "BBBB"]


def test_parse_setup_complete_and_unknown_messages():
    assert [e.event_type for e in parse_server_message('{"setupComplete": {}}', "s")] == [LiveEventType.OPENED]
    assert parse_server_message('{"serverContent": {"turnComplete": true}}', "s") == []
    assert parse_server_message('{"usageMetadata": {}}', "s") == []


def test_parse_rejects_non_objects():
    with pytest.raises(ValueError):
        parse_server_message("[]", "s")
    with pytest.raises(ValueError):
        parse_server_message("not json", "s")


def test_open_requires_api_key():
    async def scenario():
        connector = FakeConnector()
        transport = LiveTransport(LiveEventBus(), "s-1", connect=connector)
        with pytest.raises(TransportConnectionError):
            await transport.open(config(api_key=None))
        assert connector.urls == []

    asyncio.run(scenario())


def test_connection_failure_is_a_connection_error():
    async def scenario():
        transport = LiveTransport(LiveEventBus(), "s-1", connect=FakeConnector(error=OSError("refused")))
        with pytest.raises(TransportConnectionError):
            await transport.open(config())

    asyncio.run(scenario())


def test_open_sends_setup_and_reports_opened():
    async def scenario():
        bus = LiveEventBus()
        events = recorder(bus)
        connector = FakeConnector()
        transport = LiveTransport(bus, "s-1", url="wss://live.test/ws", connect=connector)

        await transport.open(config())
        connector.socket.deliver({"setupComplete": {}})
        await settle()

        assert connector.urls == ["wss://live.test/ws?key=key-123"]
        assert connector.socket.sent[0] == build_setup_message(config())
        assert [e.event_type for e in events] == [LiveEventType.OPENED]
        assert events[0].session_id == "s-1"
        await transport.close()

    asyncio.run(scenario())


def test_outbound_chunks_are_sent_in_order():
    async def scenario():
        connector = FakeConnector()
        transport = LiveTransport(LiveEventBus(), "s-1", connect=connector)
        await transport.open(config())

        first, second = encode_pcm16([0.5]), encode_pcm16([-0.5])
        assert transport.send(first)
        assert transport.send(second)
        await settle()

        assert connector.socket.sent[1:] == [
            {"realtimeInput": {"mediaChunks": [{"mimeType": "audio/pcm;rate=16000", "data": first.data}]}},
            {"realtimeInput": {"mediaChunks": [{"mimeType": "audio/pcm;rate=16000", "data": second.data}]}},
        ]
        assert transport.chunks_sent == 2
        await transport.close()

    asyncio.run(scenario())


def test_full_send_queue_drops_chunks():
    async def scenario():
        transport = LiveTransport(LiveEventBus(), "s-1", send_queue_size=1, connect=FakeConnector())
        await transport.open(config())

        assert transport.send(encode_pcm16([0.1]))
        assert not transport.send(encode_pcm16([0.2]))
        assert transport.chunks_dropped == 1
        await transport.close()

    asyncio.run(scenario())


def test_remote_close_emits_closed_once_and_stops_sending():
    async def scenario():
        bus = LiveEventBus()
        events = recorder(bus)
        connector = FakeConnector()
        transport = LiveTransport(bus, "s-1", connect=connector)
        await transport.open(config())

        connector.socket.end()
        await settle()

        assert [e.event_type for e in events] == [LiveEventType.CLOSED]
        assert not transport.is_open
        assert not transport.send(encode_pcm16([0.1]))
        await transport.close()
        assert [e.event_type for e in events] == [LiveEventType.CLOSED]

    asyncio.run(scenario())


def test_receive_failure_emits_error_then_closed():
    async def scenario():
        bus = LiveEventBus()
        events = recorder(bus)
        connector = FakeConnector()
        transport = LiveTransport(bus, "s-1", connect=connector)
        await transport.open(config())

        connector.socket.deliver(OSError("network dropped"))
        await settle()

        assert [e.event_type for e in events] == [LiveEventType.ERROR, LiveEventType.CLOSED]
        assert events[0].message == "network dropped"
        await transport.close()

    asyncio.run(scenario())


def test_unreadable_message_is_skipped():
    async def scenario():
        bus = LiveEventBus()
        events = recorder(bus)
        connector = FakeConnector()
        transport = LiveTransport(bus, "s-1", connect=connector)
        await transport.open(config())

        connector.socket.deliver("garbage")
        connector.socket.deliver({"setupComplete": {}})
        await settle()

        assert [e.event_type for e in events] == [LiveEventType.OPENED]
        await transport.close()

    asyncio.run(scenario())


def test_local_close_is_idempotent_and_silent():
    async def scenario():
        bus = LiveEventBus()
        events = recorder(bus)
        connector = FakeConnector()
        transport = LiveTransport(bus, "s-1", connect=connector)
        await transport.open(config())

        await transport.close()
        await transport.close()

        assert connector.socket.closed
        assert events == []
        assert not transport.send(encode_pcm16([0.1]))

    asyncio.run(scenario())


@pytest.mark.parametrize("message", [
    {"serverContent": "oops"},
    {"serverContent": {"modelTurn": ["not", "a", "dict"]}},
    {"serverContent": {"modelTurn": {"parts": {"inlineData": {}}}}},
])
def test_parse_rejects_malformed_server_content(message):
    with pytest.raises(ValueError):
        parse_server_message(json.dumps(message), "s")


def test_malformed_server_content_is_skipped_without_failing():
    async def scenario():
        bus = LiveEventBus()
        events = recorder(bus)
        connector = FakeConnector()
        transport = LiveTransport(bus, "s-1", connect=connector)
        await transport.open(config())

        connector.socket.deliver({"serverContent": "oops"})
        connector.socket.deliver({"serverContent": {"modelTurn": 7}})
        connector.socket.deliver({"setupComplete": {}})
        await settle()

        assert [e.event_type for e in events] == [LiveEventType.OPENED]
        assert transport.is_open
        await transport.close()

    asyncio.run(scenario())
