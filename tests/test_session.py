"""Tests for the live interview session controller."""
import asyncio
import base64

import numpy as np

from mockprep.bank import Question, QuestionType
from mockprep.infrastructure.audio import MediaAcquisitionError
from mockprep.interview import (
    LiveEventType, SessionStatus, TransportConnectionError, get_active_session
)
from mockprep.interview.testing import create_test_session


def speech(frames=2400):
    pcm = (np.ones(frames) * 8192).astype("<i2")
    return base64.b64encode(pcm.tobytes()).decode("ascii")


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


def status_log(session):
    statuses = []
    session.event_bus.subscribe(LiveEventType.STATUS_CHANGED, lambda e: statuses.append(e.data["new_status"]))
    return statuses


def test_start_acquires_devices_and_opens_transport():
    questions = [
        Question(raw_text="r", processed=True, type=QuestionType.CODE_PREDICTION,
                 question_text="Predict this", code_snippet="console.log(1)"),
    ]

    async def scenario():
        session, mics, outputs, transports = create_test_session(questions)
        await session.start()

        assert session.status == SessionStatus.CONNECTING
        assert mics.last.opened and outputs.last.opened
        live_config = transports.last.config
        assert live_config.api_key == "test-key"
        assert live_config.voice_name == "Fenrir"
        assert "QUESTION #1 (CODE_PREDICTION):" in live_config.system_instruction
        assert "CODE SNIPPET:\nconsole.log(1)" in live_config.system_instruction
        assert get_active_session() is session
        await session.hangup()

    asyncio.run(scenario())


def test_opened_starts_streaming_microphone():
    async def scenario():
        session, mics, _, transports = create_test_session()
        statuses = status_log(session)
        await session.start()

        mics.last.push(np.full(512, 0.25))
        assert transports.last.sent == []

        transports.last.emit_opened()
        mics.last.push(np.full(512, 0.25))

        assert session.status == SessionStatus.CONNECTED
        assert statuses == ["connected"]
        assert len(transports.last.sent) == 1
        assert session.chunks_sent == 1
        await session.hangup()

    asyncio.run(scenario())


def test_audio_is_scheduled_and_interruption_clears_it():
    async def scenario():
        session, _, outputs, transports = create_test_session()
        await session.start()
        transport, output = transports.last, outputs.last
        transport.emit_opened()

        transport.emit_audio(speech(2400))
        transport.emit_audio(speech(2400))

        assert [s.start_time for s in output.sources] == [0.0, 0.1]
        assert session.ai_speaking

        transport.emit_interrupted()

        assert all(s.stopped for s in output.sources)
        assert not session.ai_speaking
        assert session.summary().interruptions == 1
        await session.hangup()

    asyncio.run(scenario())


def test_undecodable_audio_is_skipped():
    async def scenario():
        session, _, outputs, transports = create_test_session()
        await session.start()
        transports.last.emit_opened()

        transports.last.emit_audio("!!not-base64!!")

        assert outputs.last.sources == []
        assert session.status == SessionStatus.CONNECTED
        await session.hangup()

    asyncio.run(scenario())


def test_missing_api_key_fails_and_releases_devices():
    async def scenario():
        session, mics, outputs, transports = create_test_session(api_key=None)
        await session.start()

        assert session.status == SessionStatus.ERROR
        assert session.error_message == "GEMINI_API_KEY is missing from environment."
        assert mics.last.close_count == 1
        assert outputs.last.close_count == 1
        assert transports.instances == []

    asyncio.run(scenario())


def test_microphone_denied_is_an_error():
    async def scenario():
        session, _, outputs, transports = create_test_session(
            microphone_error=MediaAcquisitionError("Permission denied"))
        await session.start()

        assert session.status == SessionStatus.ERROR
        assert session.error_message == "Permission denied"
        assert outputs.instances == []
        assert transports.instances == []

    asyncio.run(scenario())


def test_connection_failure_is_an_error():
    async def scenario():
        session, mics, outputs, transports = create_test_session(
            transport_error=TransportConnectionError("Could not connect to live API: refused"))
        await session.start()

        assert session.status == SessionStatus.ERROR
        assert "refused" in session.error_message
        assert mics.last.close_count == 1
        assert outputs.last.close_count == 1
        assert transports.last.close_count == 1

    asyncio.run(scenario())


def test_hangup_twice_is_harmless():
    async def scenario():
        session, mics, outputs, transports = create_test_session()
        await session.start()
        transports.last.emit_opened()

        await session.hangup()
        await session.hangup()

        assert session.status == SessionStatus.ENDED
        assert mics.last.close_count == 1
        assert outputs.last.close_count == 1
        assert transports.last.close_count == 1
        assert get_active_session() is None

    asyncio.run(scenario())


def test_release_continues_past_a_failing_resource():
    async def scenario():
        session, mics, outputs, transports = create_test_session()
        await session.start()
        outputs.last.fail_on_close = RuntimeError("device busy")

        await session.hangup()

        assert session.status == SessionStatus.ENDED
        assert transports.last.close_count == 1

    asyncio.run(scenario())


def test_remote_close_ends_session_and_releases():
    async def scenario():
        session, mics, outputs, transports = create_test_session()
        await session.start()
        transports.last.emit_opened()

        transports.last.emit_closed()
        await settle()

        assert session.status == SessionStatus.ENDED
        assert await session.wait_finished() == SessionStatus.ENDED
        assert mics.last.close_count == 1
        assert transports.last.close_count == 1

    asyncio.run(scenario())


def test_error_survives_the_following_close():
    async def scenario():
        session, _, outputs, transports = create_test_session()
        await session.start()
        transports.last.emit_opened()

        transports.last.emit_error("Connection lost")
        transports.last.emit_closed(1011, "Connection lost")
        await settle()

        assert session.status == SessionStatus.ERROR
        assert session.error_message == "Connection lost"
        assert outputs.last.close_count == 1

    asyncio.run(scenario())


def test_retry_starts_a_fresh_attempt_and_ignores_the_old_one():
    async def scenario():
        session, mics, _, transports = create_test_session()
        await session.start()
        first = transports.last
        first.emit_opened()
        first.emit_error("Connection lost")

        await session.retry()

        assert session.status == SessionStatus.CONNECTING
        assert session.error_message is None
        assert len(transports.instances) == 2
        assert first.close_count == 1
        assert mics.instances[0].close_count == 1

        first.emit_opened()
        assert session.status == SessionStatus.CONNECTING

        transports.last.emit_opened()
        assert session.status == SessionStatus.CONNECTED
        await session.hangup()

    asyncio.run(scenario())


def test_mute_sends_silence():
    async def scenario():
        session, mics, _, transports = create_test_session()
        await session.start()
        transports.last.emit_opened()

        assert session.toggle_mute() is True
        assert mics.last.enabled is False
        mics.last.push(np.full(256, 0.5))

        pcm = np.frombuffer(base64.b64decode(transports.last.sent[0].data), dtype="<i2")
        assert len(pcm) == 256
        assert not pcm.any()

        assert session.toggle_mute() is False
        assert mics.last.enabled is True
        await session.hangup()

    asyncio.run(scenario())


def test_mute_without_microphone_is_a_no_op():
    session, _, _, _ = create_test_session()

    assert session.toggle_mute() is False


def test_starting_a_second_session_ends_the_first():
    async def scenario():
        first, first_mics, _, _ = create_test_session()
        second, _, _, _ = create_test_session()
        await first.start()

        await second.start()

        assert first.status == SessionStatus.ENDED
        assert first_mics.last.close_count == 1
        assert get_active_session() is second
        await second.hangup()

    asyncio.run(scenario())
