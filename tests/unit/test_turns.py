import asyncio
import time

import pytest

from agents.types import Phase
from audio.sampler import AmplitudeFrame, QueueAmplitudeSource
from config.registry import SCORING_KEY, bind_model
from services.errors import NoAnswersToReport, SessionCompleted, TurnInProgress
from services.sessions import InterviewService
from services.turns import TurnState, VoiceTurnController
from tests.fakes import GatedScorer

USER = "user-1"
CHUNK = b"\x01\x00" * 1000


def _session(service, *, to_questions=False):
    created = service.create_session(USER, duration_minutes=15, job_title="Backend Engineer", candidate_name="Priya")
    session_id = created.session.id
    if to_questions:
        service.speak(session_id, USER)
        for text in ("Hi", "Doing well", "Ready"):
            service.reply(session_id, USER, text)
    return session_id


def _drain_events(controller):
    events = []
    while not controller.events.empty():
        events.append(controller.events.get_nowait())
    return events


def test_budget_defaults_to_session_share():
    service = InterviewService()
    controller = VoiceTurnController(service, _session(service), USER)
    assert controller.budget_seconds == pytest.approx(300.0)
    assert controller.state is TurnState.IDLE


def test_second_start_is_rejected():
    service = InterviewService()
    session_id = _session(service)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.start_recording()
        with pytest.raises(TurnInProgress):
            controller.start_recording()
        controller.close()

    asyncio.run(scenario())


def test_short_turn_is_discarded(fake_stt):
    service = InterviewService()
    session_id = _session(service)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.start_recording()
        controller.feed(b"\x00" * 100)
        assert controller.stop_recording() is None
        return controller

    controller = asyncio.run(scenario())
    assert controller.state is TurnState.IDLE
    assert fake_stt.calls == []


def test_answer_turn_is_transcribed_and_scored(fake_stt, fake_scorer):
    service = InterviewService()
    session_id = _session(service, to_questions=True)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.feed(CHUNK)
        controller.start_recording()
        controller.feed(CHUNK)
        task = controller.stop_recording()
        assert controller.state is TurnState.PROCESSING
        await task
        return controller

    controller = asyncio.run(scenario())
    events = _drain_events(controller)
    assert [event["type"] for event in events] == ["turn_result"]
    result = events[0]
    assert result["kind"] == "answer"
    assert result["analysis"]["score"] == 80
    assert result["nextQuestion"] is not None
    assert fake_stt.calls[0]["mime_type"] == "audio/wav"
    assert fake_stt.calls[0]["bytes"] > 2 * len(CHUNK)
    assert controller.state is TurnState.IDLE
    session, _ = service.get_session(session_id, USER)
    assert session.current_question_index == 1


def test_scripted_turn_replies(fake_stt):
    service = InterviewService()
    session_id = _session(service)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.start_recording()
        controller.feed(CHUNK)
        await controller.stop_recording()
        return controller

    events = _drain_events(asyncio.run(scenario()))
    assert events[0]["kind"] == "reply"
    assert events[0]["phase"] == Phase.SMALL_TALK.value


def test_turn_errors_are_reported_as_events():
    service = InterviewService()
    session_id = _session(service)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.start_recording()
        controller.feed(CHUNK)
        await controller.stop_recording()
        return controller

    controller = asyncio.run(scenario())
    events = _drain_events(controller)
    assert events == [
        {"type": "turn_error", "code": "transcription_failed", "message": "No speech-to-text service configured"}
    ]
    assert controller.state is TurnState.IDLE


def test_budget_expiry_closes_turn(fake_stt, fake_scorer):
    service = InterviewService()
    session_id = _session(service, to_questions=True)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=0.05)
        controller.start_recording()
        controller.feed(CHUNK)
        await asyncio.sleep(0.2)
        assert controller.state is not TurnState.RECORDING
        await controller.drain()
        return controller

    events = _drain_events(asyncio.run(scenario()))
    assert events[0]["type"] == "turn_result"
    assert events[0]["kind"] == "answer"


def test_vad_opens_and_closes_turns():
    service = InterviewService()
    session_id = _session(service)

    async def frames():
        for ts in range(10, 330, 10):
            yield AmplitudeFrame(rms=0.0, timestamp_ms=ts)
        for ts in range(330, 500, 10):
            yield AmplitudeFrame(rms=0.5, timestamp_ms=ts)
        for ts in range(500, 3000, 10):
            yield AmplitudeFrame(rms=0.0, timestamp_ms=ts)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        handle = controller.listen(frames())
        await handle.wait()
        return controller

    controller = asyncio.run(scenario())
    assert [event["type"] for event in _drain_events(controller)] == ["speech_start", "speech_end"]
    assert controller.state is TurnState.IDLE


def test_end_session_completes_and_closes(fake_stt, fake_scorer):
    service = InterviewService()
    session_id = _session(service, to_questions=True)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.start_recording()
        controller.feed(CHUNK)
        await controller.stop_recording()
        result = await controller.end_session()
        with pytest.raises(SessionCompleted):
            controller.start_recording()
        return result

    result = asyncio.run(scenario())
    assert result.report.overallScore == 80
    assert result.statistics.questionsAnswered == 1


def test_end_session_without_answers():
    service = InterviewService()
    session_id = _session(service)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        with pytest.raises(NoAnswersToReport):
            await controller.end_session()
        return controller

    controller = asyncio.run(scenario())
    assert controller.state is TurnState.CLOSED
    session, _ = service.get_session(session_id, USER)
    assert session.current_phase is Phase.WELCOME


def test_manual_stop_clears_vad_speaking():
    service = InterviewService()
    session_id = _session(service)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        source = QueueAmplitudeSource()
        handle = controller.listen(source)
        for ts in range(10, 410, 10):
            source.push(AmplitudeFrame(rms=0.0, timestamp_ms=ts))
        for ts in range(410, 600, 10):
            source.push(AmplitudeFrame(rms=0.5, timestamp_ms=ts))
        await asyncio.sleep(0.05)
        assert controller.state is TurnState.RECORDING

        assert controller.stop_recording("requested") is None
        assert controller.state is TurnState.IDLE
        assert not handle.is_speaking

        # Brief dip, then the candidate keeps talking: a new turn opens.
        for ts in range(600, 1100, 10):
            source.push(AmplitudeFrame(rms=0.0, timestamp_ms=ts))
        for ts in range(1100, 2100, 10):
            source.push(AmplitudeFrame(rms=0.5, timestamp_ms=ts))
        await asyncio.sleep(0.05)
        state = controller.state
        controller.close()
        await handle.wait()
        return controller, state

    controller, state = asyncio.run(scenario())
    assert state is TurnState.RECORDING
    assert [event["type"] for event in _drain_events(controller)] == ["speech_start", "speech_start"]


def test_stop_capture_drops_open_turn(fake_stt):
    service = InterviewService()
    session_id = _session(service)

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.start_recording()
        controller.feed(CHUNK)
        controller.stop_capture()
        assert controller.stop_recording("stream_end") is None
        return controller

    controller = asyncio.run(scenario())
    assert controller.state is TurnState.CLOSED
    assert fake_stt.calls == []


def test_end_session_abandons_turn_being_analyzed(fake_stt):
    scorer = GatedScorer(80, 40, gated_call=2)
    bind_model(SCORING_KEY, scorer)
    service = InterviewService()
    session_id = _session(service, to_questions=True)
    _, exchanges = service.get_session(session_id, USER)
    service.submit_answer(session_id, USER, exchanges[0].id, "We rebuilt the deploy pipeline and halved build times.")

    async def scenario():
        controller = VoiceTurnController(service, session_id, USER, budget_seconds=30)
        controller.start_recording()
        controller.feed(CHUNK)
        task = controller.stop_recording()
        assert await asyncio.to_thread(scorer.entered.wait, 5)
        assert controller.state is TurnState.PROCESSING

        started = time.monotonic()
        result = await controller.end_session()
        elapsed = time.monotonic() - started
        scorer.release.set()
        return controller, task, result, elapsed

    controller, task, result, elapsed = asyncio.run(scenario())
    assert elapsed < 1.0
    assert task.cancelled()
    assert result.report.overallScore == 80
    assert result.statistics.questionsAnswered == 1
    assert _drain_events(controller) == []
    session, exchanges = service.get_session(session_id, USER)
    assert session.overall_score == 80
    assert exchanges[1].user_answer_text is None
