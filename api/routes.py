"""FastAPI routes for mock interview sessions."""
from __future__ import annotations

import asyncio
import json
import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, WebSocket
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketDisconnect

from agents.types import Session
from api.schemas import (
    AnswerReq,
    AnswerResp,
    CompleteResp,
    CreateSessionReq,
    CreateSessionResp,
    LineResp,
    ReplyReq,
    SessionDetailResp,
    SessionSummary,
    TranscribeResp,
)
from audio.sampler import AudioLevelSampler
from audio.vad import open_source
from services.errors import AudioUnavailable, InterviewError
from services.sessions import ContextType, InterviewService, session_progress
from services.turns import VoiceTurnController
from session_reports import render_report_pdf

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mock")


def get_service() -> InterviewService:
    return InterviewService()


def _http_error(exc: InterviewError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": exc.message})


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except InterviewError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error in mock interview route")
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "Unable to process the interview request"},
        ) from exc


def _summary(session: Session) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        status=session.status,
        currentPhase=session.current_phase,
        durationMinutes=session.duration_minutes,
        jobTitle=session.job_title,
        companyName=session.company_name,
        overallScore=session.overall_score,
        createdAt=session.created_at,
        completedAt=session.completed_at,
    )


def _safe_slug(value: str) -> str:  # Sanitize value for filenames
    if not value:
        return ""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return re.sub(r"-+", "-", slug).strip("-")


@router.post("/sessions", response_model=CreateSessionResp)
def create_session(
    req: CreateSessionReq,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> CreateSessionResp:
    with _translate_errors():
        created = service.create_session(
            user_id,
            duration_minutes=req.durationMinutes,
            job_title=req.jobTitle,
            company_name=req.companyName,
            job_context=req.jobContext,
            resume_context=req.resumeContext,
            candidate_name=req.candidateName,
            voice_id=req.voiceId,
        )
    return CreateSessionResp(
        session=_summary(created.session),
        questions=created.questions,
        interviewerVoiceConfig=created.interviewer,
    )


@router.get("/sessions", response_model=List[SessionSummary])
def list_sessions(
    limit: int = Query(default=50, ge=1, le=200),
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> List[SessionSummary]:
    return [_summary(session) for session in service.list_sessions(user_id, limit=limit)]


@router.get("/sessions/{session_id}", response_model=SessionDetailResp)
def get_session(
    session_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> SessionDetailResp:
    with _translate_errors():
        session, exchanges = service.get_session(session_id, user_id)
    return SessionDetailResp(
        session=_summary(session),
        exchanges=exchanges,
        interviewer=session.interviewer,
        progress=session_progress(session),
        report=session.final_report,
    )


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(
    session_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> Response:
    with _translate_errors():
        service.delete_session(session_id, user_id)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/speak", response_model=LineResp)
def speak(
    session_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> LineResp:
    with _translate_errors():
        line = service.speak(session_id, user_id)
        session = service.store.load(session_id, user_id)
    return LineResp(phase=line.phase, text=line.text, question=line.question, progress=session_progress(session))


@router.post("/sessions/{session_id}/reply", response_model=LineResp)
def reply(
    session_id: str,
    req: ReplyReq,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> LineResp:
    with _translate_errors():
        line = service.reply(session_id, user_id, req.text)
        session = service.store.load(session_id, user_id)
    return LineResp(phase=line.phase, text=line.text, question=line.question, progress=session_progress(session))


@router.post("/sessions/{session_id}/transcribe", response_model=TranscribeResp)
async def transcribe_turn(
    session_id: str,
    request: Request,
    context_type: ContextType = Query(default="other", alias="contextType"),
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> TranscribeResp:
    audio = await request.body()
    mime_type = request.headers.get("content-type", "audio/wav")
    with _translate_errors():
        result = await run_in_threadpool(
            service.transcribe_turn,
            session_id,
            user_id,
            audio,
            mime_type=mime_type,
            context_type=context_type,
        )
    return TranscribeResp(
        transcript=result.transcript,
        words=result.words,
        confidence=result.confidence,
        metrics=result.metrics,
    )


@router.post("/sessions/{session_id}/answers", response_model=AnswerResp)
def submit_answer(
    session_id: str,
    req: AnswerReq,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> AnswerResp:
    with _translate_errors():
        result = service.submit_answer(
            session_id,
            user_id,
            req.questionId,
            req.transcript,
            words=req.words,
            confidence=req.confidence,
        )
        session = service.store.load(session_id, user_id)
    return AnswerResp(
        analysis=result.analysis,
        acknowledgement=result.acknowledgement,
        nextQuestion=result.next_question,
        sessionFinished=result.session_finished,
        progress=session_progress(session),
    )


@router.post("/sessions/{session_id}/complete", response_model=CompleteResp)
def complete_session(
    session_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> CompleteResp:
    with _translate_errors():
        result = service.complete_session(session_id, user_id)
    return CompleteResp(report=result.report, statistics=result.statistics, alreadyCompleted=result.already_completed)


@router.get("/sessions/{session_id}/report.pdf")
def report_pdf(
    session_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InterviewService = Depends(get_service),
) -> Response:
    with _translate_errors():
        session, exchanges = service.get_session(session_id, user_id)
    if session.final_report is None:
        raise HTTPException(
            status_code=409,
            detail={"code": "report_not_ready", "message": "Complete the session before downloading its report"},
        )
    payload = render_report_pdf(session, session.final_report, exchanges)
    role = _safe_slug(session.job_title) or "report"
    filename = f"{session.id}-{role}.pdf"
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}
    return Response(content=payload, media_type="application/pdf", headers=headers)


@router.websocket("/sessions/{session_id}/voice")
async def voice(websocket: WebSocket, session_id: str, service: InterviewService = Depends(get_service)) -> None:
    """Hands-free session: binary frames are 16-bit PCM, text frames are JSON commands.

    Commands: ``{"type": "start"}`` and ``{"type": "stop"}`` open and close a
    turn manually, ``{"type": "end"}`` ends the interview and returns the report.
    """

    user_id = websocket.headers.get("x-user-id") or websocket.query_params.get("userId") or ""
    await websocket.accept()
    try:
        controller = VoiceTurnController(service, session_id, user_id)
    except InterviewError as exc:
        await websocket.send_json({"type": "turn_error", "code": exc.code, "message": exc.message})
        await websocket.close(code=1008)
        return

    ended = False

    def command(raw: str) -> None:
        nonlocal ended
        try:
            kind = json.loads(raw).get("type")
        except (ValueError, AttributeError):
            kind = raw.strip()
        try:
            if kind == "start":
                controller.start_recording()
            elif kind == "stop":
                controller.stop_recording("requested")
            elif kind == "end":
                ended = True
                controller.stop_capture()
        except InterviewError as exc:
            controller.emit({"type": "turn_error", "code": exc.code, "message": exc.message})

    async def chunks():
        while not ended:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            data = message.get("bytes")
            if data:
                controller.feed(data)
                yield data
            elif message.get("text"):
                command(message["text"])

    async def pump() -> None:
        while True:
            event = await controller.events.get()
            await websocket.send_json(event)

    try:
        source = open_source(lambda: AudioLevelSampler(chunks(), sample_rate=controller.sample_rate))
    except AudioUnavailable as exc:
        await websocket.send_json({"type": "turn_error", "code": exc.code, "message": exc.message})
        await websocket.close(code=1011)
        return

    sender = asyncio.create_task(pump())
    handle = controller.listen(source)
    outcome: Optional[Dict[str, Any]] = None
    try:
        try:
            await handle.wait()
        except AudioUnavailable as exc:
            # Ending before calibration finished is not an audio failure.
            if not ended:
                controller.emit({"type": "turn_error", "code": exc.code, "message": exc.message})
        except InterviewError as exc:
            controller.emit({"type": "turn_error", "code": exc.code, "message": exc.message})
        if ended:
            # The turn still being analyzed is abandoned; the report covers recorded answers.
            try:
                result = await controller.end_session()
            except InterviewError as exc:
                controller.emit({"type": "turn_error", "code": exc.code, "message": exc.message})
            else:
                outcome = {"type": "session_ended", "report": result.report.model_dump()}
        else:
            await controller.drain()
    finally:
        controller.close()
        sender.cancel()
        try:
            while not controller.events.empty():
                await websocket.send_json(controller.events.get_nowait())
            if outcome is not None:
                await websocket.send_json(outcome)
            await websocket.close()
        except (WebSocketDisconnect, RuntimeError):
            logger.info("Voice socket closed before flush session=%s", session_id)
