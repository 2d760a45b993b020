"""Tutoring session API — lessons, turns, topics and study materials.

Endpoints (all under ``/api/sessions``):

- ``POST   /``                                 — start a session on a topic
- ``DELETE /{sid}``                            — end a session
- ``GET|PUT /{sid}/snapshot``                  — read / restore the session view
- ``POST   /{sid}/turns``                      — one learner turn
- ``POST   /{sid}/slides/next``                — advance the lesson
- ``PUT    /{sid}/slides/{index}/image``       — attach a rendered slide image
- ``PUT    /{sid}/notebook``                   — notes for the active topic
- ``GET    /{sid}/topics``                     — topic listing
- ``GET    /{sid}/topics/active``              — the active topic
- ``GET    /{sid}/topics/{tid}/content``       — study artifacts of a topic
- ``GET    /{sid}/topics/{tid}/knowledge``     — knowledge base of a topic
- ``PUT    /{sid}/topics/{tid}/video``         — attach a rendered topic video
- ``POST   /{sid}/topics/{tid}/flashcards|quiz|exam`` — on-demand materials
- ``POST   /{sid}/topics/{tid}/exam/grade``    — grade a submitted exam

Unknown sessions map to 404.  A failed synthesis or material generation
maps to 502; every other failure inside a turn degrades silently.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from errors.exceptions import MaterialGenerationError, SessionNotFoundError, SynthesisError
from models.session import SessionSnapshot, SessionStarted
from models.study import (
    ExamFeedback,
    ExamResponse,
    ExamSubmission,
    FlashcardsResponse,
    GenerateMaterialsRequest,
    NotebookUpdate,
    QuizResponse,
    SlideImageUpdate,
    StartSessionRequest,
    TopicVideoUpdate,
)
from models.topic import Topic, TopicContent, TopicSummary
from models.turn import TurnRequest, TurnResponse
from services.session_registry import SessionController, get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _get_session(session_id: str) -> SessionController:
    try:
        return get_session_registry().get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def _require_topic(session: SessionController, topic_id: str) -> Topic:
    topic = session.get_topic(topic_id)
    if topic is None:
        raise HTTPException(status_code=404, detail=f"Topic '{topic_id}' not found")
    return topic


# ── Lifecycle ────────────────────────────────────────────────


@router.post("", response_model=SessionStarted)
async def start_session(req: StartSessionRequest):
    try:
        session = await get_session_registry().create(req.topic)
    except MaterialGenerationError as e:
        logger.exception("Failed to start lesson on %r", req.topic)
        raise HTTPException(status_code=502, detail=f"Failed to start the lesson: {e}") from e
    return SessionStarted(session_id=session.session_id, snapshot=session.get_session_snapshot())


@router.delete("/{session_id}")
async def end_session(session_id: str):
    if not get_session_registry().delete(session_id):
        raise HTTPException(status_code=404, detail=f"session '{session_id}' not found")
    return {"deleted": True}


@router.get("/{session_id}/snapshot", response_model=SessionSnapshot | None)
async def get_snapshot(session_id: str):
    return _get_session(session_id).get_session_snapshot()


@router.put("/{session_id}/snapshot", response_model=SessionSnapshot)
async def put_snapshot(session_id: str, snapshot: SessionSnapshot):
    session = _get_session(session_id)
    session.set_session_snapshot(snapshot)
    return session.get_session_snapshot()


# ── Turns & lesson flow ──────────────────────────────────────


@router.post("/{session_id}/turns", response_model=TurnResponse)
async def post_turn(session_id: str, req: TurnRequest):
    session = _get_session(session_id)
    try:
        result = await session.process_turn(req)
    except SynthesisError as e:
        raise HTTPException(
            status_code=502,
            detail="Sorry, I encountered an error coordinating the agents.",
        ) from e
    return TurnResponse(response_message=result.response, shift_info=result.shift_info)


@router.post("/{session_id}/slides/next", response_model=SessionSnapshot)
async def next_slide(session_id: str):
    session = _get_session(session_id)
    try:
        return await session.next_slide()
    except MaterialGenerationError as e:
        logger.exception("Failed to generate next slide for session %s", session_id)
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.put("/{session_id}/slides/{index}/image", response_model=SessionSnapshot)
async def put_slide_image(session_id: str, index: int, req: SlideImageUpdate):
    snapshot = _get_session(session_id).set_slide_image(index, req.image_url)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Slide {index} not found")
    return snapshot


@router.put("/{session_id}/notebook", response_model=Topic)
async def put_notebook(session_id: str, req: NotebookUpdate):
    topic = _get_session(session_id).update_notebook(req.content)
    if topic is None:
        raise HTTPException(status_code=409, detail="No active topic")
    return topic


# ── Topics ───────────────────────────────────────────────────


@router.get("/{session_id}/topics", response_model=list[TopicSummary])
async def list_topics(session_id: str):
    return [TopicSummary.from_topic(t) for t in _get_session(session_id).list_topics()]


@router.get("/{session_id}/topics/active", response_model=Topic | None)
async def get_active_topic(session_id: str):
    return _get_session(session_id).get_active_topic()


@router.get("/{session_id}/topics/{topic_id}/content", response_model=TopicContent)
async def get_topic_content(session_id: str, topic_id: str):
    return _get_session(session_id).get_topic_content(topic_id)


@router.get("/{session_id}/topics/{topic_id}/knowledge")
async def get_knowledge(session_id: str, topic_id: str):
    return {
        "topicId": topic_id,
        "knowledgeBase": _get_session(session_id).get_knowledge_base(topic_id),
    }


@router.put("/{session_id}/topics/{topic_id}/video", response_model=Topic)
async def put_topic_video(session_id: str, topic_id: str, req: TopicVideoUpdate):
    session = _get_session(session_id)
    _require_topic(session, topic_id)
    return session.set_topic_video(topic_id, req.video_uri)


# ── Study materials ──────────────────────────────────────────


@router.post("/{session_id}/topics/{topic_id}/flashcards", response_model=FlashcardsResponse)
async def flashcards(session_id: str, topic_id: str, req: GenerateMaterialsRequest | None = None):
    session = _get_session(session_id)
    _require_topic(session, topic_id)
    try:
        cards = await session.flashcards(topic_id, regenerate=bool(req and req.regenerate))
    except MaterialGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return FlashcardsResponse(topic_id=topic_id, flashcards=cards)


@router.post("/{session_id}/topics/{topic_id}/quiz", response_model=QuizResponse)
async def quiz(session_id: str, topic_id: str, req: GenerateMaterialsRequest | None = None):
    session = _get_session(session_id)
    _require_topic(session, topic_id)
    try:
        questions = await session.quiz(topic_id, regenerate=bool(req and req.regenerate))
    except MaterialGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return QuizResponse(topic_id=topic_id, quizzes=questions)


@router.post("/{session_id}/topics/{topic_id}/exam", response_model=ExamResponse)
async def exam(session_id: str, topic_id: str, req: GenerateMaterialsRequest | None = None):
    session = _get_session(session_id)
    _require_topic(session, topic_id)
    try:
        questions = await session.exam(topic_id, regenerate=bool(req and req.regenerate))
    except MaterialGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return ExamResponse(topic_id=topic_id, exam_questions=questions)


@router.post("/{session_id}/topics/{topic_id}/exam/grade", response_model=ExamFeedback)
async def grade_exam(session_id: str, topic_id: str, submission: ExamSubmission):
    session = _get_session(session_id)
    _require_topic(session, topic_id)
    return await session.grade_exam(topic_id, submission.answers)
