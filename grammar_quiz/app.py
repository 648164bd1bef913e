"""FastAPI application with all routes."""
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse

from grammar_quiz.config import Settings, load_settings, save_settings
from grammar_quiz.models import ALL, Difficulty, GrammarPoint, QuizFilter
from grammar_quiz.providers import create_llm
from grammar_quiz.session import Phase, QuizSession, TransitionError

app = FastAPI(title="Grammar Quiz")

# Global state (initialized in startup)
_settings: Settings | None = None
_active_sessions: OrderedDict[str, QuizSession] = OrderedDict()  # least recently used first

_log = logging.getLogger("grammar_quiz.web")

DIFFICULTY_LABELS = {
    ALL: "All Levels / 全部难度",
    Difficulty.BEGINNER.value: "Beginner / 初级",
    Difficulty.INTERMEDIATE.value: "Intermediate / 中级",
    Difficulty.ADVANCED.value: "Advanced / 高级",
}

CATEGORY_LABELS = {
    ALL: "All Categories / 全部类别",
    GrammarPoint.NON_FINITE.value: "Non-finite Verbs / 非谓语动词",
    GrammarPoint.RELATIVE_CLAUSE.value: "Relative Clauses / 定语从句",
    GrammarPoint.ADVERBIAL_CLAUSE.value: "Adverbial Clauses / 状语从句",
    GrammarPoint.INVERSION.value: "Inversion / 倒装句",
    GrammarPoint.SUBJUNCTIVE.value: "Subjunctive Mood / 虚拟语气",
    GrammarPoint.CONJUNCTIONS.value: "Conjunctions / 连词",
}

POSITIVE_INT_SETTINGS = ("batch_size", "max_sessions")


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_llm():
    return create_llm(get_settings())


def _get_session(session_id: str) -> QuizSession:
    session = _active_sessions.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
    _active_sessions.move_to_end(session_id)
    return session


def _parse_filter(body: dict) -> QuizFilter:
    try:
        return QuizFilter.parse(body.get("difficulty"), body.get("category"))
    except ValueError as e:
        raise HTTPException(400, str(e))


async def _read_body(request: Request) -> dict:
    return await request.json() if await request.body() else {}


def _remember(session_id: str, session: QuizSession) -> None:
    """Track a new session, dropping the least recently used beyond ``max_sessions``."""
    _active_sessions[session_id] = session
    limit = max(get_settings().max_sessions, 1)
    while len(_active_sessions) > limit:
        oldest = next(iter(_active_sessions))
        _log.info("Evicting session %s", oldest)
        del _active_sessions[oldest]


def _render_state(session_id: str, session: QuizSession) -> dict:
    """Everything the page needs to draw the current screen."""
    total = session.batch_size
    if session.questions:
        # A short batch ends early
        total = min(total, len(session.questions))
    state: dict = {
        "session_id": session_id,
        "phase": session.phase.value,
        "filter": session.quiz_filter.to_dict(),
        "error": session.error,
        "question": None,
        "selected_option": session.selected_option,
        "submitted": session.submitted,
        "explanation_pending": session.explanation_pending,
        "ai_explanation": session.ai_explanation,
        "progress": {
            "current": session.current_index + 1,
            "total": total,
            "answered": len(session.answers),
        },
        "result": None,
    }

    q = session.current_question
    if q is not None:
        question = {
            "id": q.id,
            "sentence_before": q.sentence_before,
            "sentence_after": q.sentence_after,
            "options": q.options,
            "difficulty": q.difficulty.value,
            "difficulty_label": DIFFICULTY_LABELS[q.difficulty.value],
            "category": q.category.value,
            "category_label": CATEGORY_LABELS[q.category.value],
        }
        # Don't leak the answer before the learner commits
        if session.submitted:
            answer = session.last_answer
            question["correct_answer"] = q.correct_answer
            question["is_correct"] = answer.is_correct if answer else None
            question["explanation"] = {
                "rule": q.explanation.rule,
                "examples": q.explanation.examples,
                "common_errors": q.explanation.common_errors,
            }
        state["question"] = question

    if session.phase == Phase.RESULT:
        score = session.score()
        state["result"] = {
            "correct": score.correct,
            "total": score.total,
            "accuracy": score.accuracy,
            "encouragement": score.encouragement,
        }
    return state


@app.on_event("startup")
async def startup():
    global _settings
    if _settings is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()


# ── Static files ──────────────────────────────────────────────────────────

static_dir = Path(__file__).parent / "static"


@app.get("/")
async def index():
    return FileResponse(static_dir / "index.html")


@app.get("/style.css")
async def style():
    return FileResponse(static_dir / "style.css", media_type="text/css")


@app.get("/app.js")
async def script():
    return FileResponse(static_dir / "app.js", media_type="application/javascript")


# ── API: Filter options ───────────────────────────────────────────────────

@app.get("/api/options")
async def api_options():
    return {
        "difficulties": [{"value": k, "label": v} for k, v in DIFFICULTY_LABELS.items()],
        "categories": [{"value": k, "label": v} for k, v in CATEGORY_LABELS.items()],
        "batch_size": get_settings().batch_size,
    }


# ── API: Session lifecycle ────────────────────────────────────────────────

@app.post("/api/session/start")
async def api_session_start(request: Request):
    body = await _read_body(request)
    quiz_filter = _parse_filter(body)

    session_id = uuid.uuid4().hex
    session = QuizSession(_get_llm(), get_settings(), quiz_filter)
    _remember(session_id, session)
    await session.load()
    return _render_state(session_id, session)


@app.get("/api/session/{session_id}")
async def api_session_state(session_id: str):
    return _render_state(session_id, _get_session(session_id))


@app.put("/api/session/{session_id}/filter")
async def api_session_filter(session_id: str, request: Request):
    session = _get_session(session_id)
    quiz_filter = _parse_filter(await _read_body(request))
    await session.set_filter(quiz_filter)
    return _render_state(session_id, session)


@app.post("/api/session/{session_id}/retry")
async def api_session_retry(session_id: str):
    session = _get_session(session_id)
    try:
        await session.retry()
    except TransitionError as e:
        raise HTTPException(409, str(e))
    return _render_state(session_id, session)


@app.post("/api/session/{session_id}/new-batch")
async def api_session_new_batch(session_id: str):
    session = _get_session(session_id)
    try:
        await session.start_new_batch()
    except TransitionError as e:
        raise HTTPException(409, str(e))
    return _render_state(session_id, session)


# ── API: Answering ────────────────────────────────────────────────────────

@app.post("/api/session/{session_id}/select")
async def api_session_select(session_id: str, request: Request):
    session = _get_session(session_id)
    body = await _read_body(request)
    option = body.get("option")
    if not isinstance(option, str):
        raise HTTPException(400, "No option provided")
    try:
        session.select(option)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return _render_state(session_id, session)


@app.post("/api/session/{session_id}/submit")
async def api_session_submit(session_id: str):
    session = _get_session(session_id)
    session.submit()
    return _render_state(session_id, session)


@app.post("/api/session/{session_id}/explain")
async def api_session_explain(session_id: str):
    session = _get_session(session_id)
    await session.resolve_explanation()
    return _render_state(session_id, session)


@app.post("/api/session/{session_id}/next")
async def api_session_next(session_id: str):
    session = _get_session(session_id)
    try:
        session.next()
    except TransitionError as e:
        raise HTTPException(409, str(e))
    return _render_state(session_id, session)


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k in POSITIVE_INT_SETTINGS:
        v = body.get(k, getattr(s, k))
        if isinstance(v, bool) or not isinstance(v, int) or v < 1:
            raise HTTPException(400, f"{k} must be a positive integer")
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
