import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Form, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from .config import settings
from .errors import NothingToRetry, TransitionError, ValidationError
from .globals import session_store, templates, vocab_manager
from .scoring import format_time, should_celebrate
from .session import Phase, QuizSession

logger = logging.getLogger(__name__)

router = APIRouter()

NOTICES = {
    "nothing_to_retry": "No wrong answers to retry.",
}


# --- Dependencies ---
def get_session_id(
    session_id: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME)
) -> Optional[str]:
    return session_id


def _redirect(url: str, session_id: Optional[str] = None) -> RedirectResponse:
    redirect = RedirectResponse(url=url, status_code=302)
    if session_id:
        redirect.set_cookie(
            key=settings.SESSION_COOKIE_NAME,
            value=session_id,
            httponly=True,
            samesite="Lax",
        )
    return redirect


def _render_setup(
    request: Request,
    count: str = "",
    topic: str = "all",
    error: str = "",
    status_code: int = 200,
) -> HTMLResponse:
    context = {
        "topics": vocab_manager.get_topics(),
        "total_words": len(vocab_manager.entries),
        "load_error": vocab_manager.last_error,
        "count": count or str(settings.DEFAULT_COUNT),
        "topic": topic,
        "error": error,
    }
    return templates.TemplateResponse(
        request, "setup.html", context, status_code=status_code
    )


def _state(session: QuizSession) -> dict:
    result = session.result()
    return {
        "phase": session.phase.value,
        "selected_topic": session.selected_topic,
        "requested_count": session.requested_count,
        "total": len(session.questions),
        "answered_count": session.answered_count,
        "answers": {str(i): v for i, v in session.answers.items()},
        "submitted": session.submitted,
        "elapsed_seconds": session.elapsed_seconds,
        "empty_selection": session.empty_selection,
        "result": result.model_dump() if result else None,
    }


# --- Pages ---
@router.get("/", response_class=HTMLResponse)
async def home(request: Request, session_id: str = Depends(get_session_id)):
    session = session_store.get(session_id)
    if session and session.phase == Phase.TESTING:
        return _redirect("/quiz")
    return _render_setup(request)


@router.post("/start")
async def start_quiz(
    request: Request,
    count: str = Form(""),
    topic: str = Form("all"),
    session_id: str = Depends(get_session_id),
):
    session = session_store.get(session_id)
    if session is None:
        session_id = session_store.create()
        session = session_store.get(session_id)

    try:
        session.start(count, topic)
    except ValidationError as e:
        logger.info(f"Rejected start [count={count!r}]: {e}")
        response = _render_setup(request, count, topic, str(e), status_code=400)
        response.set_cookie(
            key=settings.SESSION_COOKIE_NAME,
            value=session_id,
            httponly=True,
            samesite="Lax",
        )
        return response
    return _redirect("/quiz", session_id)


@router.get("/quiz", response_class=HTMLResponse)
async def quiz_page(
    request: Request,
    notice: str = "",
    session_id: str = Depends(get_session_id),
):
    session = session_store.get(session_id)
    if not session or session.phase != Phase.TESTING:
        return _redirect("/")

    result = session.result()
    context = {
        "session": session,
        "questions": list(enumerate(session.questions)),
        "result": result,
        "elapsed": format_time(session.elapsed_seconds),
        "celebrate": bool(
            result
            and session.consume_celebration()
            and should_celebrate(result.percent, settings.CELEBRATION_THRESHOLD)
        ),
        "notice": NOTICES.get(notice, ""),
    }
    return templates.TemplateResponse(request, "quiz.html", context)


@router.post("/submit")
async def submit_quiz(session_id: str = Depends(get_session_id)):
    session = session_store.get(session_id)
    if not session:
        return _redirect("/")
    session.submit()
    return _redirect("/quiz")


@router.post("/retry")
async def retry_wrong(session_id: str = Depends(get_session_id)):
    session = session_store.get(session_id)
    if not session:
        return _redirect("/")
    try:
        session.retry_wrong()
    except NothingToRetry:
        return _redirect("/quiz?notice=nothing_to_retry")
    except TransitionError as e:
        logger.warning(f"Ignored retry: {e}")
    return _redirect("/quiz")


@router.post("/restart")
async def restart_quiz(session_id: str = Depends(get_session_id)):
    session = session_store.get(session_id)
    if not session:
        return _redirect("/")
    try:
        session.restart()
    except TransitionError:
        return _redirect("/")
    return _redirect("/quiz")


@router.post("/setup")
async def back_to_setup(session_id: str = Depends(get_session_id)):
    session = session_store.get(session_id)
    if session:
        session.back_to_setup()
    return _redirect("/")


# --- JSON API ---
@router.get("/api/topics")
async def get_topics():
    return [topic.model_dump() for topic in vocab_manager.get_topics()]


@router.get("/api/state")
async def get_state(session_id: str = Depends(get_session_id)):
    session = session_store.get(session_id)
    if not session:
        return JSONResponse({"error": "Session invalid"}, status_code=401)
    return _state(session)


@router.post("/api/answer")
async def select_option(
    index: int = Form(...),
    value: str = Form(...),
    session_id: str = Depends(get_session_id),
):
    session = session_store.get(session_id)
    if not session:
        return JSONResponse({"error": "Session invalid"}, status_code=401)
    applied = session.select_option(index, value)
    return {
        "applied": applied,
        "answered_count": session.answered_count,
        "total": len(session.questions),
    }


@router.post("/api/retry")
async def retry_wrong_api(session_id: str = Depends(get_session_id)):
    session = session_store.get(session_id)
    if not session:
        return JSONResponse({"error": "Session invalid"}, status_code=401)
    try:
        retried = session.retry_wrong()
    except NothingToRetry:
        return {"retried": 0, "nothing_to_retry": True}
    except TransitionError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    return {"retried": retried, "nothing_to_retry": False}


@router.post("/api/reload")
def reload_vocabulary():
    # Runs in the threadpool; load_all blocks on the fetch.
    loaded = vocab_manager.load_all()
    return {"entries": loaded, "error": vocab_manager.last_error}


@router.post("/api/reset")
async def reset_session(response: Response, session_id: str = Depends(get_session_id)):
    session_store.discard(session_id)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"status": "success"}
