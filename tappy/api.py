"""
HTTP surface for the chat widget.

POST /api/chat   {message, session_id?, context?, reset?} -> {session_id, reply}
GET  /health     corpus size and status

The session id is an opaque token: taken from the request body or the
session cookie, minted with uuid4 when absent, and echoed back in both.
"""

import asyncio
import contextlib
import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from tappy.config import settings
from tappy.conversation.router import IntentRouter, InvalidMessageError
from tappy.fallback.cache import CompletionCache
from tappy.fallback.completion import OpenAICompletion
from tappy.knowledge.corpus import FaqCorpus
from tappy.prompts import reply_templates as replies
from tappy.schemas.reply_schema import ChatRequest, ChatResponse
from tappy.storage.lead_store import JsonlLeadStore
from tappy.storage.session_store import JsonFileStore, SessionStore, build_session_store

logger = logging.getLogger(__name__)


def build_router() -> IntentRouter:
    """Wire the router from configuration: corpus files, stores, cache and fallback."""
    corpus = FaqCorpus.from_files(settings.data.faq_files())
    fallback = OpenAICompletion() if settings.fallback.enabled else None
    cache = None
    if settings.fallback.enabled and settings.fallback.cache_enabled:
        cache = CompletionCache(JsonFileStore(Path(settings.data.completion_cache_path)))
    return IntentRouter(
        corpus=corpus,
        sessions=build_session_store(),
        leads=JsonlLeadStore(Path(settings.data.leads_path)),
        fallback=fallback,
        cache=cache,
    )


async def _sweep_forever(sessions: SessionStore, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(sessions.sweep_expired)
        except Exception:
            logger.exception("Session sweep failed")


def create_app(router: Optional[IntentRouter] = None) -> FastAPI:
    """Build the FastAPI app. Pass a router to inject test doubles."""
    chat_router = router or build_router()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        await asyncio.to_thread(chat_router.sessions.sweep_expired)
        task = asyncio.create_task(
            _sweep_forever(chat_router.sessions, settings.session.sweep_interval_sec)
        )
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title=f"{settings.business.assistant_name} FAQ Assistant", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.state.router = chat_router

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(body: ChatRequest, request: Request, response: Response) -> ChatResponse:
        session_id = (
            body.session_id
            or request.cookies.get(settings.session.cookie_name)
            or uuid.uuid4().hex
        )
        response.set_cookie(
            settings.session.cookie_name, session_id, httponly=True, samesite="lax"
        )

        if body.reset:
            await asyncio.to_thread(chat_router.reset_session, session_id)
            return ChatResponse(session_id=session_id, reply=replies.greeting_reply())

        try:
            reply = await chat_router.handle_message(body.message, session_id, body.context)
        except InvalidMessageError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return ChatResponse(session_id=session_id, reply=reply)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "faq_records": len(chat_router.corpus)}

    return app
