"""
University Portal Agent - HTTP API

FastAPI application exposing the agent loop and its sessions:
- POST /agent/{category}            stream one agent request as NDJSON
- POST /sessions                    create a session (seeded with the greeting)
- GET  /sessions?category=...       list sessions, most recent first
- GET  /sessions/{id}/messages      full stored history of a session
- GET  /health                      gateway configuration status

Run with:
    uvicorn app:app --reload
"""

import asyncio
import logging
import queue
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from ai import flush, health_check
from config import LOG_LEVEL
from core.errors import MissingPromptError, SessionBusyError, SessionNotFoundError
from core.stream import EventType, encode_event
from services.chat_service import ChatRequest, ChatService
from services.personas import get_persona
from storage import ChatSession, StoredMessage

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"
STREAM_POLL_INTERVAL = 0.5  # seconds between disconnect checks


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Send buffered Langfuse traces before the process exits
    logger.info("👋 Shutting down, flushing traces")
    flush()


app = FastAPI(
    title="University Portal Agent",
    description="Academic-structure and reporting assistants over the portal's operations",
    version="1.0.0",
    lifespan=lifespan,
)

# ============================================================================
# SERVICE
# ============================================================================

_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Lazily build the shared ChatService (overridable in tests)."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service


# ============================================================================
# SCHEMAS
# ============================================================================

class AgentRequest(BaseModel):
    """Inbound agent request, camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    session_id: str = Field(..., alias="sessionId")
    prior_messages: Optional[List[Dict[str, Any]]] = Field(None, alias="priorMessages")
    title_requested: bool = Field(False, alias="titleRequested")


class CreateSessionRequest(BaseModel):
    category: str = Field(..., description="ACADEMIC, REPORT, or a persona route name")


class SessionOut(BaseModel):
    id: str
    category: str
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: ChatSession) -> "SessionOut":
        return cls(
            id=session.id,
            category=session.category.value,
            title=session.title,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class MessageOut(BaseModel):
    role: str
    parts: List[Dict[str, Any]]
    position: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_message(cls, message: StoredMessage) -> "MessageOut":
        return cls(
            role=message.role.value,
            parts=message.parts,
            position=message.position,
            created_at=message.created_at,
        )


def _resolve_category(category: str):
    try:
        return get_persona(category).category
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ============================================================================
# AGENT ROUTE
# ============================================================================

@app.post("/agent/{category}", name="agent_stream", summary="Stream one agent request")
async def agent_stream(
    category: str,
    body: AgentRequest,
    request: Request,
    service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """Run the agent loop and stream its events as newline-delimited JSON."""
    chat_request = ChatRequest(
        prompt=body.prompt,
        session_id=body.session_id,
        category=_resolve_category(category),
        prior_messages=body.prior_messages,
        title_requested=body.title_requested,
    )

    try:
        chat_stream = service.stream_turn(chat_request)
    except MissingPromptError as e:
        # Reported in-stream like any other agent error
        line = encode_event({"role": EventType.ERROR.value, "message": str(e)})
        return StreamingResponse(iter([line]), media_type=NDJSON_MEDIA_TYPE)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    async def event_lines():
        finished = False
        try:
            while True:
                if await request.is_disconnected():
                    logger.info(f"🔌 Client left session {chat_stream.session_id}")
                    break
                try:
                    line = await asyncio.to_thread(chat_stream.get, STREAM_POLL_INTERVAL)
                except queue.Empty:
                    continue
                if line is None:
                    finished = True
                    break
                yield line
        finally:
            if not finished:
                chat_stream.cancel()

    return StreamingResponse(event_lines(), media_type=NDJSON_MEDIA_TYPE)


# ============================================================================
# SESSION ROUTES
# ============================================================================

@app.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_session(body: CreateSessionRequest, service: ChatService = Depends(get_chat_service)) -> SessionOut:
    session = service.create_session(_resolve_category(body.category))
    return SessionOut.from_session(session)


@app.get("/sessions", response_model=List[SessionOut])
def list_sessions(
    category: str = Query(..., description="Session category"),
    service: ChatService = Depends(get_chat_service),
) -> List[SessionOut]:
    return [SessionOut.from_session(s) for s in service.list_sessions(_resolve_category(category))]


@app.get("/sessions/{session_id}/messages", response_model=List[MessageOut])
def get_messages(session_id: str, service: ChatService = Depends(get_chat_service)) -> List[MessageOut]:
    try:
        messages = service.load_messages(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return [MessageOut.from_message(m) for m in messages]


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok", **health_check()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=8000)
