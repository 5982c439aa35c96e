"""FastAPI application exposing document search and chat."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from docchat.chat.history import utc_timestamp
from docchat.chat.service import ChatService
from docchat.config import AppConfig
from docchat.index.search import Searcher
from docchat.ingestion.text_loader import DocumentLoadError

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="DocChat", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchPayload(BaseModel):
    query: str
    top_k: int = 5


class ChatPayload(BaseModel):
    message: str
    conversation_id: str | None = None
    use_web_search: bool = True
    maintain_history: bool = True


def build_services(config: AppConfig, base_dir: Path | None = None) -> tuple[Searcher, ChatService]:
    """Load the configured document and wire the chat service around it."""
    searcher = Searcher(
        chunk_size=config.chunk_size,
        chunk_overlap=config.chunk_overlap,
        weights=config.weights,
    )
    searcher.load_document(config.resolve_document_path(base_dir))
    chat = ChatService(searcher, top_k=config.top_k, min_score=config.min_score)
    return searcher, chat


def install_services(
    searcher: Searcher, chat: ChatService | None = None, config: AppConfig | None = None
) -> None:
    app.state.config = config or AppConfig()
    app.state.searcher = searcher
    app.state.chat = chat or ChatService(searcher)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if getattr(app.state, "searcher", None) is not None:
        return
    # A missing document aborts startup.
    config = AppConfig()
    searcher, chat = build_services(config, Path.cwd())
    install_services(searcher, chat, config)


def _searcher(request: Request) -> Searcher:
    searcher = getattr(request.app.state, "searcher", None)
    if searcher is None or not searcher.is_loaded:
        raise HTTPException(status_code=503, detail="No document loaded")
    return searcher


def _chat(request: Request) -> ChatService:
    _searcher(request)
    return request.app.state.chat


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "OK", "timestamp": utc_timestamp()}


@app.post("/api/search")
async def search_document(payload: SearchPayload, request: Request) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    top_k = max(1, min(payload.top_k, 50))
    results = _searcher(request).search(query, top_k=top_k)
    return {"results": [asdict(result) for result in results]}


@app.get("/api/sections")
async def list_sections(request: Request) -> dict[str, List[str]]:
    return {"sections": _searcher(request).get_sections()}


@app.get("/api/stats")
async def document_stats(request: Request) -> dict[str, Any]:
    searcher = _searcher(request)
    return {"stats": asdict(searcher.get_document_stats()), "top_words": searcher.top_words(10)}


@app.get("/api/chunks/{chunk_id}")
async def get_chunk(chunk_id: str, request: Request) -> dict[str, Any]:
    chunk = _searcher(request).get_chunk_by_id(chunk_id)
    if chunk is None:
        raise HTTPException(status_code=404, detail=f"Chunk {chunk_id} not found")
    return {"chunk": asdict(chunk)}


@app.post("/api/reload")
async def reload_document(request: Request) -> dict[str, Any]:
    """Re-read the configured document; queries keep using the old index until it is ready."""
    searcher: Searcher | None = getattr(request.app.state, "searcher", None)
    if searcher is None:
        raise HTTPException(status_code=503, detail="No document loaded")
    config = getattr(request.app.state, "config", None) or AppConfig()
    path = config.resolve_document_path(Path.cwd())
    try:
        await asyncio.to_thread(searcher.load_document, path)
    except DocumentLoadError as exc:
        LOGGER.error("Reload failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"status": "ok", "chunks": len(searcher.get_chunks())}


@app.post("/api/chat")
async def chat(payload: ChatPayload, request: Request) -> dict[str, Any]:
    if not payload.message.strip():
        raise HTTPException(status_code=400, detail="Message is required and cannot be empty")

    service = _chat(request)
    reply = await asyncio.to_thread(
        service.handle,
        payload.message,
        payload.conversation_id,
        use_web_search=payload.use_web_search,
        maintain_history=payload.maintain_history,
    )
    return asdict(reply)


@app.get("/api/chat/conversations")
async def list_conversations(request: Request) -> dict[str, Any]:
    service = _chat(request)
    return {"conversations": [asdict(item) for item in service.store.list_conversations()]}


@app.get("/api/chat/history/{conversation_id}")
async def conversation_history(conversation_id: str, request: Request) -> dict[str, Any]:
    store = _chat(request).store
    metadata = store.get_metadata(conversation_id)
    return {
        "conversation_id": conversation_id,
        "messages": [asdict(message) for message in store.get_messages(conversation_id)],
        "metadata": asdict(metadata) if metadata is not None else None,
    }


@app.delete("/api/chat/history/{conversation_id}")
async def clear_conversation(conversation_id: str, request: Request) -> dict[str, Any]:
    existed = _chat(request).store.delete(conversation_id)
    return {"success": True, "existed": existed, "message": "Conversation history cleared"}
