"""Shared test fixtures for the chat client.

The chat API is faked in-process with a small FastAPI app and reached
through ``httpx.ASGITransport``, so the real ``ChatApiClient`` runs end to
end without a network.
"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from httpx import ASGITransport
from pydantic import BaseModel

from switchchat.api.client import ChatApiClient
from switchchat.config import Settings
from switchchat.session import ChatSession


class CommandBody(BaseModel):
    content: str
    model: str


class BranchBody(BaseModel):
    type: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeChatBackend:
    """In-memory chat API with failure injection."""

    def __init__(self) -> None:
        self.api_key = True
        self.models = [
            {"id": "m1", "name": "Model One"},
            {"id": "m2", "name": "Model Two"},
        ]
        self.conversations: list[dict[str, Any]] = []
        self.messages: dict[str, list[dict[str, Any]]] = {}
        self.requests: list[tuple[str, str]] = []
        self.next_error: Optional[Response] = None
        # When set, the append handler waits on it before answering.
        self.gate: Optional[asyncio.Event] = None
        self._counter = 0
        self.app = self._build_app()

    # ------------------------------------------------------------------
    # Helpers used by tests
    # ------------------------------------------------------------------

    def fail_with(self, status_code: int, message: str, errors: Optional[list] = None) -> None:
        body: dict[str, Any] = {"statusCode": status_code, "message": message}
        if errors is not None:
            body["errors"] = errors
        self.next_error = JSONResponse(body, status_code=status_code)

    def fail_raw(self, status_code: int, text: str) -> None:
        self.next_error = PlainTextResponse(text, status_code=status_code)

    def seed_conversation(self, title: str, contents: list[str]) -> str:
        conversation = self._new_conversation(title)
        for index, content in enumerate(contents):
            role = "user" if index % 2 == 0 else "assistant"
            self.messages[conversation["id"]].append(
                self._new_message(role, content, "m1" if role == "assistant" else None)
            )
        return conversation["id"]

    def calls(self, method: str, path: str) -> int:
        return self.requests.count((method, path))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter}"

    def _new_conversation(self, title: str, parent: Optional[str] = None) -> dict[str, Any]:
        conversation = {
            "id": self._next_id("c"),
            "title": title,
            "parent_conversation_id": parent,
            "created_at": _now(),
        }
        self.conversations.insert(0, conversation)
        self.messages[conversation["id"]] = []
        return conversation

    def _new_message(self, role: str, content: str, model: Optional[str]) -> dict[str, Any]:
        assistant = role == "assistant"
        return {
            "id": self._next_id("msg"),
            "role": role,
            "content": content,
            "created_at": _now(),
            "model_name": model if assistant else None,
            "prompt_tokens": 12 if assistant else None,
            "completion_tokens": 7 if assistant else None,
        }

    def _exchange(self, conversation_id: str, body: CommandBody) -> list[dict[str, Any]]:
        user = self._new_message("user", body.content, None)
        reply = self._new_message("assistant", f"echo: {body.content}", body.model)
        self.messages[conversation_id].extend([user, reply])
        return [user, reply]

    def _take_error(self) -> Optional[Response]:
        error, self.next_error = self.next_error, None
        return error

    @staticmethod
    def _page(items: list, page: int, page_size: int) -> dict[str, Any]:
        start = (page - 1) * page_size
        return {
            "data": items[start:start + page_size],
            "pagination": {"page": page, "pageSize": page_size, "total": len(items)},
        }

    @staticmethod
    def _not_found(message: str) -> JSONResponse:
        return JSONResponse({"statusCode": 404, "message": message}, status_code=404)

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.middleware("http")
        async def record(request: Request, call_next):
            backend.requests.append((request.method, request.url.path))
            return await call_next(request)

        @app.get("/api/api-key")
        async def api_key_status() -> dict[str, bool]:
            return {"exists": backend.api_key}

        @app.get("/api/models")
        async def list_models():
            if not backend.api_key:
                return backend._not_found("API key not found")
            return {"data": backend.models}

        @app.get("/api/conversations")
        async def list_conversations(page: int = 1, pageSize: int = 50):
            error = backend._take_error()
            if error is not None:
                return error
            return backend._page(backend.conversations, page, pageSize)

        @app.post("/api/conversations", status_code=201)
        async def create_conversation(body: CommandBody):
            error = backend._take_error()
            if error is not None:
                return error
            conversation = backend._new_conversation(body.content[:50])
            messages = backend._exchange(conversation["id"], body)
            return {"conversation": conversation, "messages": messages}

        @app.delete("/api/conversations/{conversation_id}")
        async def delete_conversation(conversation_id: str):
            if conversation_id not in backend.messages:
                return backend._not_found("Conversation not found")
            backend.conversations = [
                c for c in backend.conversations if c["id"] != conversation_id
            ]
            del backend.messages[conversation_id]
            return Response(status_code=204)

        @app.get("/api/conversations/{conversation_id}/messages")
        async def list_messages(conversation_id: str, page: int = 1, pageSize: int = 50):
            if conversation_id not in backend.messages:
                return backend._not_found("Conversation not found")
            return backend._page(backend.messages[conversation_id], page, pageSize)

        @app.post("/api/conversations/{conversation_id}/messages", status_code=201)
        async def append_message(conversation_id: str, body: CommandBody):
            if backend.gate is not None:
                await backend.gate.wait()
            error = backend._take_error()
            if error is not None:
                return error
            if conversation_id not in backend.messages:
                return backend._not_found("Conversation not found")
            return backend._exchange(conversation_id, body)

        @app.post(
            "/api/conversations/{conversation_id}/messages/{message_id}/branch",
            status_code=201,
        )
        async def create_branch(conversation_id: str, message_id: str, body: BranchBody):
            history = backend.messages.get(conversation_id)
            if history is None or not any(m["id"] == message_id for m in history):
                return backend._not_found("Message not found")
            cutoff = next(i for i, m in enumerate(history) if m["id"] == message_id)
            branch = backend._new_conversation("Branch", parent=conversation_id)
            backend.messages[branch["id"]] = [dict(m) for m in history[: cutoff + 1]]
            return branch

        return app


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url="http://test", auth_token="token-123")


@pytest.fixture
def backend() -> FakeChatBackend:
    return FakeChatBackend()


@pytest_asyncio.fixture
async def api(settings: Settings, backend: FakeChatBackend) -> AsyncGenerator[ChatApiClient, None]:
    """Chat API client talking to the in-process fake backend."""
    client = ChatApiClient(settings=settings, transport=ASGITransport(app=backend.app))
    yield client
    await client.close()


@pytest.fixture
def notifications() -> list[str]:
    """Messages the session surfaced to the user."""
    return []


@pytest_asyncio.fixture
async def session(
    api: ChatApiClient, settings: Settings, notifications: list[str]
) -> AsyncGenerator[ChatSession, None]:
    chat = ChatSession(api=api, settings=settings, on_error=notifications.append)
    yield chat
    await chat.close()
