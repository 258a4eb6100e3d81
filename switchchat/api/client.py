"""Async HTTP client for the chat API.

All endpoints live under ``/api``. Successful responses are parsed into the
models in ``switchchat.models``; every failure is raised as a
``ChatClientError`` so callers handle one exception family.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from switchchat.config import Settings, get_settings
from switchchat.errors import TransportError, server_error_from_response
from switchchat.models.catalog import ApiKeyStatus, ModelInfo, ModelsList
from switchchat.models.conversations import (
    Conversation,
    ConversationWithMessages,
    PaginatedConversations,
    PaginatedMessages,
)
from switchchat.models.messages import (
    BranchType,
    CreateConversationFromMessageCommand,
    Message,
    SendMessageCommand,
)

logger = logging.getLogger(__name__)

INVALID_RESPONSE_MESSAGE = "Received an invalid response from the server."


class ChatApiClient:
    """Thin async wrapper around the conversation, message and model endpoints.

    Usage:
        async with ChatApiClient() as api:
            models = await api.list_models()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        headers = {"Accept": "application/json"}
        if self.settings.auth_token:
            headers["Authorization"] = f"Bearer {self.settings.auth_token}"
        self._http = httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            headers=headers,
            timeout=self.settings.request_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._http.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed without a response: %s", method, path, exc)
            raise TransportError() from exc

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            error = server_error_from_response(
                response.status_code, body if isinstance(body, dict) else None
            )
            logger.warning(
                "%s %s returned %s: %s", method, path, response.status_code, error.message
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("%s %s returned a non-JSON body", method, path)
            raise TransportError(INVALID_RESPONSE_MESSAGE) from exc

    @staticmethod
    def _parse(model: Any, payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Unexpected %s payload: %s", model.__name__, exc)
            raise TransportError(INVALID_RESPONSE_MESSAGE) from exc

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def create_conversation(
        self, command: CreateConversationFromMessageCommand
    ) -> ConversationWithMessages:
        """Create a conversation seeded with its first message."""
        payload = await self._request(
            "POST", "/api/conversations", json=command.model_dump(mode="json")
        )
        return self._parse(ConversationWithMessages, payload)

    async def list_conversations(
        self, page: int = 1, page_size: Optional[int] = None
    ) -> PaginatedConversations:
        payload = await self._request(
            "GET",
            "/api/conversations",
            params={
                "page": page,
                "pageSize": page_size or self.settings.conversations_page_size,
            },
        )
        return self._parse(PaginatedConversations, payload)

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/api/conversations/{conversation_id}")

    async def create_branch(
        self, conversation_id: str, message_id: str, branch_type: BranchType
    ) -> Conversation:
        """Branch a conversation at ``message_id`` into a new conversation."""
        payload = await self._request(
            "POST",
            f"/api/conversations/{conversation_id}/messages/{message_id}/branch",
            json={"type": BranchType(branch_type).value},
        )
        return self._parse(Conversation, payload)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def append_message(
        self, conversation_id: str, command: SendMessageCommand
    ) -> list[Message]:
        """Append a message; the response holds the persisted user message
        and the generated assistant reply."""
        payload = await self._request(
            "POST",
            f"/api/conversations/{conversation_id}/messages",
            json=command.model_dump(mode="json"),
        )
        if not isinstance(payload, list):
            logger.warning("Append response is not a list of messages")
            raise TransportError(INVALID_RESPONSE_MESSAGE)
        return [self._parse(Message, item) for item in payload]

    async def list_messages(
        self, conversation_id: str, page: int = 1, page_size: Optional[int] = None
    ) -> PaginatedMessages:
        payload = await self._request(
            "GET",
            f"/api/conversations/{conversation_id}/messages",
            params={
                "page": page,
                "pageSize": page_size or self.settings.messages_page_size,
            },
        )
        return self._parse(PaginatedMessages, payload)

    # ------------------------------------------------------------------
    # Models / credentials
    # ------------------------------------------------------------------

    async def list_models(self) -> list[ModelInfo]:
        payload = await self._request("GET", "/api/models")
        return self._parse(ModelsList, payload).data

    async def get_api_key_status(self) -> ApiKeyStatus:
        payload = await self._request("GET", "/api/api-key")
        return self._parse(ApiKeyStatus, payload)
