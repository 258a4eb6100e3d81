"""Conversation models for list views and creation responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from switchchat.models.messages import Message


class Conversation(BaseModel):
    """Conversation summary metadata. Messages are fetched separately."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    title: Optional[str] = None
    parent_conversation_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ConversationWithMessages(BaseModel):
    """Response of the create-conversation endpoint."""

    conversation: Conversation
    messages: list[Message] = Field(default_factory=list)


class Pagination(BaseModel):
    """Pagination metadata returned by list endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    page_size: int = Field(alias="pageSize")
    total: int


class PaginatedMessages(BaseModel):
    data: list[Message]
    pagination: Pagination


class PaginatedConversations(BaseModel):
    data: list[Conversation]
    pagination: Pagination
