"""Message and command models exchanged with the chat API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageRole(str, Enum):
    """Message sender role."""

    USER = "user"
    ASSISTANT = "assistant"


class BranchType(str, Enum):
    """How much history a branch carries into the new conversation."""

    FULL = "full"
    SUMMARY = "summary"


class Message(BaseModel):
    """A message in the active conversation.

    Server-confirmed messages are immutable. Optimistic messages carry a
    temporary id and null token fields until reconciliation replaces them.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", protected_namespaces=())

    id: str
    role: MessageRole
    content: str
    created_at: datetime
    model_name: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None

    @classmethod
    def optimistic(cls, content: str, prefix: str) -> "Message":
        """Build a temporary user message for immediate rendering."""
        return cls(
            id=f"{prefix}{uuid4().hex}",
            role=MessageRole.USER,
            content=content,
            created_at=datetime.now(timezone.utc),
        )

    def is_temporary(self, prefix: str) -> bool:
        return self.id.startswith(prefix)


class SendMessageCommand(BaseModel):
    """Input to a send operation.

    The same body is posted whether it appends to an existing conversation
    or creates a new one from its first message.
    """

    content: str = Field(min_length=1)
    model: str = Field(min_length=1)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message content cannot be empty")
        return value


# Same wire shape; the server tells them apart by endpoint.
CreateConversationFromMessageCommand = SendMessageCommand
