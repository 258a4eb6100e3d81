"""Result of a single send operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from switchchat.errors import ChatClientError
from switchchat.models.conversations import Conversation
from switchchat.models.messages import Message


@dataclass(frozen=True)
class SendOutcome:
    """Success carries the created conversation or the appended messages;
    failure carries the error that ended the send."""

    messages: list[Message] = field(default_factory=list)
    conversation: Optional[Conversation] = None
    error: Optional[ChatClientError] = None

    @classmethod
    def created(cls, conversation: Conversation, messages: list[Message]) -> "SendOutcome":
        return cls(messages=list(messages), conversation=conversation)

    @classmethod
    def appended(cls, messages: list[Message]) -> "SendOutcome":
        return cls(messages=list(messages))

    @classmethod
    def failed(cls, error: ChatClientError) -> "SendOutcome":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None
