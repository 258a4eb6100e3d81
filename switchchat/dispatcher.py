"""Send state machine: optimistic insert, network call, reconciliation.

A ``Dispatcher`` runs one send at a time (``idle -> sending -> idle``).

- Append path (a conversation is active): a temporary user message is
  appended to the transcript, the message is posted, and on success the
  temporary message is replaced by the persisted user message and the
  assistant reply.
- Create path (no active conversation): nothing is inserted locally. On
  success the new conversation is registered and made active; the active-id
  change is what makes the transcript load it.

Any failure removes the temporary message and returns a failed
``SendOutcome``. There is no automatic retry.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from switchchat.config import Settings, get_settings
from switchchat.errors import (
    ChatClientError,
    CommandValidationError,
    SendInProgressError,
    ServerError,
)
from switchchat.models.conversations import ConversationWithMessages
from switchchat.models.messages import Message, SendMessageCommand
from switchchat.models.outcomes import SendOutcome
from switchchat.state.message_list import MessageSink
from switchchat.state.store import AppStore

logger = logging.getLogger(__name__)

NO_MODELS_MESSAGE = "No models available. Add an API key to start chatting."


class SendApi(Protocol):
    async def create_conversation(
        self, command: SendMessageCommand
    ) -> ConversationWithMessages: ...

    async def append_message(
        self, conversation_id: str, command: SendMessageCommand
    ) -> list[Message]: ...


class Dispatcher:
    """Orchestrates a single send against the store and the transcript."""

    def __init__(
        self,
        store: AppStore,
        api: SendApi,
        messages: MessageSink,
        settings: Optional[Settings] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._store = store
        self._api = api
        self._messages = messages
        self._settings = settings or get_settings()
        self._on_error = on_error
        self._sending = False

    @property
    def is_sending(self) -> bool:
        """True strictly between the start and the resolution of ``send``."""
        return self._sending

    def validate(self, command: SendMessageCommand) -> None:
        """Raise ``CommandValidationError`` if ``command`` must not be sent."""
        if not command.content.strip():
            raise CommandValidationError("Message content cannot be empty")
        if len(command.content) > self._settings.max_message_chars:
            raise CommandValidationError(
                f"Message content cannot exceed {self._settings.max_message_chars} characters"
            )
        if not self._store.models:
            raise CommandValidationError(NO_MODELS_MESSAGE)
        if not self._store.has_model(command.model):
            raise CommandValidationError(f"Model {command.model!r} is not available")

    def can_send(self, command: SendMessageCommand) -> bool:
        """Whether the composer should enable its send control."""
        if self._sending:
            return False
        try:
            self.validate(command)
        except CommandValidationError:
            return False
        return True

    async def send(self, command: SendMessageCommand) -> SendOutcome:
        """Run one send and reconcile the transcript and the store.

        Returns a failed ``SendOutcome`` for validation, transport and server
        errors, after any optimistic message was removed. Raises
        ``SendInProgressError`` if a send is already in flight.
        """
        if self._sending:
            raise SendInProgressError()
        try:
            self.validate(command)
        except CommandValidationError as exc:
            self._notify(exc)
            return SendOutcome.failed(exc)

        self._sending = True
        conversation_id = self._store.active_conversation_id
        temp_message: Optional[Message] = None
        try:
            if conversation_id is None:
                return await self._create(command)

            temp_message = Message.optimistic(command.content, self._settings.temp_id_prefix)
            self._messages.append([temp_message])
            return await self._append(conversation_id, command, temp_message)
        except ChatClientError as exc:
            self._rollback(temp_message)
            status = exc.status_code if isinstance(exc, ServerError) else None
            logger.warning(
                "Send failed (conversation=%s, status=%s): %s",
                conversation_id,
                status,
                exc.message,
            )
            self._notify(exc)
            return SendOutcome.failed(exc)
        except BaseException:
            self._rollback(temp_message)
            raise
        finally:
            self._sending = False

    async def _create(self, command: SendMessageCommand) -> SendOutcome:
        logger.info("Creating conversation with model %s", command.model)
        result = await self._api.create_conversation(command)
        self._store.add_conversation(result.conversation)
        self._store.set_last_used_model(command.model)
        self._store.set_active_conversation(result.conversation.id)
        logger.info("Conversation %s created", result.conversation.id)
        return SendOutcome.created(result.conversation, result.messages)

    async def _append(
        self, conversation_id: str, command: SendMessageCommand, temp_message: Message
    ) -> SendOutcome:
        logger.info(
            "Sending message to conversation %s with model %s",
            conversation_id,
            command.model,
        )
        persisted = await self._api.append_message(conversation_id, command)
        self._messages.replace(temp_message.id, persisted)
        self._store.set_last_used_model(command.model)
        logger.info(
            "Conversation %s received %d messages", conversation_id, len(persisted)
        )
        return SendOutcome.appended(persisted)

    def _rollback(self, temp_message: Optional[Message]) -> None:
        if temp_message is not None:
            self._messages.remove(temp_message.id)

    def _notify(self, error: ChatClientError) -> None:
        if self._on_error is not None:
            self._on_error(error.message)
