"""Process-wide chat state shared across components.

``AppStore`` combines the conversation registry (known conversations, the
active conversation id, the last model used) with the model catalog. It is
passed explicitly to the dispatcher and UI collaborators rather than held
as a module global.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from switchchat.models.catalog import ModelInfo
from switchchat.models.conversations import Conversation

logger = logging.getLogger(__name__)

ActiveConversationListener = Callable[[Optional[str]], None]


class AppStore:
    """Shared conversation and model state.

    Setting ``active_conversation_id`` notifies subscribers, which is how the
    message list learns it must reload.
    """

    def __init__(self) -> None:
        self._active_conversation_id: Optional[str] = None
        self._conversations: list[Conversation] = []
        self._models: list[ModelInfo] = []
        self._listeners: list[ActiveConversationListener] = []
        self.last_used_model: Optional[str] = None
        self.api_key_exists: bool = False
        self.conversations_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Active conversation
    # ------------------------------------------------------------------

    @property
    def active_conversation_id(self) -> Optional[str]:
        return self._active_conversation_id

    def set_active_conversation(self, conversation_id: Optional[str]) -> None:
        """Change the active conversation and notify subscribers if it differs."""
        if conversation_id == self._active_conversation_id:
            return
        logger.debug(
            "Active conversation %s -> %s",
            self._active_conversation_id,
            conversation_id,
        )
        self._active_conversation_id = conversation_id
        for listener in list(self._listeners):
            listener(conversation_id)

    def subscribe(self, listener: ActiveConversationListener) -> Callable[[], None]:
        """Register ``listener`` for active-id changes; returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    def set_conversations(self, conversations: Iterable[Conversation]) -> None:
        """Replace the list with a freshly fetched page."""
        self._conversations = list(conversations)
        self.conversations_error = None

    def add_conversation(self, conversation: Conversation) -> None:
        """Prepend ``conversation`` (newest first) unless already known."""
        if self.conversation_exists(conversation.id):
            return
        self._conversations.insert(0, conversation)

    def remove_conversation(self, conversation_id: str) -> None:
        self._conversations = [c for c in self._conversations if c.id != conversation_id]

    def conversation_exists(self, conversation_id: str) -> bool:
        return any(c.id == conversation_id for c in self._conversations)

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    @property
    def models(self) -> list[ModelInfo]:
        return list(self._models)

    def set_models(self, models: Iterable[ModelInfo]) -> None:
        """Replace the catalog with the models the current credentials allow."""
        self._models = list(models)

    def clear_models(self) -> None:
        """Empty the catalog, e.g. after the API key was removed."""
        self._models = []

    def has_model(self, model_id: str) -> bool:
        return any(m.id == model_id for m in self._models)

    def set_last_used_model(self, model_id: str) -> None:
        """Remember the model of the last successful send."""
        self.last_used_model = model_id

    def default_model(self) -> Optional[str]:
        """Model the composer should pre-select, or None if nothing is selectable."""
        if self.last_used_model and self.has_model(self.last_used_model):
            return self.last_used_model
        if self._models:
            return self._models[0].id
        return None
