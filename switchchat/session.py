"""Chat session wiring the store, the transcript and the dispatcher.

``ChatSession`` is what a UI talks to. It owns one ``AppStore``, one
``MessageList`` and one ``Dispatcher``, and reloads the transcript whenever
the store's active conversation changes:

    session = ChatSession()
    await session.initialize()
    session.select_conversation(conversation_id)
    await session.wait_for_messages()
    outcome = await session.send(SendMessageCommand(content="hi", model="m1"))
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from switchchat.api.client import ChatApiClient
from switchchat.config import Settings, get_settings
from switchchat.dependencies import close_api_client, get_api_client
from switchchat.dispatcher import Dispatcher
from switchchat.errors import ChatClientError
from switchchat.models.conversations import Conversation
from switchchat.models.messages import BranchType, Message, SendMessageCommand
from switchchat.models.outcomes import SendOutcome
from switchchat.state.message_list import MessageList
from switchchat.state.store import AppStore

logger = logging.getLogger(__name__)


class ChatSession:
    """Cross-component coordinator for one signed-in client."""

    def __init__(
        self,
        api: Optional[ChatApiClient] = None,
        settings: Optional[Settings] = None,
        store: Optional[AppStore] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_api = api is None
        self.api = api or get_api_client()
        self.store = store or AppStore()
        self.message_list = MessageList(self.api, page_size=self.settings.messages_page_size)
        self.dispatcher = Dispatcher(
            self.store,
            self.api,
            self.message_list,
            settings=self.settings,
            on_error=on_error,
        )
        self.messages_error: Optional[str] = None
        self._on_error = on_error
        self._load_task: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()
        self._initialized = False
        self._unsubscribe = self.store.subscribe(self._on_active_conversation_changed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Fetch credential status, models and conversations concurrently."""
        if self._initialized:
            logger.debug("ChatSession already initialized - skipping")
            return
        await asyncio.gather(
            self.refresh_api_key_status(),
            self.refresh_models(),
            self.refresh_conversations(),
        )
        self._initialized = True
        logger.info(
            "Session ready: %d models, %d conversations",
            len(self.store.models),
            len(self.store.conversations),
        )

    async def close(self) -> None:
        """Stop reacting to switches, cancel pending loads and release the client."""
        self._unsubscribe()
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._owns_api:
            await close_api_client()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the active transcript."""
        return self.message_list.messages

    @property
    def is_sending(self) -> bool:
        """True while a send is in flight; the composer stays disabled."""
        return self.dispatcher.is_sending

    @property
    def pending_messages(self) -> list[Message]:
        """Optimistic messages still waiting for the server."""
        prefix = self.settings.temp_id_prefix
        return [m for m in self.message_list.messages if m.is_temporary(prefix)]

    # ------------------------------------------------------------------
    # Active conversation
    # ------------------------------------------------------------------

    def select_conversation(self, conversation_id: Optional[str]) -> None:
        """Make ``conversation_id`` active; ``None`` starts a new conversation.

        Must be called from the running event loop, which runs the
        transcript load. The list is cleared and flagged as loading before
        this returns.
        """
        if conversation_id is not None:
            _require_running_loop()
        self.store.set_active_conversation(conversation_id)

    async def wait_for_messages(self) -> list[Message]:
        """Wait for the most recent transcript load to finish."""
        if self._load_task is not None:
            await asyncio.gather(self._load_task, return_exceptions=True)
        return self.message_list.messages

    def _on_active_conversation_changed(self, conversation_id: Optional[str]) -> None:
        self.messages_error = None
        if conversation_id is None:
            self.message_list.reset()
            self._load_task = None
            return
        loop = _require_running_loop()
        generation = self.message_list.begin_load(conversation_id)
        task = loop.create_task(self._load_messages(conversation_id, generation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        self._load_task = task

    async def _load_messages(self, conversation_id: str, generation: int) -> None:
        try:
            await self.message_list.finish_load(conversation_id, generation)
        except ChatClientError as exc:
            logger.warning("Failed to load messages for %s: %s", conversation_id, exc.message)
            if self.store.active_conversation_id == conversation_id:
                self.messages_error = exc.message
                self._notify(exc.message)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(self, command: SendMessageCommand) -> SendOutcome:
        """Send ``command`` to the active conversation, or create one."""
        return await self.dispatcher.send(command)

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def refresh_conversations(self) -> None:
        """Fetch the first page of conversations; failures are recorded, not raised."""
        try:
            page = await self.api.list_conversations(
                page_size=self.settings.conversations_page_size
            )
        except ChatClientError as exc:
            logger.warning("Failed to load conversations: %s", exc.message)
            self.store.conversations_error = exc.message
            self._notify("Failed to load conversations")
            return
        self.store.set_conversations(page.data)

    async def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation; returns False and notifies on failure."""
        try:
            await self.api.delete_conversation(conversation_id)
        except ChatClientError as exc:
            logger.warning("Failed to delete conversation %s: %s", conversation_id, exc.message)
            self._notify("Failed to delete conversation")
            return False
        self.store.remove_conversation(conversation_id)
        if self.store.active_conversation_id == conversation_id:
            self.store.set_active_conversation(None)
        logger.info("Conversation %s deleted", conversation_id)
        return True

    async def create_branch(
        self, message_id: str, branch_type: BranchType = BranchType.FULL
    ) -> Optional[Conversation]:
        """Branch the active conversation at ``message_id`` and switch to it."""
        conversation_id = self.store.active_conversation_id
        if conversation_id is None:
            self._notify("Open a conversation before branching")
            return None
        try:
            branch = await self.api.create_branch(conversation_id, message_id, branch_type)
        except ChatClientError as exc:
            logger.warning("Failed to branch %s at %s: %s", conversation_id, message_id, exc.message)
            self._notify(exc.message)
            return None
        self.store.add_conversation(branch)
        self.store.set_active_conversation(branch.id)
        logger.info("Branched %s into %s (%s)", conversation_id, branch.id, branch_type)
        return branch

    # ------------------------------------------------------------------
    # Models / credentials
    # ------------------------------------------------------------------

    async def refresh_models(self) -> None:
        """Reload the model catalog for the current credentials."""
        # Credential-gated: any failure means nothing is selectable.
        try:
            models = await self.api.list_models()
        except ChatClientError as exc:
            logger.info("Model list unavailable: %s", exc.message)
            self.store.clear_models()
            return
        self.store.set_models(models)

    async def refresh_api_key_status(self) -> None:
        """Check whether an API key is stored for the user."""
        try:
            status = await self.api.get_api_key_status()
        except ChatClientError as exc:
            logger.info("API key status unavailable: %s", exc.message)
            self.store.api_key_exists = False
            return
        self.store.api_key_exists = status.exists

    async def on_credentials_saved(self) -> None:
        """Re-read key status and models after a key was added or changed."""
        await asyncio.gather(self.refresh_api_key_status(), self.refresh_models())

    def on_credentials_revoked(self) -> None:
        """Forget the catalog once the key is gone; nothing is selectable."""
        self.store.api_key_exists = False
        self.store.clear_models()

    def _notify(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)


def _require_running_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError as exc:
        raise RuntimeError(
            "Switching to a conversation needs a running event loop to load its messages"
        ) from exc
