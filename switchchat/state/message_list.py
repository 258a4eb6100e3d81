"""In-memory transcript of the active conversation.

``MessageList`` holds the messages of exactly one conversation (or none).
``load`` (``begin_load`` then ``finish_load``) is the only operation that
performs I/O; ``append``, ``replace``
and ``remove`` mutate the list synchronously and never introduce duplicate
ids. ``replace`` and ``remove`` are no-ops when the target id is absent,
so a send that resolves after the user switched conversations cannot
touch the newly loaded transcript.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional, Protocol, Sequence

from switchchat.models.conversations import PaginatedMessages
from switchchat.models.messages import Message

logger = logging.getLogger(__name__)


class MessageSink(Protocol):
    """Mutation capability the dispatcher needs from the transcript."""

    def append(self, messages: Sequence[Message]) -> None: ...

    def replace(self, old_id: str, messages: Sequence[Message]) -> bool: ...

    def remove(self, message_id: str) -> bool: ...


class MessagePageSource(Protocol):
    async def list_messages(
        self, conversation_id: str, page: int = 1, page_size: Optional[int] = None
    ) -> PaginatedMessages: ...


class MessageList:
    """Ordered, id-unique messages for the active conversation."""

    def __init__(self, source: MessagePageSource, page_size: Optional[int] = None) -> None:
        self._source = source
        self._page_size = page_size
        self._messages: list[Message] = []
        self._conversation_id: Optional[str] = None
        # Bumped on every switch so a superseded load never writes.
        self._generation = 0
        self.is_loading = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation_id

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def ids(self) -> list[str]:
        return [m.id for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __contains__(self, message_id: object) -> bool:
        return any(m.id == message_id for m in self._messages)

    # ------------------------------------------------------------------
    # Switching
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop everything, including any optimistic message, without I/O."""
        self._generation += 1
        self._messages = []
        self._conversation_id = None
        self.is_loading = False

    def begin_load(self, conversation_id: str) -> int:
        """Switch to ``conversation_id`` and flag the list as loading, without I/O.

        Returns the load generation to hand to ``finish_load``. Messages
        appended between the two calls are kept after the server history.
        """
        self._generation += 1
        self._messages = []
        self._conversation_id = conversation_id
        self.is_loading = True
        return self._generation

    async def finish_load(self, conversation_id: str, generation: int) -> list[Message]:
        """Fetch the first page and merge it ahead of messages appended meanwhile.

        A load superseded by a later ``begin_load`` or ``reset`` writes
        nothing. On failure the history stays empty and the
        ``ChatClientError`` propagates.
        """
        try:
            page = await self._source.list_messages(
                conversation_id, page=1, page_size=self._page_size
            )
        except Exception:
            if generation == self._generation:
                self.is_loading = False
            raise

        if generation != self._generation:
            logger.debug("Discarding stale load for conversation %s", conversation_id)
            return self.messages

        # An optimistic send may have started while the page was in flight.
        arrived = self._messages
        self._messages = []
        self._extend(page.data)
        self._extend(arrived)
        self.is_loading = False
        logger.debug(
            "Loaded %d messages for conversation %s", len(page.data), conversation_id
        )
        return self.messages

    async def load(self, conversation_id: Optional[str]) -> list[Message]:
        """Replace the list with the server's first page for ``conversation_id``.

        ``None`` clears the list without a network call.
        """
        if conversation_id is None:
            self.reset()
            return []
        return await self.finish_load(conversation_id, self.begin_load(conversation_id))
    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, messages: Sequence[Message]) -> None:
        self._extend(messages)

    def replace(self, old_id: str, messages: Sequence[Message]) -> bool:
        """Swap the message ``old_id`` for ``messages`` appended at the end.

        Returns False and changes nothing when ``old_id`` is not present.
        """
        index = self._index_of(old_id)
        if index is None:
            logger.debug("replace: message %s not present, ignoring", old_id)
            return False
        del self._messages[index]
        self._extend(messages)
        return True

    def remove(self, message_id: str) -> bool:
        index = self._index_of(message_id)
        if index is None:
            logger.debug("remove: message %s not present, ignoring", message_id)
            return False
        del self._messages[index]
        return True

    def _index_of(self, message_id: str) -> Optional[int]:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                return index
        return None

    def _extend(self, messages: Iterable[Message]) -> None:
        seen = {m.id for m in self._messages}
        for message in messages:
            if message.id in seen:
                logger.warning("Skipping duplicate message id %s", message.id)
                continue
            seen.add(message.id)
            self._messages.append(message)
