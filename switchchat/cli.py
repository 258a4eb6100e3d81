"""Line-oriented terminal client.

Run with:
    switchchat-cli

Commands: /new, /open <id>, /list, /models, /model <id>, /delete <id>,
/branch <message-id> [full|summary], /quit. Any other line is sent.
"""

import asyncio
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from switchchat.config import settings
from switchchat.errors import SendInProgressError
from switchchat.models.messages import BranchType, Message, SendMessageCommand
from switchchat.session import ChatSession

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _print_error(message: str) -> None:
    print(f"! {message}", file=sys.stderr)


def _print_message(message: Message) -> None:
    speaker = message.role.value
    if message.is_temporary(settings.temp_id_prefix):
        speaker = f"{speaker} (sending)"
    if message.model_name:
        speaker = f"{speaker} ({message.model_name})"
    print(f"[{message.id}] {speaker}: {message.content}")


class ChatShell:
    """Reads commands from stdin and drives a ``ChatSession``."""

    def __init__(self, session: ChatSession) -> None:
        self.session = session
        self.model: Optional[str] = None

    async def run(self) -> None:
        self.model = self.session.store.default_model()
        if self.model is None:
            _print_error("No models available. Add an API key to start chatting.")
        while True:
            line = await asyncio.to_thread(input, "> ")
            line = line.strip()
            if not line:
                continue
            if line == "/quit":
                return
            if line.startswith("/"):
                await self._command(line)
            else:
                await self._send(line)

    async def _command(self, line: str) -> None:
        name, _, arg = line.partition(" ")
        arg = arg.strip()
        store = self.session.store
        if name == "/new":
            self.session.select_conversation(None)
        elif name == "/open" and arg:
            self.session.select_conversation(arg)
            for message in await self.session.wait_for_messages():
                _print_message(message)
        elif name == "/list":
            for conversation in store.conversations:
                marker = "*" if conversation.id == store.active_conversation_id else " "
                print(f"{marker} {conversation.id}  {conversation.title or 'Untitled'}")
        elif name == "/models":
            for model in store.models:
                marker = "*" if model.id == self.model else " "
                print(f"{marker} {model.id}  {model.name}")
        elif name == "/model" and arg:
            if store.has_model(arg):
                self.model = arg
            else:
                _print_error(f"Unknown model {arg}")
        elif name == "/delete" and arg:
            await self.session.delete_conversation(arg)
        elif name == "/branch" and arg:
            message_id, _, kind = arg.partition(" ")
            try:
                branch_type = BranchType(kind.strip() or BranchType.FULL.value)
            except ValueError:
                _print_error("Branch type must be 'full' or 'summary'")
                return
            if await self.session.create_branch(message_id, branch_type):
                for message in await self.session.wait_for_messages():
                    _print_message(message)
        else:
            _print_error(f"Unknown command {line}")

    async def _send(self, content: str) -> None:
        if self.model is None:
            _print_error("Select a model with /model <id> first")
            return
        try:
            command = SendMessageCommand(content=content, model=self.model)
        except ValidationError:
            _print_error("Message content cannot be empty")
            return
        try:
            outcome = await self.session.send(command)
        except SendInProgressError as exc:
            _print_error(exc.message)
            return
        if not outcome.ok:
            return
        if outcome.conversation is not None:
            print(f"Started conversation {outcome.conversation.id}")
            messages = await self.session.wait_for_messages()
        else:
            messages = outcome.messages
        for message in messages:
            _print_message(message)


async def run() -> None:
    session = ChatSession(on_error=_print_error)
    try:
        await session.initialize()
        await ChatShell(session).run()
    except (EOFError, KeyboardInterrupt):
        logger.info("Input closed. Shutting down...")
    finally:
        await session.close()


def main() -> None:
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
