from __future__ import annotations

import logging
import time
from contextlib import aclosing
from typing import AsyncIterator, Protocol

import ui_config as cfg
from ui_conversation import ConversationStore, PersistenceError
from ui_markdown import MarkdownAccumulator
from ui_panel import RenderChannel
from ui_prompt import build_chat_request
from ui_schemas import ChatRequest, GenerationOutcome, Message, RenderEvent, SessionConfig
from ui_stream import StreamMultiplexer

logger = logging.getLogger("llm_panel")


class ChatBackend(Protocol):
    def stream_chat(self, request: ChatRequest) -> AsyncIterator[str]: ...


class GenerationSession:
    """
    One user turn to assistant turn exchange.

    The configuration is captured at construction, so changes made while the
    response streams only affect later sessions. Backend failures never leave
    run(): they become an error outcome and the fallback assistant message.
    """

    def __init__(
        self,
        *,
        conversation: ConversationStore,
        backend: ChatBackend,
        channel: RenderChannel,
        config: SessionConfig,
    ):
        self.conversation = conversation
        self.backend = backend
        self.channel = channel
        self.config = config
        self.multiplexer = StreamMultiplexer(channel.post)

    async def run(self, user_text: str) -> GenerationOutcome:
        await self._append(Message(role="user", content=user_text))
        self.channel.post(RenderEvent.start_response())

        request = build_chat_request(self.conversation.snapshot(), self.config)
        outcome = await self._consume(request)

        content = outcome.content
        if outcome.status == "error" or (outcome.status == "abandoned" and not content):
            content = cfg.FALLBACK_MESSAGE
        await self._append(Message(role="assistant", content=content))
        self.channel.post(RenderEvent.end_response())
        return outcome

    async def _consume(self, request: ChatRequest) -> GenerationOutcome:
        accumulator = MarkdownAccumulator()
        start_time = time.perf_counter()
        fragments_seen = 0
        if self.channel.disposed:
            logger.info("[Chat Session] Display surface already gone; not calling the backend.")
            return GenerationOutcome(content="", status="abandoned")
        try:
            async with aclosing(self.backend.stream_chat(request)) as fragments:
                async for fragment in fragments:
                    if self.channel.disposed:
                        logger.info("[Chat Session] Display surface went away; abandoning stream.")
                        return GenerationOutcome(content=accumulator.finish(), status="abandoned")
                    fragments_seen += 1
                    content = self.multiplexer.route(fragment)
                    if content is not None:
                        accumulator.feed(content)
        except Exception as exc:
            logger.warning(f"[Chat Session] Generation with model '{request.model}' failed: {exc}")
            return GenerationOutcome(content=accumulator.finish(), status="error", error=str(exc))

        elapsed = time.perf_counter() - start_time
        logger.debug(f"[Chat Session] {fragments_seen} fragments from '{request.model}' in {elapsed:.2f}s.")
        return GenerationOutcome(content=accumulator.finish())

    async def _append(self, message: Message) -> None:
        try:
            await self.conversation.append(message)
        except PersistenceError as exc:
            logger.warning(f"[Chat Session] {exc}")
