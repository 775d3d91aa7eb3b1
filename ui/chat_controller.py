from __future__ import annotations

import asyncio
import logging
import math
from typing import Iterable, Optional, Protocol

from pydantic import ValidationError

import ui_config as cfg
from chat_session import ChatBackend, GenerationSession
from ui_conversation import ConversationStore, PersistenceError
from ui_panel import RenderChannel
from ui_schemas import GenerationOutcome, IntentCommand, RenderEvent, SessionConfig, UserIntent

logger = logging.getLogger("llm_panel")


class InvalidTemperature(ValueError):
    pass


class ModelPicker(Protocol):
    async def pick(self, models: list[str], current: str) -> Optional[str]: ...


class SessionController:
    """
    Owns the conversation and the session configuration for one display surface.

    Generations and history clears share one lock, so they run strictly one after
    another; configuration changes do not wait on it.
    """

    def __init__(
        self,
        *,
        conversation: ConversationStore,
        backend: ChatBackend,
        channel: RenderChannel,
        picker: ModelPicker,
        models: Iterable[str] = cfg.AVAILABLE_MODELS,
        config: Optional[SessionConfig] = None,
    ):
        self.conversation = conversation
        self.backend = backend
        self.channel = channel
        self.picker = picker
        self.models = tuple(models)
        if not self.models:
            raise ValueError("At least one model identifier is required.")
        default_model = cfg.DEFAULT_MODEL if cfg.DEFAULT_MODEL in self.models else self.models[0]
        self.config = config or SessionConfig(model=default_model, temperature=cfg.DEFAULT_TEMPERATURE)
        self._mutation_lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._mutation_lock.locked()

    def start(self) -> None:
        for msg in self.conversation.snapshot():
            self.channel.post(RenderEvent.receive_message(msg))
        self.channel.post(RenderEvent.update_model(self.config.model))
        self.channel.post(RenderEvent.update_temperature(self.config.temperature))

    async def change_model(self) -> bool:
        choice = await self.picker.pick(list(self.models), self.config.model)
        if choice is None or choice not in self.models:
            return False
        self.config = self.config.model_copy(update={"model": choice})
        logger.info(f"[Chat Controller] Model set to '{choice}'.")
        self.channel.post(RenderEvent.update_model(choice))
        return True

    def update_temperature(self, value) -> float:
        if isinstance(value, bool):
            raise InvalidTemperature(f"Temperature must be a number, got {value!r}.")
        try:
            temperature = float(value)
        except (TypeError, ValueError):
            raise InvalidTemperature(f"Temperature must be a number, got {value!r}.") from None
        if not math.isfinite(temperature) or not (cfg.TEMPERATURE_MIN <= temperature <= cfg.TEMPERATURE_MAX):
            raise InvalidTemperature(
                f"Temperature must be between {cfg.TEMPERATURE_MIN:g} and {cfg.TEMPERATURE_MAX:g}, got {value!r}."
            )
        self.config = self.config.model_copy(update={"temperature": temperature})
        self.channel.post(RenderEvent.update_temperature(temperature))
        return temperature

    async def clear_history(self) -> None:
        async with self._mutation_lock:
            try:
                await self.conversation.clear()
            except PersistenceError as exc:
                logger.warning(f"[Chat Controller] {exc}")
            self.channel.post(RenderEvent.clear_messages())

    async def handle_user_message(self, text: Optional[str]) -> Optional[GenerationOutcome]:
        if not text or not text.strip():
            return None
        async with self._mutation_lock:
            session = GenerationSession(
                conversation=self.conversation,
                backend=self.backend,
                channel=self.channel,
                config=self.config,
            )
            return await session.run(text)

    async def dispatch(self, payload: UserIntent | dict) -> None:
        try:
            intent = payload if isinstance(payload, UserIntent) else UserIntent.model_validate(payload)
        except ValidationError as exc:
            logger.warning(f"[Chat Controller] Ignoring malformed intent {payload!r}: {exc}")
            return

        if intent.command == IntentCommand.SEND_MESSAGE:
            await self.handle_user_message(intent.text)
        elif intent.command == IntentCommand.CLEAR_HISTORY:
            await self.clear_history()
        elif intent.command == IntentCommand.CHANGE_MODEL:
            await self.change_model()
        elif intent.command == IntentCommand.UPDATE_TEMPERATURE:
            try:
                self.update_temperature(intent.temperature)
            except InvalidTemperature as exc:
                logger.info(f"[Chat Controller] {exc}")
                self.channel.post(RenderEvent.update_temperature(self.config.temperature))
