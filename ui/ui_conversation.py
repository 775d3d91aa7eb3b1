import asyncio
import logging

from pydantic import ValidationError

import ui_config as cfg
from ui_schemas import Message
from ui_state_io import StateStore

logger = logging.getLogger("llm_panel")


class PersistenceError(RuntimeError):
    pass


def parse_history(raw) -> list[Message]:
    if not isinstance(raw, list):
        return []
    try:
        return [Message.model_validate(item) for item in raw]
    except ValidationError:
        return []


class ConversationStore:
    """
    Ordered log of role-tagged messages, mirrored to a durable store.

    Mutations land in memory first and are then written out wholesale. A failed
    write raises PersistenceError, but the in-memory log stays authoritative.
    """

    def __init__(self, store: StateStore, key: str = cfg.HISTORY_KEY):
        self._store = store
        self._key = key
        self._messages: list[Message] = []
        self.load()

    @classmethod
    async def open(cls, store: StateStore, key: str = cfg.HISTORY_KEY) -> "ConversationStore":
        """Build the store with the initial history read done in a worker thread."""
        return await asyncio.to_thread(cls, store, key)

    def __len__(self) -> int:
        return len(self._messages)

    def load(self) -> list[Message]:
        try:
            raw = self._store.get(self._key, [])
        except Exception as exc:
            logger.warning(f"[Chat Store] Could not read history, starting empty: {exc}")
            raw = []
        self._messages = parse_history(raw)
        return self.snapshot()

    def snapshot(self) -> list[Message]:
        return list(self._messages)

    async def append(self, message: Message) -> None:
        self._messages.append(message)
        await self._persist()

    async def clear(self) -> None:
        self._messages = []
        await self._persist()

    async def _persist(self) -> None:
        payload = [m.model_dump() for m in self._messages]
        try:
            await self._store.update(self._key, payload)
        except Exception as exc:
            raise PersistenceError(f"History may not survive restart: {exc}") from exc
