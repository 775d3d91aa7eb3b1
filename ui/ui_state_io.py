import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol


class StateStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    async def update(self, key: str, value: Any) -> None: ...


def load_state(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        return {}


def save_state(path: str | Path, state: dict) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".llm-panel-tmp-", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(json.dumps(state, indent=2))
        os.replace(tmp_name, str(p))
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


class JsonStateStore:
    """
    Named records kept in one JSON object file.
    Every update rewrites the whole file; writes run off the event loop.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._write_lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        return load_state(self.path).get(key, default)

    async def update(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._update_sync, key, value)

    def _update_sync(self, key: str, value: Any) -> None:
        with self._write_lock:
            state = load_state(self.path)
            state[key] = value
            save_state(self.path, state)
