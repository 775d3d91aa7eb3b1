import asyncio
import json
import logging
from typing import AsyncIterator, Optional

import requests

import ui_config as cfg
from ui_schemas import ChatRequest

logger = logging.getLogger("llm_panel")


class BackendError(RuntimeError):
    pass


class OllamaClient:
    """
    Streams chat completions from a local Ollama-style server (POST /api/chat, NDJSON).

    Network reads block, so each one runs in a worker thread; the coroutine side only
    ever holds one pending read, which keeps fragments in server order.
    """

    def __init__(
        self,
        base_url: str = cfg.MODEL_SERVER_URL,
        *,
        connect_timeout: float = cfg.STREAM_CONNECT_TIMEOUT_S,
        read_timeout: float | None = cfg.STREAM_READ_TIMEOUT_S,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._http = http or requests.Session()

    def _open(self, request: ChatRequest) -> requests.Response:
        try:
            response = self._http.post(
                f"{self.base_url}/api/chat",
                json=request.model_dump(mode="json"),
                stream=True,
                timeout=(self.connect_timeout, self.read_timeout),
            )
        except requests.exceptions.RequestException as exc:
            raise BackendError(f"Could not reach model server: {exc}") from exc
        response.encoding = "utf-8"
        if not response.ok:
            detail = (response.text or "").strip()
            reason = response.reason or "Bad request"
            response.close()
            raise BackendError(f"Chat error {response.status_code}: {detail or reason}")
        return response

    async def stream_chat(self, request: ChatRequest) -> AsyncIterator[str]:
        response = await asyncio.to_thread(self._open, request)
        try:
            lines = response.iter_lines(decode_unicode=False)
            while True:
                try:
                    raw_line = await asyncio.to_thread(next, lines, None)
                except requests.exceptions.RequestException as exc:
                    raise BackendError(f"Stream interrupted: {exc}") from exc
                if raw_line is None:
                    break
                content, done = parse_stream_line(raw_line)
                if content:
                    yield content
                if done:
                    break
        finally:
            response.close()

    def is_online(self) -> bool:
        for path in ("/api/tags", "/"):
            try:
                resp = self._http.get(f"{self.base_url}{path}", timeout=cfg.HEALTHCHECK_TIMEOUT_S)
            except requests.exceptions.RequestException:
                continue
            if resp.status_code == 200:
                return True
        return False


def parse_stream_line(raw_line: bytes | str) -> tuple[str, bool]:
    """Returns (content, done) for one NDJSON line of a /api/chat stream."""
    if isinstance(raw_line, bytes):
        line = raw_line.decode("utf-8", errors="replace").strip()
    else:
        line = (raw_line or "").strip()
    if not line:
        return "", False
    try:
        chunk = json.loads(line)
    except json.JSONDecodeError as exc:
        raise BackendError(f"Malformed stream line: {line[:200]}") from exc
    if not isinstance(chunk, dict):
        raise BackendError(f"Unexpected stream payload: {line[:200]}")
    if chunk.get("error"):
        raise BackendError(str(chunk["error"]))
    message = chunk.get("message")
    content = ""
    if isinstance(message, dict):
        content = message.get("content") or ""
    return str(content), bool(chunk.get("done"))
