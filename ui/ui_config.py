import os
from pathlib import Path


APP_TITLE = "LLM Panel"


LLM_HOST = os.getenv("LLM_HOST", "127.0.0.1")
LLM_PORT = os.getenv("LLM_PORT", "11434")

MODEL_SERVER_URL = os.getenv("MODEL_SERVER_URL", f"http://{LLM_HOST}:{LLM_PORT}").rstrip("/")


AVAILABLE_MODELS = tuple(
    m.strip() for m in os.getenv("LLM_MODELS", "llama3.2,mistral,codellama,phi3").split(",") if m.strip()
) or ("llama3.2",)
_default_model_raw = os.getenv("LLM_DEFAULT_MODEL", "").strip()
DEFAULT_MODEL = _default_model_raw if _default_model_raw in AVAILABLE_MODELS else AVAILABLE_MODELS[0]

TEMPERATURE_MIN = 0.0
TEMPERATURE_MAX = 2.0
DEFAULT_TEMPERATURE = max(TEMPERATURE_MIN, min(TEMPERATURE_MAX, float(os.getenv("LLM_TEMPERATURE", "0.7"))))


STREAM_CONNECT_TIMEOUT_S = float(os.getenv("LLM_STREAM_CONNECT_TIMEOUT_S", "10"))
_stream_read_timeout_raw = os.getenv("LLM_STREAM_READ_TIMEOUT_S", "300").strip().lower()
STREAM_READ_TIMEOUT_S = None if _stream_read_timeout_raw in ("", "none", "null") else float(_stream_read_timeout_raw)
HEALTHCHECK_TIMEOUT_S = float(os.getenv("LLM_HEALTHCHECK_TIMEOUT_S", "2"))


DATA_DIR = Path(os.getenv("LLM_PANEL_DATA_DIR") or (Path(__file__).resolve().parents[1] / "config"))
STATE_FILE = DATA_DIR / "state.json"
HISTORY_KEY = "chatHistory"


FALLBACK_MESSAGE = "Sorry, I encountered an error generating a response."

LOG_LEVEL = os.getenv("LLM_PANEL_LOG_LEVEL", "INFO").strip().upper() or "INFO"


CHAT_MAX_WIDTH = 760
