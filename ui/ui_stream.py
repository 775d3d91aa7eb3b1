import json
from typing import Callable, Optional

from ui_schemas import Content, Fragment, ModelChanged, RenderEvent, TemperatureChanged


def classify_fragment(raw: str) -> Fragment:
    """
    Decide whether a backend fragment is a control signal or literal content.

    Control signals are JSON objects shaped like {"type": "modelUpdate", "model": ...}
    or {"type": "temperatureUpdate", "temperature": ...}. Anything else, including
    valid JSON of another shape, is content carried through verbatim.

    Known limitation: content text that happens to be a control-shaped JSON object
    cannot be told apart from a real control signal and is treated as control.
    """
    try:
        payload = json.loads(raw)
    except (ValueError, TypeError):
        return Content(text=raw)
    if not isinstance(payload, dict):
        return Content(text=raw)

    kind = payload.get("type")
    if kind == "modelUpdate":
        model = payload.get("model")
        if isinstance(model, str):
            return ModelChanged(model=model)
    elif kind == "temperatureUpdate":
        temperature = payload.get("temperature")
        if isinstance(temperature, (int, float)) and not isinstance(temperature, bool):
            return TemperatureChanged(temperature=float(temperature))
    return Content(text=raw)


class StreamMultiplexer:
    """Routes fragments, in arrival order, onto the single render-event output."""

    def __init__(self, emit: Callable[[RenderEvent], None]):
        self._emit = emit

    def route(self, raw: str) -> Optional[str]:
        """Emit the render event for one fragment; returns the text if it was content."""
        fragment = classify_fragment(raw)
        if isinstance(fragment, ModelChanged):
            self._emit(RenderEvent.update_model(fragment.model))
            return None
        if isinstance(fragment, TemperatureChanged):
            self._emit(RenderEvent.update_temperature(fragment.temperature))
            return None
        self._emit(RenderEvent.stream_response(fragment.text))
        return fragment.text
