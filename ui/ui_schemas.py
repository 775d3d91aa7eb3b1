from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["user", "assistant"]


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class SessionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    temperature: float = Field(ge=0.0, le=2.0)


class Content(BaseModel):
    kind: Literal["content"] = "content"
    text: str


class ModelChanged(BaseModel):
    kind: Literal["modelUpdate"] = "modelUpdate"
    model: str


class TemperatureChanged(BaseModel):
    kind: Literal["temperatureUpdate"] = "temperatureUpdate"
    temperature: float


Fragment = Union[Content, ModelChanged, TemperatureChanged]


class GenerationOutcome(BaseModel):
    content: str
    status: Literal["completed", "error", "abandoned"] = "completed"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "completed"


class RenderCommand(str, Enum):
    RECEIVE_MESSAGE = "receiveMessage"
    START_RESPONSE = "startResponse"
    STREAM_RESPONSE = "streamResponse"
    END_RESPONSE = "endResponse"
    UPDATE_MODEL = "updateModel"
    UPDATE_TEMPERATURE = "updateTemperature"
    CLEAR_MESSAGES = "clearMessages"


class RenderEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    command: RenderCommand
    text: Optional[str] = None
    is_user: Optional[bool] = Field(default=None, alias="isUser")
    model: Optional[str] = None
    temperature: Optional[float] = None

    def to_message(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def receive_message(cls, message: Message) -> RenderEvent:
        return cls(command=RenderCommand.RECEIVE_MESSAGE, text=message.content, is_user=message.role == "user")

    @classmethod
    def start_response(cls) -> RenderEvent:
        return cls(command=RenderCommand.START_RESPONSE)

    @classmethod
    def stream_response(cls, text: str) -> RenderEvent:
        return cls(command=RenderCommand.STREAM_RESPONSE, text=text)

    @classmethod
    def end_response(cls) -> RenderEvent:
        return cls(command=RenderCommand.END_RESPONSE)

    @classmethod
    def update_model(cls, model: str) -> RenderEvent:
        return cls(command=RenderCommand.UPDATE_MODEL, model=model)

    @classmethod
    def update_temperature(cls, temperature: float) -> RenderEvent:
        return cls(command=RenderCommand.UPDATE_TEMPERATURE, temperature=temperature)

    @classmethod
    def clear_messages(cls) -> RenderEvent:
        return cls(command=RenderCommand.CLEAR_MESSAGES)


class IntentCommand(str, Enum):
    SEND_MESSAGE = "sendMessage"
    CLEAR_HISTORY = "clearHistory"
    CHANGE_MODEL = "changeModel"
    UPDATE_TEMPERATURE = "updateTemperature"


class UserIntent(BaseModel):
    command: IntentCommand
    text: Optional[str] = None
    temperature: Optional[float] = None


class ChatOptions(BaseModel):
    temperature: float


class ChatRequest(BaseModel):
    model: str
    messages: List[Message]
    stream: bool = True
    options: ChatOptions
