from ui_schemas import ChatOptions, ChatRequest, Message, SessionConfig


ROLE_MARKERS = {
    "user": "You",
    "assistant": "Assistant",
}


def mark_role(msg: Message) -> Message:
    marker = ROLE_MARKERS.get(msg.role, msg.role.title())
    return Message(role=msg.role, content=f"{marker}: {msg.content}")


def build_chat_request(messages: list[Message], config: SessionConfig) -> ChatRequest:
    return ChatRequest(
        model=config.model,
        messages=[mark_role(m) for m in (messages or [])],
        stream=True,
        options=ChatOptions(temperature=config.temperature),
    )
