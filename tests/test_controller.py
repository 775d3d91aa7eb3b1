"""
Tests for chat_controller (SessionController): configuration, history, dispatch,
startup replay and serialized generation.
"""

import asyncio

import pytest

import ui_config as cfg
from chat_controller import InvalidTemperature, SessionController
from ui_conversation import ConversationStore
from ui_schemas import IntentCommand, Message, UserIntent

from .conftest import FakeBackend, FakePicker, MemoryStateStore, commands

MODELS = ("llama3.2", "mistral", "codellama")


@pytest.fixture
def make_controller(conversation, channel, config):
    def factory(backend=None, picker=None, conversation_=None):
        return SessionController(
            conversation=conversation_ or conversation,
            backend=backend or FakeBackend(),
            channel=channel,
            picker=picker or FakePicker(None),
            models=MODELS,
            config=config,
        )

    return factory


# ========================================================================
# Temperature
# ========================================================================


class TestUpdateTemperature:
    @pytest.mark.parametrize("value", [-0.1, 2.1, float("nan"), float("inf"), "warm", None, True])
    def test_invalid_values_are_rejected(self, make_controller, channel, value):
        controller = make_controller()
        with pytest.raises(InvalidTemperature):
            controller.update_temperature(value)
        assert controller.config.temperature == 0.7
        assert channel.drain() == []

    @pytest.mark.parametrize("value", [0, 2, 1.3, "0.5"])
    def test_inclusive_range_is_accepted(self, make_controller, channel, value):
        controller = make_controller()
        controller.update_temperature(value)

        assert controller.config.temperature == float(value)
        events = channel.drain()
        assert commands(events) == ["updateTemperature"]
        assert events[0].temperature == float(value)

    def test_invalid_temperature_is_a_value_error(self):
        assert issubclass(InvalidTemperature, ValueError)


# ========================================================================
# Model selection
# ========================================================================


class TestChangeModel:
    async def test_selection_updates_config_and_emits(self, make_controller, channel):
        picker = FakePicker("mistral")
        controller = make_controller(picker=picker)

        assert await controller.change_model() is True
        assert controller.config.model == "mistral"
        assert picker.calls == [(list(MODELS), "llama3.2")]
        events = channel.drain()
        assert commands(events) == ["updateModel"]
        assert events[0].model == "mistral"

    async def test_cancel_leaves_config_unchanged(self, make_controller, channel):
        controller = make_controller(picker=FakePicker(None))
        assert await controller.change_model() is False
        assert controller.config.model == "llama3.2"
        assert channel.drain() == []

    async def test_unknown_model_is_ignored(self, make_controller, channel):
        controller = make_controller(picker=FakePicker("gpt-x"))
        assert await controller.change_model() is False
        assert controller.config.model == "llama3.2"
        assert channel.drain() == []

    async def test_config_change_applies_to_next_generation_only(self, make_controller):
        holder = {}

        def change_mid_stream(i):
            if i == 0:
                holder["controller"].update_temperature(1.5)

        backend = FakeBackend(["a", "b"], ["c"], after_yield=change_mid_stream)
        controller = make_controller(backend=backend)
        holder["controller"] = controller

        await controller.handle_user_message("one")
        await controller.handle_user_message("two")

        assert backend.requests[0].options.temperature == 0.7
        assert backend.requests[1].options.temperature == 1.5

    def test_default_config_uses_first_known_model(self, conversation, channel):
        controller = SessionController(
            conversation=conversation,
            backend=FakeBackend(),
            channel=channel,
            picker=FakePicker(None),
            models=("only-model",),
        )
        assert controller.config.model == "only-model"
        assert controller.config.temperature == cfg.DEFAULT_TEMPERATURE

    def test_empty_model_set_is_rejected(self, conversation, channel):
        with pytest.raises(ValueError):
            SessionController(
                conversation=conversation,
                backend=FakeBackend(),
                channel=channel,
                picker=FakePicker(None),
                models=(),
            )


# ========================================================================
# History
# ========================================================================


class TestHistory:
    async def test_clear_history(self, make_controller, conversation, state_store, channel):
        controller = make_controller(backend=FakeBackend(["hello"]))
        await controller.handle_user_message("hi")
        channel.drain()

        await controller.clear_history()

        assert commands(channel.drain()) == ["clearMessages"]
        assert conversation.snapshot() == []
        assert ConversationStore(state_store).snapshot() == []

    async def test_blank_messages_are_ignored(self, make_controller, conversation, channel):
        backend = FakeBackend(["never"])
        controller = make_controller(backend=backend)
        for text in ("", "   ", "\n\t", None):
            assert await controller.handle_user_message(text) is None
        assert backend.requests == []
        assert len(conversation) == 0
        assert channel.drain() == []

    def test_start_replays_history_then_config(self, channel, config):
        store = MemoryStateStore(
            {
                "chatHistory": [
                    {"role": "user", "content": "q"},
                    {"role": "assistant", "content": "a"},
                ]
            }
        )
        controller = SessionController(
            conversation=ConversationStore(store),
            backend=FakeBackend(),
            channel=channel,
            picker=FakePicker(None),
            models=MODELS,
            config=config,
        )
        controller.start()

        events = channel.drain()
        assert commands(events) == ["receiveMessage", "receiveMessage", "updateModel", "updateTemperature"]
        assert [e.to_message() for e in events] == [
            {"command": "receiveMessage", "text": "q", "isUser": True},
            {"command": "receiveMessage", "text": "a", "isUser": False},
            {"command": "updateModel", "model": "llama3.2"},
            {"command": "updateTemperature", "temperature": 0.7},
        ]


# ========================================================================
# Serialization
# ========================================================================


class TestSerializedGeneration:
    async def test_back_to_back_messages_do_not_interleave(self, make_controller, conversation):
        backend = FakeBackend(["first-", "answer"], ["second-", "answer"])
        controller = make_controller(backend=backend)

        await asyncio.gather(
            controller.handle_user_message("one"),
            controller.handle_user_message("two"),
        )

        assert conversation.snapshot() == [
            Message(role="user", content="one"),
            Message(role="assistant", content="first-answer"),
            Message(role="user", content="two"),
            Message(role="assistant", content="second-answer"),
        ]
        assert [m.content for m in backend.requests[1].messages] == [
            "You: one",
            "Assistant: first-answer",
            "You: two",
        ]

    async def test_clear_waits_for_in_flight_generation(self, make_controller, conversation, channel):
        controller = make_controller(backend=FakeBackend(["a", "b", "c"]))

        await asyncio.gather(controller.handle_user_message("hi"), controller.clear_history())

        assert conversation.snapshot() == []
        assert commands(channel.drain())[-2:] == ["endResponse", "clearMessages"]

    async def test_busy_while_generating(self, make_controller):
        seen = []
        holder = {}
        backend = FakeBackend(["x", "y"], after_yield=lambda i: seen.append(holder["c"].busy))
        controller = make_controller(backend=backend)
        holder["c"] = controller

        assert controller.busy is False
        await controller.handle_user_message("go")
        assert seen and all(seen)
        assert controller.busy is False


# ========================================================================
# Intent dispatch
# ========================================================================


class TestDispatch:
    async def test_send_message(self, make_controller, conversation, channel):
        controller = make_controller(backend=FakeBackend(["pong"]))
        await controller.dispatch({"command": "sendMessage", "text": "ping"})

        assert [m.content for m in conversation.snapshot()] == ["ping", "pong"]
        assert commands(channel.drain()) == ["startResponse", "streamResponse", "endResponse"]

    async def test_clear_history(self, make_controller, channel):
        controller = make_controller()
        await controller.dispatch(UserIntent(command=IntentCommand.CLEAR_HISTORY))
        assert commands(channel.drain()) == ["clearMessages"]

    async def test_change_model(self, make_controller, channel):
        controller = make_controller(picker=FakePicker("codellama"))
        await controller.dispatch({"command": "changeModel"})
        assert controller.config.model == "codellama"

    async def test_update_temperature(self, make_controller, channel):
        controller = make_controller()
        await controller.dispatch({"command": "updateTemperature", "temperature": 1.1})
        assert controller.config.temperature == 1.1

    async def test_invalid_temperature_resets_surface(self, make_controller, channel):
        controller = make_controller()
        await controller.dispatch({"command": "updateTemperature", "temperature": 9})

        assert controller.config.temperature == 0.7
        events = channel.drain()
        assert commands(events) == ["updateTemperature"]
        assert events[0].temperature == 0.7

    async def test_malformed_intent_is_ignored(self, make_controller, channel, caplog):
        controller = make_controller()
        with caplog.at_level("WARNING", logger="llm_panel"):
            await controller.dispatch({"command": "selfDestruct"})
        assert channel.drain() == []
        assert "Ignoring malformed intent" in caplog.text
