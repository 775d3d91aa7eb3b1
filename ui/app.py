#!/usr/bin/env python3
import asyncio
import logging

import flet as ft

import ui_config as cfg
import ui_style as style
from chat_controller import SessionController
from ui_backend import OllamaClient
from ui_conversation import ConversationStore
from ui_panel import RenderChannel
from ui_state_io import JsonStateStore
from view_chat import ChatView
from view_models import FletModelPicker

logger = logging.getLogger("llm_panel")


def setup_logging(level: str = cfg.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def main(page: ft.Page):
    page.title = cfg.APP_TITLE
    page.bgcolor = style.BG
    page.theme_mode = ft.ThemeMode.DARK

    channel = RenderChannel()
    backend = OllamaClient(cfg.MODEL_SERVER_URL)
    controller = SessionController(
        conversation=await ConversationStore.open(JsonStateStore(cfg.STATE_FILE)),
        backend=backend,
        channel=channel,
        picker=FletModelPicker(page),
    )
    view = ChatView(page, controller.dispatch)
    page.add(view.build())

    def on_disconnect(_):
        channel.dispose()

    page.on_disconnect = on_disconnect
    page.on_close = on_disconnect

    controller.start()
    page.run_task(view.consume, channel)

    if not await asyncio.to_thread(backend.is_online):
        logger.warning(f"[Chat App] Model server at {cfg.MODEL_SERVER_URL} is not reachable yet.")
        page.open(ft.SnackBar(ft.Text(f"Model server offline: {cfg.MODEL_SERVER_URL}"), bgcolor=style.WARNING))


def run() -> None:
    setup_logging()
    ft.app(target=main)


if __name__ == "__main__":
    run()
