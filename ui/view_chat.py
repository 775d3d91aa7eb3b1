from typing import Awaitable, Callable

import flet as ft

import ui_config as cfg
import ui_style as style
from ui_markdown import split_markdown_fences
from ui_panel import RenderChannel
from ui_schemas import IntentCommand, RenderCommand, RenderEvent, UserIntent


def make_code_block(*, page: ft.Page, lang: str, code: str) -> ft.Control:
    lang = (lang or "").strip()
    raw = code or ""
    n_lines = raw.count("\n") + (1 if raw else 0)
    height_lines = max(3, min(18, n_lines))

    def copy_code(_e, t=raw):
        page.set_clipboard(t)
        page.open(ft.SnackBar(ft.Text("Code copied."), bgcolor=style.SUCCESS))

    header = ft.Row(
        [
            ft.Text(lang or "code", size=11, color=style.TEXT_MUTED, weight=ft.FontWeight.W_600),
            ft.Container(expand=True),
            ft.IconButton(icon=ft.Icons.CONTENT_COPY, tooltip="Copy", icon_color=style.TEXT_MUTED, on_click=copy_code),
        ],
        spacing=6,
        vertical_alignment=ft.CrossAxisAlignment.CENTER,
    )
    body = ft.TextField(
        value=raw,
        multiline=True,
        read_only=True,
        min_lines=height_lines,
        max_lines=height_lines,
        text_style=ft.TextStyle(color=style.TEXT_PRIMARY, size=12, font_family="monospace"),
        bgcolor=style.SURFACE,
        border_color=style.BORDER,
    )
    return ft.Container(
        padding=12,
        bgcolor=style.SURFACE_ALT,
        border=ft.border.all(1, style.BORDER),
        border_radius=14,
        content=ft.Column([header, body], spacing=8, tight=True),
    )


def render_markdown(page: ft.Page, md_text: str) -> ft.Control:
    segs = split_markdown_fences(md_text or "")
    if not segs or (len(segs) == 1 and segs[0][0] == "md"):
        return ft.Markdown(
            segs[0][2] if segs else (md_text or ""),
            selectable=True,
            extension_set=ft.MarkdownExtensionSet.GITHUB_WEB,
        )
    controls: list[ft.Control] = []
    for kind, lang, text in segs:
        if kind == "md":
            controls.append(ft.Markdown(text, selectable=True, extension_set=ft.MarkdownExtensionSet.GITHUB_WEB))
        else:
            controls.append(make_code_block(page=page, lang=lang, code=text))
    return ft.Column(controls, spacing=10, tight=True)


class ChatView:
    """
    Display surface: renders events from the render channel and turns operator
    actions into user intents.
    """

    def __init__(self, page: ft.Page, dispatch: Callable[[UserIntent], Awaitable[None]]):
        self.page = page
        self.dispatch = dispatch
        self._streaming_raw = ""
        self._streaming_bubble: ft.Container | None = None

        self.messages = ft.ListView(expand=True, spacing=12, padding=12, auto_scroll=True)
        self.input_field = ft.TextField(
            hint_text="Type your message...",
            expand=True,
            multiline=True,
            min_lines=1,
            max_lines=6,
            shift_enter=True,
            on_submit=self._on_send,
            bgcolor=style.SURFACE,
            border_color=style.BORDER,
        )
        self.send_button = ft.IconButton(icon=ft.Icons.SEND, tooltip="Send", on_click=self._on_send)
        self.model_button = ft.OutlinedButton("model", icon=ft.Icons.MEMORY, on_click=self._on_change_model)
        self.temperature_label = ft.Text("", size=12, color=style.TEXT_MUTED)
        self.temperature_slider = ft.Slider(
            min=cfg.TEMPERATURE_MIN,
            max=cfg.TEMPERATURE_MAX,
            divisions=20,
            width=180,
            on_change_end=self._on_temperature,
        )
        self.clear_button = ft.TextButton("Clear history", icon=ft.Icons.DELETE_SWEEP, on_click=self._on_clear)

    def build(self) -> ft.Control:
        toolbar = ft.Row(
            [
                self.model_button,
                ft.Container(expand=True),
                self.temperature_label,
                self.temperature_slider,
                self.clear_button,
            ],
            vertical_alignment=ft.CrossAxisAlignment.CENTER,
        )
        composer = ft.Container(
            padding=10,
            bgcolor=style.SURFACE_ELEV,
            border=ft.border.all(1, style.BORDER),
            border_radius=14,
            width=cfg.CHAT_MAX_WIDTH,
            content=ft.Row([self.input_field, self.send_button], vertical_alignment=ft.CrossAxisAlignment.END),
        )
        return ft.Column(
            [
                toolbar,
                self.messages,
                ft.Row([composer], alignment=ft.MainAxisAlignment.CENTER),
            ],
            expand=True,
        )

    async def consume(self, channel: RenderChannel) -> None:
        async for event in channel:
            self.render(event)
            self.page.update()

    def render(self, event: RenderEvent) -> None:
        cmd = event.command
        if cmd == RenderCommand.RECEIVE_MESSAGE:
            self._add_bubble(event.text or "", is_user=bool(event.is_user), markdown=True)
        elif cmd == RenderCommand.START_RESPONSE:
            self._streaming_raw = ""
            self._streaming_bubble = self._add_bubble("", is_user=False, markdown=False)
            self._set_busy(True)
        elif cmd == RenderCommand.STREAM_RESPONSE:
            self._streaming_raw += event.text or ""
            if self._streaming_bubble is not None:
                self._streaming_bubble.content.value = self._streaming_raw
        elif cmd == RenderCommand.END_RESPONSE:
            if self._streaming_bubble is not None:
                self._streaming_bubble.content = render_markdown(self.page, self._streaming_raw)
            self._streaming_bubble = None
            self._set_busy(False)
        elif cmd == RenderCommand.UPDATE_MODEL:
            self.model_button.text = event.model or "model"
        elif cmd == RenderCommand.UPDATE_TEMPERATURE:
            self.temperature_slider.value = event.temperature
            self.temperature_label.value = f"Temperature {event.temperature:.1f}"
        elif cmd == RenderCommand.CLEAR_MESSAGES:
            self.messages.controls.clear()
            self._streaming_bubble = None

    def _add_bubble(self, text: str, *, is_user: bool, markdown: bool) -> ft.Container:
        content = render_markdown(self.page, text) if markdown else ft.Text(text, selectable=True)
        bubble = ft.Container(
            padding=14,
            border_radius=14,
            bgcolor=style.ACCENT_SOFT if is_user else style.SURFACE,
            border=ft.border.all(1, style.BORDER),
            content=content,
        )
        self.messages.controls.append(
            ft.Row(
                [bubble],
                alignment=ft.MainAxisAlignment.END if is_user else ft.MainAxisAlignment.START,
                wrap=True,
            )
        )
        return bubble

    def _set_busy(self, busy: bool) -> None:
        self.input_field.disabled = busy
        self.send_button.disabled = busy
        self.clear_button.disabled = busy

    async def _on_send(self, _):
        text = (self.input_field.value or "").strip()
        if not text or self._streaming_bubble is not None:
            return
        self.input_field.value = ""
        self._add_bubble(text, is_user=True, markdown=False)
        self.page.update()
        await self.dispatch(UserIntent(command=IntentCommand.SEND_MESSAGE, text=text))

    async def _on_clear(self, _):
        await self.dispatch(UserIntent(command=IntentCommand.CLEAR_HISTORY))

    async def _on_change_model(self, _):
        await self.dispatch(UserIntent(command=IntentCommand.CHANGE_MODEL))

    async def _on_temperature(self, e):
        await self.dispatch(UserIntent(command=IntentCommand.UPDATE_TEMPERATURE, temperature=e.control.value))
