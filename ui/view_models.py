import asyncio
from typing import Optional

import flet as ft

import ui_style as style


class FletModelPicker:
    """Asks the operator to choose one of the configured models in a modal dialog."""

    def __init__(self, page: ft.Page):
        self.page = page

    async def pick(self, models: list[str], current: str) -> Optional[str]:
        decision: asyncio.Future = asyncio.get_running_loop().create_future()

        group = ft.RadioGroup(
            value=current,
            content=ft.Column([ft.Radio(value=m, label=m) for m in models], spacing=4, tight=True),
        )

        def resolve(value: Optional[str]) -> None:
            if not decision.done():
                decision.set_result(value)

        async def on_cancel(_):
            resolve(None)
            self.page.close(dlg)

        async def on_confirm(_):
            resolve(group.value)
            self.page.close(dlg)

        async def on_dismiss(_):
            resolve(None)

        dlg = ft.AlertDialog(
            modal=True,
            title=ft.Text("Select model"),
            content=group,
            actions=[
                ft.TextButton("Cancel", on_click=on_cancel),
                ft.ElevatedButton(
                    "Use model",
                    on_click=on_confirm,
                    style=ft.ButtonStyle(bgcolor=style.ACCENT, color=style.TEXT_PRIMARY),
                ),
            ],
            actions_alignment=ft.MainAxisAlignment.END,
            on_dismiss=on_dismiss,
        )
        self.page.open(dlg)
        return await decision
