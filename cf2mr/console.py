from __future__ import annotations

from typing import Optional, Protocol, Sequence

from rich import box
from rich.console import Console
from rich.prompt import Confirm, IntPrompt
from rich.table import Table


class Operator(Protocol):
    """The human in the loop. Choice lists always carry the skip/none option at index 0."""

    def confirm(self, message: str, *, default: bool = False) -> bool:  # pragma: no cover - protocol
        ...

    def choose(self, title: str, options: Sequence[str], *, default: int = 0) -> int:  # pragma: no cover - protocol
        ...


class RichOperator:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def confirm(self, message: str, *, default: bool = False) -> bool:
        return Confirm.ask(message, default=default, console=self.console)

    def choose(self, title: str, options: Sequence[str], *, default: int = 0) -> int:
        table = Table(title=title, box=box.MINIMAL, title_justify="left")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Choice")
        for index, option in enumerate(options):
            style = "bold" if index == default else None
            table.add_row(str(index), option, style=style)
        self.console.print(table)
        return IntPrompt.ask(
            "Select",
            choices=[str(index) for index in range(len(options))],
            default=default,
            show_choices=False,
            console=self.console,
        )
