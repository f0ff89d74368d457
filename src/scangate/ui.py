from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

_T = TypeVar("_T")

console = Console()


def spinner_enabled() -> bool:
    return console.is_terminal and os.getenv("SCANGATE_SPINNER", "1") == "1"


@dataclass(frozen=True)
class Spinner:
    message: str

    def run(self, fn: Callable[[], _T]) -> _T:
        if not spinner_enabled():
            return fn()

        with Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold cyan]{task.description}[/bold cyan]"),
            transient=True,
            console=console,
        ) as prog:
            task_id = prog.add_task(self.message, total=None)
            try:
                return fn()
            finally:
                prog.update(task_id, completed=1)
