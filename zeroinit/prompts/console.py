"""Terminal implementation of the ``Prompter`` capability using Rich."""

from __future__ import annotations

from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from zeroinit.errors import PromptError
from zeroinit.utils import console as default_console


class RichPrompter:
    """Asks questions on the terminal.

    ``EOFError`` (closed stdin) and ``KeyboardInterrupt`` are turned into
    ``PromptError`` so the caller can abort the run with a diagnostic.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or default_console

    def ask(self, label: str, default: str, secret: bool = False) -> str:
        """Ask for free text; *secret* answers are not echoed and the default stays hidden."""
        try:
            answer = Prompt.ask(
                label,
                default=default,
                show_default=bool(default) and not secret,
                password=secret,
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt) as exc:
            raise PromptError(f"Prompt failed: {label}") from exc
        return answer if answer is not None else default

    def select(self, label: str, options: list[str]) -> tuple[int, str]:
        if not options:
            raise PromptError(f"Nothing to choose from: {label}")

        table = Table(title=label, show_header=False, title_justify="left")
        table.add_column("#", style="bold cyan", justify="right")
        table.add_column("Option")
        for number, option in enumerate(options, start=1):
            table.add_row(str(number), option)
        self.console.print(table)

        try:
            choice = IntPrompt.ask(
                "Enter a number",
                choices=[str(n) for n in range(1, len(options) + 1)],
                show_choices=False,
                default=1,
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt) as exc:
            raise PromptError(f"Prompt failed: {label}") from exc

        index = int(choice) - 1
        return index, options[index]
