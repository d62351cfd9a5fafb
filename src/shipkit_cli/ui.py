"""Terminal presentation: banner, step tracker and interactive prompts."""

import sys
from dataclasses import dataclass
from typing import AbstractSet, Callable, Dict, List, Optional

import readchar
import typer
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.live import Live
from rich.tree import Tree


console = Console()
error_console = Console(stderr=True)

BANNER = """
███████╗██╗  ██╗██╗██████╗ ██╗  ██╗██╗████████╗
██╔════╝██║  ██║██║██╔══██╗██║ ██╔╝██║╚══██╔══╝
███████╗███████║██║██████╔╝█████╔╝ ██║   ██║
╚════██║██╔══██║██║██╔═══╝ ██╔═██╗ ██║   ██║
███████║██║  ██║██║██║     ██║  ██╗██║   ██║
╚══════╝╚═╝  ╚═╝╚═╝╚═╝     ╚═╝  ╚═╝╚═╝   ╚═╝
"""

TAGLINE = "Ship full-stack starter kits in one command"


def show_banner(target: Optional[Console] = None):
    """Display the ASCII art banner."""
    target = target or console
    banner_lines = BANNER.strip().split('\n')
    colors = ["bright_green", "green", "cyan", "bright_cyan", "white", "bright_white"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        color = colors[i % len(colors)]
        styled_banner.append(line + "\n", style=color)

    target.print(Align.center(styled_banner))
    target.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    target.print()


STEP_SYMBOLS = {
    "done": "[green]●[/green]",
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "error": "[red]●[/red]",
    "skipped": "[yellow]○[/yellow]",
}


@dataclass
class Step:
    key: str
    label: str
    status: str = "pending"
    detail: str = ""

    def markup(self) -> str:
        symbol = STEP_SYMBOLS.get(self.status, " ")
        detail = self.detail.strip()
        if self.status == "pending":
            text = f"{self.label} ({detail})" if detail else self.label
            return f"{symbol} [bright_black]{text}[/bright_black]"
        suffix = f" [bright_black]({detail})[/bright_black]" if detail else ""
        return f"{symbol} [white]{self.label}[/white]{suffix}"


class StepTracker:
    """Ordered build steps rendered as a rich tree.

    Every change goes through the refresh callback, which ``live()`` wires
    to a ``rich.live.Live`` region.
    """

    def __init__(self, title: str):
        self.title = title
        self._steps: Dict[str, Step] = {}
        self._refresh_cb: Optional[Callable[[], None]] = None

    @property
    def steps(self) -> List[Step]:
        return list(self._steps.values())

    def attach_refresh(self, cb: Callable[[], None]):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if key not in self._steps:
            self._steps[key] = Step(key, label)
            self._refresh()

    def start(self, key: str, detail: str = ""):
        self._update(key, "running", detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, "done", detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, "error", detail)

    def skip(self, key: str, detail: str = ""):
        self._update(key, "skipped", detail)

    def status(self, key: str) -> Optional[str]:
        step = self._steps.get(key)
        return step.status if step else None

    def _update(self, key: str, status: str, detail: str):
        # steps reported before add() are labelled with their key
        step = self._steps.setdefault(key, Step(key, key))
        step.status = status
        if detail:
            step.detail = detail
        self._refresh()

    def _refresh(self):
        if self._refresh_cb:
            self._refresh_cb()

    def render(self) -> Tree:
        tree = Tree(f"[bold cyan]{self.title}[/bold cyan]", guide_style="grey50")
        for step in self._steps.values():
            tree.add(step.markup())
        return tree

    def live(self, target: Optional[Console] = None) -> Live:
        """Live region that re-renders on every step change."""
        live = Live(self.render(), console=target or console, refresh_per_second=8, transient=True)
        self.attach_refresh(lambda: live.update(self.render()))
        return live


def get_key():
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key == readchar.key.UP:
        return 'up'
    if key == readchar.key.DOWN:
        return 'down'
    if key == readchar.key.ENTER:
        return 'enter'
    if key == readchar.key.ESC:
        return 'escape'
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    return key


def _next_enabled(option_keys: list, index: int, step: int, disabled: AbstractSet[str]) -> int:
    for _ in range(len(option_keys)):
        index = (index + step) % len(option_keys)
        if option_keys[index] not in disabled:
            return index
    return index


def select_with_arrows(
    options: Dict[str, str],
    prompt_text: str = "Select an option",
    default_key: Optional[str] = None,
    disabled: AbstractSet[str] = frozenset(),
) -> str:
    """
    Interactive selection using arrow keys with Rich Live display.

    Args:
        options: Dict with keys as option keys and values as descriptions
        prompt_text: Text to show above the options
        default_key: Default option key to start with
        disabled: Keys shown greyed out that the cursor skips

    Returns:
        Selected option key
    """
    option_keys = list(options.keys())
    if default_key in option_keys and default_key not in disabled:
        selected_index = option_keys.index(default_key)
    else:
        selected_index = _next_enabled(option_keys, -1, 1, disabled)

    selected_key = None

    def create_selection_panel():
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bright_cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, key in enumerate(option_keys):
            if key in disabled:
                table.add_row(" ", f"[bright_black]{key}: {options[key]} (unavailable)[/bright_black]")
            elif i == selected_index:
                table.add_row("▶", f"[bright_cyan]{key}: {options[key]}[/bright_cyan]")
            else:
                table.add_row(" ", f"[white]{key}: {options[key]}[/white]")

        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")

        return Panel(
            table,
            title=f"[bold]{prompt_text}[/bold]",
            border_style="cyan",
            padding=(1, 2)
        )

    console.print()

    with Live(create_selection_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
                if key == 'up':
                    selected_index = _next_enabled(option_keys, selected_index, -1, disabled)
                elif key == 'down':
                    selected_index = _next_enabled(option_keys, selected_index, 1, disabled)
                elif key == 'enter':
                    if option_keys[selected_index] not in disabled:
                        selected_key = option_keys[selected_index]
                        break
                elif key == 'escape':
                    console.print("\n[yellow]Selection cancelled[/yellow]")
                    raise typer.Exit(1)

                live.update(create_selection_panel(), refresh=True)

            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)

    if selected_key is None:
        console.print("\n[red]Selection failed.[/red]")
        raise typer.Exit(1)

    return selected_key


class ConsolePrompter:
    """Prompts backed by the terminal.

    When stdin is not a TTY, selections fall back to their default instead
    of blocking on the arrow-key menu.
    """

    def select(
        self,
        message: str,
        options: Dict[str, str],
        default: Optional[str] = None,
        disabled: AbstractSet[str] = frozenset(),
    ) -> str:
        if not sys.stdin.isatty():
            if default in options and default not in disabled:
                return default
            return next(key for key in options if key not in disabled)
        return select_with_arrows(options, message, default, disabled)

    def text(self, message: str, default: Optional[str] = None) -> str:
        return typer.prompt(message, default=default)

    def secret(self, message: str) -> str:
        return typer.prompt(message, hide_input=True)

    def confirm(self, message: str, default: bool = False) -> bool:
        return typer.confirm(message, default=default)
