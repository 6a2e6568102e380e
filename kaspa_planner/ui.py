"""Themed console with semantic message methods."""

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.theme import Theme

COLORS = {
    "success": "#22c55e",
    "error": "#ef4444",
    "warning": "#eab308",
    "info": "#3b82f6",
    "secondary": "#6b7280",
    "kaspa": "#49eacb",
    "panel_border": "#4b5563",
}

SYMBOLS = {
    "success": "✓",
    "error": "✗",
    "warning": "⚠",
    "info": "●",
}

PLANNER_THEME = Theme(
    {
        "success": Style(color=COLORS["success"], bold=True),
        "error": Style(color=COLORS["error"], bold=True),
        "warning": Style(color=COLORS["warning"], bold=True),
        "info": Style(color=COLORS["info"]),
        "secondary": Style(color=COLORS["secondary"], dim=True),
        "kaspa": Style(color=COLORS["kaspa"], bold=True),
        "panel_border": Style(color=COLORS["panel_border"]),
    }
)

RATING_STYLES = {
    "optimal": "success",
    "recommended": "kaspa",
    "possible": "warning",
    "not-recommended": "error",
}


class PlannerConsole:
    """Themed console singleton."""

    _instance: "PlannerConsole | None" = None

    def __new__(cls) -> "PlannerConsole":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._console = RichConsole(theme=PLANNER_THEME)
        return cls._instance

    @property
    def rich(self) -> RichConsole:
        return self._console

    def print(self, *args, **kwargs) -> None:
        self._console.print(*args, **kwargs)

    def print_json(self, data) -> None:
        self._console.print_json(data=data)

    def success(self, message: str) -> None:
        self._console.print(f"[success]{SYMBOLS['success']} {message}[/]")

    def error(self, message: str, details: str | None = None) -> None:
        self._console.print(f"[error]{SYMBOLS['error']} {message}[/]")
        if details:
            self._console.print(f"  [secondary]{details}[/]")

    def warning(self, message: str) -> None:
        self._console.print(f"[warning]{SYMBOLS['warning']}  {message}[/]")

    def info(self, message: str) -> None:
        self._console.print(f"[info]{SYMBOLS['info']} {message}[/]")

    def secondary(self, message: str) -> None:
        self._console.print(f"  [secondary]{message}[/]")

    def panel(self, content: str, title: str = "") -> None:
        self._console.print(
            Panel(
                content,
                title=f"[kaspa]─ {title} [/]" if title else None,
                border_style="panel_border",
                title_align="left",
                padding=(1, 2),
            )
        )


def rating_text(rating: str) -> str:
    style = RATING_STYLES.get(rating, "info")
    return f"[{style}]{rating}[/]"


def make_table(*columns: str, title: str | None = None) -> Table:
    table = Table(show_header=True, header_style="bold cyan", box=None, title=title)
    for column in columns:
        table.add_column(column)
    return table


console = PlannerConsole()
