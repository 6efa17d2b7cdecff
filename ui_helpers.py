import os
import json
from typing import Any, Dict, List, Sequence, Tuple

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

BOOK_COLUMNS = [("id", "ID"), ("isbn", "ISBN"), ("title", "Title"), ("author", "Author"),
                ("available_copies", "Available"), ("total_copies", "Total")]
MEMBER_COLUMNS = [("id", "ID"), ("name", "Name"), ("email", "Email"), ("phone", "Phone"), ("status", "Status")]
TRANSACTION_COLUMNS = [("id", "ID"), ("book_title", "Book"), ("member_name", "Member"),
                       ("issue_date", "Issued"), ("due_date", "Due"), ("status", "Status"), ("fine", "Fine")]
DASHBOARD_LABELS = [
    ("totalBooks", "Total Books"),
    ("totalCopies", "Total Copies"),
    ("availableCopies", "Available Copies"),
    ("totalMembers", "Active Members"),
    ("issuedBooks", "Issued Books"),
    ("overdueBooks", "Overdue Books"),
]


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_rows(rows: List[Dict[str, Any]], columns: Sequence[Tuple[str, str]], title: str, empty: str) -> None:
    """Print dict rows in the current output mode.

    - plain: one ' | '-separated line per row, or ``empty``
    - json: the full rows as a JSON array
    - rich: a Rich table limited to ``columns``
    """
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False, default=str))
        return

    if not rows:
        print(empty)
        return

    if mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for _, label in columns:
            table.add_column(label)
        for row in rows:
            table.add_row(*(_cell(row.get(key)) for key, _ in columns))
        _console.print(table)
    else:
        for row in rows:
            print(" | ".join(_cell(row.get(key)) for key, _ in columns))


def print_dashboard(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in DASHBOARD_LABELS)
        _console.print(Panel.fit(content, title="Dashboard", border_style="blue"))
    else:
        for key, label in DASHBOARD_LABELS:
            print(f"{label}: {stats.get(key, 0)}")


def print_error(message: str) -> None:
    if get_output_mode() == "json":
        print(json.dumps({"error": message}, ensure_ascii=False))
    elif get_output_mode() == "rich":
        _console.print(f"[bold red]Error:[/] {message}")
    else:
        print(f"Error: {message}")


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)
