import logging
import subprocess
import sys
from typing import Optional

import typer

from api import BookIn, DashboardModel, MemberIn
from catalog import CatalogService
from circulation import CirculationService
from config import settings
from database import Database
from membership import MembershipService
from outcome import Outcome
from reporting import ReportingService
from ui_helpers import (
    BOOK_COLUMNS,
    MEMBER_COLUMNS,
    TRANSACTION_COLUMNS,
    print_dashboard,
    print_error,
    print_rows,
    set_output_mode,
)

APP_NAME = "Library CLI"


class LibraryContext:
    """Services for one CLI invocation, all sharing one database handle."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db = Database(db_file)
        self.db.initialize()
        self.catalog = CatalogService(self.db)
        self.membership = MembershipService(self.db)
        self.circulation = CirculationService(self.db)
        self.reporting = ReportingService(self.db)


def _library(ctx: typer.Context) -> LibraryContext:
    if ctx.obj is None:
        ctx.obj = LibraryContext()
    return ctx.obj


def _unwrap(outcome: Outcome):
    """Return the success value, or report the failure and exit non-zero."""
    if not outcome.ok:
        print_error(outcome.error.message)
        raise typer.Exit(code=1)
    return outcome.value


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db_file: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite database file (default: LIBRARY_DB_FILE or library.db)",
    ),
):
    """Global options for the CLI (output mode, database file)."""
    logging.basicConfig(level=settings.log_level)
    if output:
        set_output_mode(output)
    if db_file:
        ctx.obj = LibraryContext(db_file)


@app.command("init-db")
def cli_init_db(ctx: typer.Context):
    """Create the database tables if they do not exist."""
    lib = _library(ctx)
    print(f"Database ready: {lib.db.db_file}")


@app.command("books")
def cli_books(ctx: typer.Context, query: Optional[str] = typer.Argument(None, help="Substring to search for")):
    """List books, or search them by title, author, ISBN or genre."""
    lib = _library(ctx)
    books = lib.catalog.search_books(query) if query else lib.catalog.list_books()
    print_rows([b.to_dict() for b in books], BOOK_COLUMNS, "Books", "No books in library.")


@app.command("add-book")
def cli_add_book(
    ctx: typer.Context,
    title: str,
    author: str,
    isbn: str,
    copies: int = typer.Option(1, "--copies", "-c", min=0, help="Number of copies owned"),
    publisher: Optional[str] = typer.Option(None, "--publisher"),
    year: Optional[int] = typer.Option(None, "--year"),
    genre: Optional[str] = typer.Option(None, "--genre"),
):
    """Add a book to the catalog."""
    lib = _library(ctx)
    payload = BookIn(title=title, author=author, isbn=isbn, publisher=publisher,
                     year_published=year, genre=genre, total_copies=copies)
    book_id = _unwrap(lib.catalog.add_book(payload.to_book()))
    print(f"Book added with id {book_id}")


@app.command("members")
def cli_members(ctx: typer.Context, query: Optional[str] = typer.Argument(None, help="Substring to search for")):
    """List members, or search them by name, email or phone."""
    lib = _library(ctx)
    members = lib.membership.search_members(query) if query else lib.membership.list_members()
    print_rows([m.to_dict() for m in members], MEMBER_COLUMNS, "Members", "No members registered.")


@app.command("add-member")
def cli_add_member(
    ctx: typer.Context,
    name: str,
    email: str,
    phone: Optional[str] = typer.Option(None, "--phone"),
    address: Optional[str] = typer.Option(None, "--address"),
):
    """Register a new (active) member."""
    lib = _library(ctx)
    payload = MemberIn(name=name, email=email, phone=phone, address=address)
    member_id = _unwrap(lib.membership.add_member(payload.to_member()))
    print(f"Member added with id {member_id}")


@app.command("issue")
def cli_issue(
    ctx: typer.Context,
    book_id: int,
    member_id: int,
    due: Optional[str] = typer.Option(None, "--due", help="Due date (YYYY-MM-DD); defaults to the loan period"),
):
    """Issue a book to a member."""
    lib = _library(ctx)
    transaction_id = _unwrap(lib.circulation.issue(book_id, member_id, due))
    print(f"Book issued successfully (transaction {transaction_id})")


@app.command("return")
def cli_return(ctx: typer.Context, transaction_id: int):
    """Return an issued book and report any fine."""
    lib = _library(ctx)
    fine = _unwrap(lib.circulation.return_book(transaction_id))
    print(f"Book returned successfully. Fine: {fine:.2f}")


@app.command("active")
def cli_active(ctx: typer.Context):
    """List open transactions, soonest due first."""
    lib = _library(ctx)
    rows = [t.to_dict() for t in lib.reporting.list_active()]
    print_rows(rows, TRANSACTION_COLUMNS, "Active Transactions", "No books are currently issued.")


@app.command("overdue")
def cli_overdue(ctx: typer.Context):
    """List overdue transactions after refreshing their status."""
    lib = _library(ctx)
    rows = [t.to_dict() for t in _unwrap(lib.reporting.list_overdue())]
    columns = TRANSACTION_COLUMNS + [("days_overdue", "Days Overdue")]
    print_rows(rows, columns, "Overdue Transactions", "No overdue books.")


@app.command("dashboard")
def cli_dashboard(ctx: typer.Context):
    """Show library-wide counts."""
    lib = _library(ctx)
    stats = DashboardModel(**_unwrap(lib.reporting.dashboard()))
    print_dashboard(stats.model_dump(by_alias=True))


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Start the HTTP API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args)
    except FileNotFoundError:
        print_error("`uvicorn` could not be started. Make sure it is installed in this environment.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
