import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from book import Book
from catalog import CatalogService
from circulation import CirculationService
from config import settings
from database import Database
from errors import LibraryError
from member import Member
from membership import MembershipService
from outcome import Outcome
from reporting import ReportingService

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


# --- Request / response models ---

class BookIn(BaseModel):
    title: str
    author: str
    isbn: str
    publisher: Optional[str] = None
    year_published: Optional[int] = Field(None, ge=0, le=2100)
    genre: Optional[str] = None
    total_copies: int = Field(1, ge=0)

    def to_book(self) -> Book:
        return Book(**self.model_dump())


class BookModel(BookIn):
    id: int
    available_copies: int
    created_at: Optional[str] = None


class MemberIn(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    status: Literal["active", "inactive"] = "active"

    def to_member(self) -> Member:
        return Member(**self.model_dump())


class MemberUpdate(MemberIn):
    """Member edit; leaving out ``status`` keeps the stored one."""

    status: Optional[Literal["active", "inactive"]] = None

    def to_member(self) -> Member:
        return Member(**self.model_dump(exclude_none=True))


class MemberModel(MemberIn):
    id: int
    membership_date: date
    created_at: Optional[str] = None


class IssueRequest(BaseModel):
    book_id: int
    member_id: int
    due_date: Optional[date] = None


class CreatedModel(BaseModel):
    id: int
    message: str


class MessageModel(BaseModel):
    message: str


class ReturnModel(BaseModel):
    message: str
    fine: float = Field(..., ge=0)


class TransactionModel(BaseModel):
    id: int
    book_id: int
    member_id: int
    issue_date: date
    due_date: date
    return_date: Optional[date] = None
    fine: float
    status: str
    created_at: Optional[str] = None
    book_title: Optional[str] = None
    isbn: Optional[str] = None
    member_name: Optional[str] = None
    member_email: Optional[str] = None
    days_overdue: Optional[int] = None


class DashboardModel(BaseModel):
    """Dashboard counts, serialized with the camelCase keys the browser front end reads."""

    model_config = ConfigDict(populate_by_name=True)

    total_books: int = Field(..., alias="totalBooks")
    total_members: int = Field(..., alias="totalMembers")
    issued_books: int = Field(..., alias="issuedBooks")
    overdue_books: int = Field(..., alias="overdueBooks")
    total_copies: int = Field(..., alias="totalCopies")
    available_copies: int = Field(..., alias="availableCopies")


# --- Service wiring ---

def _catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def _membership(request: Request) -> MembershipService:
    return request.app.state.membership


def _circulation(request: Request) -> CirculationService:
    return request.app.state.circulation


def _reporting(request: Request) -> ReportingService:
    return request.app.state.reporting


def unwrap(outcome: Outcome):
    """Return the success value or raise the failure for the error handler."""
    return outcome.unwrap()


# --- Books ---

books_router = APIRouter(prefix="/api/books", tags=["books"])


@books_router.get("", response_model=List[BookModel])
def list_books(catalog: CatalogService = Depends(_catalog)):
    return [b.to_dict() for b in catalog.list_books()]


@books_router.get("/search", response_model=List[BookModel])
def search_books(q: str = Query("", description="Substring of title, author, ISBN or genre"),
                 catalog: CatalogService = Depends(_catalog)):
    return [b.to_dict() for b in catalog.search_books(q)]


@books_router.get("/{book_id}", response_model=BookModel)
def get_book(book_id: int, catalog: CatalogService = Depends(_catalog)):
    return unwrap(catalog.get_book(book_id)).to_dict()


@books_router.post("", response_model=CreatedModel, status_code=201)
def add_book(payload: BookIn, catalog: CatalogService = Depends(_catalog)):
    book_id = unwrap(catalog.add_book(payload.to_book()))
    return {"id": book_id, "message": "Book added successfully"}


@books_router.put("/{book_id}", response_model=MessageModel)
def update_book(book_id: int, payload: BookIn, catalog: CatalogService = Depends(_catalog)):
    unwrap(catalog.update_book(book_id, payload.to_book()))
    return {"message": "Book updated successfully"}


@books_router.delete("/{book_id}", response_model=MessageModel)
def delete_book(book_id: int, catalog: CatalogService = Depends(_catalog)):
    unwrap(catalog.delete_book(book_id))
    return {"message": "Book deleted successfully"}


# --- Members ---

members_router = APIRouter(prefix="/api/members", tags=["members"])


@members_router.get("", response_model=List[MemberModel])
def list_members(membership: MembershipService = Depends(_membership)):
    return [m.to_dict() for m in membership.list_members()]


@members_router.get("/search", response_model=List[MemberModel])
def search_members(q: str = Query("", description="Substring of name, email or phone"),
                   membership: MembershipService = Depends(_membership)):
    return [m.to_dict() for m in membership.search_members(q)]


@members_router.get("/{member_id}", response_model=MemberModel)
def get_member(member_id: int, membership: MembershipService = Depends(_membership)):
    return unwrap(membership.get_member(member_id)).to_dict()


@members_router.post("", response_model=CreatedModel, status_code=201)
def add_member(payload: MemberIn, membership: MembershipService = Depends(_membership)):
    member_id = unwrap(membership.add_member(payload.to_member()))
    return {"id": member_id, "message": "Member added successfully"}


@members_router.put("/{member_id}", response_model=MessageModel)
def update_member(member_id: int, payload: MemberUpdate, membership: MembershipService = Depends(_membership)):
    unwrap(membership.update_member(member_id, payload.to_member(), keep_status=payload.status is None))
    return {"message": "Member updated successfully"}


@members_router.delete("/{member_id}", response_model=MessageModel)
def delete_member(member_id: int, membership: MembershipService = Depends(_membership)):
    unwrap(membership.delete_member(member_id))
    return {"message": "Member deleted successfully"}


# --- Transactions ---

transactions_router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@transactions_router.get("", response_model=List[TransactionModel])
def list_transactions(reporting: ReportingService = Depends(_reporting)):
    return [t.to_dict() for t in reporting.list_all()]


@transactions_router.get("/active", response_model=List[TransactionModel])
def list_active(reporting: ReportingService = Depends(_reporting)):
    return [t.to_dict() for t in reporting.list_active()]


@transactions_router.get("/overdue", response_model=List[TransactionModel])
def list_overdue(reporting: ReportingService = Depends(_reporting)):
    return [t.to_dict() for t in unwrap(reporting.list_overdue())]


@transactions_router.post("/issue", response_model=CreatedModel, status_code=201)
def issue_book(payload: IssueRequest, circulation: CirculationService = Depends(_circulation)):
    transaction_id = unwrap(circulation.issue(payload.book_id, payload.member_id, payload.due_date))
    return {"id": transaction_id, "message": "Book issued successfully"}


@transactions_router.post("/return/{transaction_id}", response_model=ReturnModel)
def return_book(transaction_id: int, circulation: CirculationService = Depends(_circulation)):
    fine = unwrap(circulation.return_book(transaction_id))
    return {"message": "Book returned successfully", "fine": fine}


@transactions_router.get("/stats/dashboard", response_model=DashboardModel, response_model_by_alias=True)
def dashboard(reporting: ReportingService = Depends(_reporting)):
    return DashboardModel(**unwrap(reporting.dashboard()))


# --- Application ---

def create_app(db: Optional[Database] = None) -> FastAPI:
    """Build the API around ``db`` (defaults to the configured database file)."""
    db = db or Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.initialize()
        yield

    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug,
                  lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db = db
    app.state.catalog = CatalogService(db)
    app.state.membership = MembershipService(db)
    app.state.circulation = CirculationService(db)
    app.state.reporting = ReportingService(db)

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})

    @app.exception_handler(sqlite3.Error)
    async def database_error_handler(request: Request, exc: sqlite3.Error):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/")
    def read_root():
        return {"message": f"{settings.app_name} is running"}

    @app.get("/health")
    def health():
        """Lightweight health check: database reachability plus a timestamp."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "db": db.ping(),
        }

    app.include_router(books_router)
    app.include_router(members_router)
    app.include_router(transactions_router)
    return app


app = create_app()
