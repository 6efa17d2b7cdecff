import pytest

from book import Book
from catalog import CatalogService
from circulation import CirculationService
from database import Database
from member import Member
from membership import MembershipService
from reporting import ReportingService


@pytest.fixture
def db(tmp_path, request):
    # A separate database file for every test
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    database = Database(db_file)
    database.initialize()
    yield database


@pytest.fixture
def catalog(db):
    return CatalogService(db)


@pytest.fixture
def membership(db):
    return MembershipService(db)


@pytest.fixture
def circulation(db):
    return CirculationService(db, fine_per_day=1.00, default_loan_days=14)


@pytest.fixture
def reporting(db):
    return ReportingService(db)


@pytest.fixture
def add_book(catalog):
    """Catalogue a book and return its id."""
    counter = {"n": 0}

    def _add(title="Dune", author="Frank Herbert", copies=1, isbn=None, genre=None):
        counter["n"] += 1
        isbn = isbn or f"97800000000{counter['n']:02d}"
        outcome = catalog.add_book(Book(title, author, isbn, genre=genre, total_copies=copies))
        assert outcome.ok, outcome
        return outcome.value

    return _add


@pytest.fixture
def add_member(membership):
    """Register a member and return its id."""
    counter = {"n": 0}

    def _add(name="Alice Reader", email=None, status="active", phone=None):
        counter["n"] += 1
        email = email or f"reader{counter['n']}@example.com"
        outcome = membership.add_member(Member(name, email, phone=phone, status=status))
        assert outcome.ok, outcome
        return outcome.value

    return _add
