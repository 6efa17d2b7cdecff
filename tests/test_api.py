from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from api import create_app


@pytest.fixture
def client(db):
    with TestClient(create_app(db)) as test_client:
        yield test_client


def create_book(client, isbn="9780441172719", copies=1, **extra):
    payload = {"title": "Dune", "author": "Frank Herbert", "isbn": isbn, "total_copies": copies}
    payload.update(extra)
    response = client.post("/api/books", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def create_member(client, email="alice@example.com", **extra):
    payload = {"name": "Alice Reader", "email": email}
    payload.update(extra)
    response = client.post("/api/members", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["db"] is True


def test_book_lifecycle(client):
    book_id = create_book(client, copies=2, genre="Science Fiction")

    response = client.get(f"/api/books/{book_id}")
    assert response.status_code == 200
    assert response.json()["available_copies"] == 2

    response = client.put(f"/api/books/{book_id}", json={
        "title": "Dune", "author": "Frank Herbert", "isbn": "9780441172719", "total_copies": 4,
    })
    assert response.status_code == 200
    assert response.json() == {"message": "Book updated successfully"}
    assert client.get(f"/api/books/{book_id}").json()["available_copies"] == 4

    assert [b["id"] for b in client.get("/api/books/search", params={"q": "fiction"}).json()] == [book_id]

    assert client.delete(f"/api/books/{book_id}").status_code == 200
    response = client.get(f"/api/books/{book_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "Book not found"}


def test_duplicate_isbn_is_400(client):
    create_book(client)
    response = client.post("/api/books", json={"title": "Dune", "author": "F. H.", "isbn": "9780441172719"})
    assert response.status_code == 400
    assert response.json() == {"error": "A book with this ISBN already exists"}


def test_malformed_body_is_400_with_error(client):
    response = client.post("/api/books", json={"title": "No author", "isbn": "1", "total_copies": -1})
    assert response.status_code == 400
    assert "error" in response.json()


def test_member_crud_and_search(client):
    member_id = create_member(client, phone="555-0100")
    assert client.get(f"/api/members/{member_id}").json()["status"] == "active"

    response = client.put(f"/api/members/{member_id}", json={
        "name": "Alice Reader", "email": "alice@example.com", "status": "inactive",
    })
    assert response.status_code == 200
    assert client.get(f"/api/members/{member_id}").json()["status"] == "inactive"

    assert [m["id"] for m in client.get("/api/members/search", params={"q": "0100"}).json()] == [member_id]
    assert client.delete(f"/api/members/{member_id}").status_code == 200
    assert client.delete(f"/api/members/{member_id}").status_code == 404


def test_member_edit_without_status_keeps_it(client):
    member_id = create_member(client, status="inactive")

    response = client.put(f"/api/members/{member_id}", json={
        "name": "Alice Reader", "email": "alice@example.com", "phone": "555-0142",
    })

    assert response.status_code == 200
    member = client.get(f"/api/members/{member_id}").json()
    assert member["status"] == "inactive"
    assert member["phone"] == "555-0142"


def test_member_edit_with_status_changes_it(client):
    member_id = create_member(client, status="inactive")

    client.put(f"/api/members/{member_id}", json={
        "name": "Alice Reader", "email": "alice@example.com", "status": "active",
    })

    assert client.get(f"/api/members/{member_id}").json()["status"] == "active"


def test_member_edit_unknown_member(client):
    response = client.put("/api/members/404", json={"name": "Ghost", "email": "ghost@example.com"})
    assert response.status_code == 404
    assert response.json() == {"error": "Member not found"}


def test_issue_and_return_flow(client):
    book_id = create_book(client)
    member_id = create_member(client)
    due = (date.today() + timedelta(days=14)).isoformat()

    response = client.post("/api/transactions/issue",
                           json={"book_id": book_id, "member_id": member_id, "due_date": due})
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Book issued successfully"
    txn_id = body["id"]
    assert client.get(f"/api/books/{book_id}").json()["available_copies"] == 0

    response = client.post("/api/transactions/issue",
                           json={"book_id": book_id, "member_id": member_id, "due_date": due})
    assert response.status_code == 400
    assert response.json() == {"error": "No copies available for this book"}

    active = client.get("/api/transactions/active").json()
    assert [t["id"] for t in active] == [txn_id]
    assert active[0]["book_title"] == "Dune"
    assert active[0]["member_name"] == "Alice Reader"

    response = client.post(f"/api/transactions/return/{txn_id}")
    assert response.status_code == 200
    assert response.json() == {"message": "Book returned successfully", "fine": 0.0}
    assert client.get(f"/api/books/{book_id}").json()["available_copies"] == 1

    response = client.post(f"/api/transactions/return/{txn_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "Active transaction not found"}


@pytest.mark.parametrize("book_exists, member_kwargs, status, error", [
    (False, {}, 404, "Book not found"),
    (True, None, 404, "Member not found"),
    (True, {"status": "inactive"}, 400, "Member account is inactive"),
])
def test_issue_failures(client, book_exists, member_kwargs, status, error):
    book_id = create_book(client) if book_exists else 999
    member_id = create_member(client, **member_kwargs) if member_kwargs is not None else 999

    response = client.post("/api/transactions/issue", json={"book_id": book_id, "member_id": member_id})

    assert response.status_code == status
    assert response.json() == {"error": error}
    assert client.get("/api/transactions").json() == []


def test_overdue_and_dashboard(client):
    book_id = create_book(client, copies=2)
    member_id = create_member(client)
    past_due = (date.today() - timedelta(days=3)).isoformat()
    txn_id = client.post("/api/transactions/issue",
                         json={"book_id": book_id, "member_id": member_id, "due_date": past_due}).json()["id"]

    overdue = client.get("/api/transactions/overdue").json()
    assert [t["id"] for t in overdue] == [txn_id]
    assert overdue[0]["status"] == "overdue"
    assert overdue[0]["days_overdue"] == 3

    assert client.get("/api/transactions/stats/dashboard").json() == {
        "totalBooks": 1,
        "totalMembers": 1,
        "issuedBooks": 1,
        "overdueBooks": 1,
        "totalCopies": 2,
        "availableCopies": 1,
    }

    response = client.post(f"/api/transactions/return/{txn_id}")
    assert response.json()["fine"] == 3.0


def test_issue_defaults_due_date(client):
    book_id = create_book(client)
    member_id = create_member(client)
    client.post("/api/transactions/issue", json={"book_id": book_id, "member_id": member_id})
    [txn] = client.get("/api/transactions").json()
    assert txn["due_date"] == (date.today() + timedelta(days=14)).isoformat()
