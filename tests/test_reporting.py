from datetime import date, timedelta

from transaction import TransactionStatus

TODAY = date(2026, 3, 10)


def test_dashboard_on_empty_library(reporting):
    assert reporting.dashboard(TODAY).value == {
        "total_books": 0,
        "total_copies": 0,
        "available_copies": 0,
        "total_members": 0,
        "issued_books": 0,
        "overdue_books": 0,
    }


def test_dashboard_counts(reporting, circulation, add_book, add_member):
    dune = add_book(copies=2)
    add_book(title="Clean Code", author="Robert C. Martin", copies=3)
    alice = add_member()
    bob = add_member(name="Bob")
    add_member(name="Carol", status="inactive")

    circulation.issue(dune, alice, TODAY + timedelta(days=7), today=TODAY)
    circulation.issue(dune, bob, TODAY - timedelta(days=2), today=TODAY - timedelta(days=16))

    stats = reporting.dashboard(TODAY).value

    assert stats["total_books"] == 2
    assert stats["total_copies"] == 5
    assert stats["available_copies"] == 3
    assert stats["total_members"] == 2
    assert stats["issued_books"] == 2
    # The dashboard sweeps overdue transactions before counting
    assert stats["overdue_books"] == 1


def test_overdue_listing_reclassifies_and_counts_days(reporting, circulation, add_book, add_member):
    book_id = add_book(copies=3)
    late = circulation.issue(book_id, add_member(name="Late Larry"), TODAY - timedelta(days=4),
                             today=TODAY - timedelta(days=18)).value
    later = circulation.issue(book_id, add_member(name="Later Lou"), TODAY - timedelta(days=9),
                              today=TODAY - timedelta(days=23)).value
    circulation.issue(book_id, add_member(name="On Time"), TODAY, today=TODAY - timedelta(days=14))

    overdue = reporting.list_overdue(TODAY).value

    assert [t.id for t in overdue] == [later, late]
    assert [t.to_dict()["days_overdue"] for t in overdue] == [9, 4]
    assert overdue[0].to_dict()["member_name"] == "Later Lou"
    assert all(t.status is TransactionStatus.OVERDUE for t in overdue)


def test_refresh_is_idempotent(reporting, circulation, add_book, add_member):
    circulation.issue(add_book(), add_member(), TODAY - timedelta(days=1), today=TODAY - timedelta(days=15))
    assert reporting.refresh_overdue(TODAY).value == 1
    assert reporting.refresh_overdue(TODAY).value == 0


def test_returned_transactions_are_never_reclassified(reporting, circulation, add_book, add_member):
    txn_id = circulation.issue(add_book(), add_member(), TODAY - timedelta(days=5),
                               today=TODAY - timedelta(days=19)).value
    circulation.return_book(txn_id)

    assert reporting.list_overdue(TODAY).value == []
    with reporting.db.read() as repo:
        assert repo.get_transaction(txn_id).status is TransactionStatus.RETURNED


def test_active_listing_includes_overdue_sorted_by_due_date(reporting, circulation, add_book, add_member):
    book_id = add_book(title="Dune", copies=3)
    soon = circulation.issue(book_id, add_member(), TODAY + timedelta(days=2), today=TODAY).value
    overdue = circulation.issue(book_id, add_member(), TODAY - timedelta(days=3),
                                today=TODAY - timedelta(days=17)).value
    returned = circulation.issue(book_id, add_member(), TODAY + timedelta(days=1), today=TODAY).value
    circulation.return_book(returned)
    reporting.refresh_overdue(TODAY)

    active = reporting.list_active()

    assert [t.id for t in active] == [overdue, soon]
    assert active[0].status is TransactionStatus.OVERDUE
    row = active[1].to_dict()
    assert row["book_title"] == "Dune"
    assert row["member_email"].endswith("@example.com")


def test_list_all_newest_first(reporting, circulation, add_book, add_member):
    first = circulation.issue(add_book(), add_member()).value
    second = circulation.issue(add_book(), add_member()).value
    assert [t.id for t in reporting.list_all()] == [second, first]
