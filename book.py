from __future__ import annotations


class Book:
    """A catalogued title and how many of its copies are on the shelf."""

    def __init__(self, title: str, author: str, isbn: str, publisher: str | None = None,
                 year_published: int | None = None, genre: str | None = None,
                 total_copies: int = 1, available_copies: int | None = None,
                 id: int | None = None, created_at: str | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.isbn = isbn.strip()
        self.publisher = publisher
        self.year_published = year_published
        self.genre = genre
        self.total_copies = total_copies
        # A freshly catalogued book has every copy available
        self.available_copies = total_copies if available_copies is None else available_copies
        self.created_at = created_at

    def __str__(self) -> str:
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    @property
    def issued_copies(self) -> int:
        return self.total_copies - self.available_copies

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "publisher": self.publisher,
            "year_published": self.year_published,
            "genre": self.genre,
            "total_copies": self.total_copies,
            "available_copies": self.available_copies,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"],
            author=data["author"],
            isbn=data["isbn"],
            publisher=data.get("publisher"),
            year_published=data.get("year_published"),
            genre=data.get("genre"),
            total_copies=data.get("total_copies", 1),
            available_copies=data.get("available_copies"),
            created_at=data.get("created_at"),
        )
