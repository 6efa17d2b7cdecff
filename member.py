from __future__ import annotations

from datetime import date
from enum import Enum

from validators import as_date


class MemberStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Member:
    """A library patron. Only active members may borrow."""

    def __init__(self, name: str, email: str, phone: str | None = None, address: str | None = None,
                 membership_date: date | str | None = None, status: MemberStatus | str = MemberStatus.ACTIVE,
                 id: int | None = None, created_at: str | None = None) -> None:
        self.id = id
        self.name = name.strip()
        self.email = email.strip()
        self.phone = phone
        self.address = address
        self.membership_date = as_date(membership_date) or date.today()
        self.status = MemberStatus(status)
        self.created_at = created_at

    def __str__(self) -> str:
        return f"{self.name} <{self.email}> ({self.status.value})"

    @property
    def is_active(self) -> bool:
        return self.status is MemberStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "membership_date": self.membership_date.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Member":
        return Member(
            id=data.get("id"),
            name=data["name"],
            email=data["email"],
            phone=data.get("phone"),
            address=data.get("address"),
            membership_date=data.get("membership_date"),
            status=data.get("status") or MemberStatus.ACTIVE,
            created_at=data.get("created_at"),
        )
