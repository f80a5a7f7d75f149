from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class User:
    username: str
    email: str
    password_hash: str
    created_at: str | None = None

    @staticmethod
    def from_document(username: str, document: dict[str, Any]) -> User:
        return User(
            username=username,
            email=document.get("email") or "",
            password_hash=document.get("passwordHash") or "",
            created_at=document.get("createdAt"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "passwordHash": self.password_hash,
            "createdAt": self.created_at,
        }

    def public_dict(self) -> dict[str, Any]:
        """Account fields safe to return to the client (no password hash)."""
        return {
            "username": self.username,
            "email": self.email,
            "createdAt": self.created_at,
        }
