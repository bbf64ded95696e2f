# Overview: Users are only the source of the acting role for lifecycle actions.

from __future__ import annotations

from typing import Optional

from ..domain import Role, User
from ..errors import ValidationError
from ..storage import UserStore


class UserDirectory:
    def __init__(self, store: UserStore):
        self.store = store

    def list_users(self) -> list[User]:
        return self.store.list_users()

    def get_by_name(self, name: Optional[str]) -> Optional[User]:
        if not name or not name.strip():
            return None
        return self.store.get_user_by_name(name.strip())

    def create_user(self, name: str, role: Role = Role.REGULAR) -> User:
        """Raises ConflictError when the name is already taken."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Invalid user", fields={"name": "name cannot be blank"})
        return self.store.create_user(name, Role.parse(role))
