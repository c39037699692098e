"""
Инфраструктурный слой контекста учетных записей.
"""

from typing import Dict, Optional

from shared_kernel import EntityId

from . import interfaces as ports
from .domain import User


class InMemoryUserRepository(ports.IUserRepository):
    """Реализация репозитория пользователей в памяти."""

    def __init__(self) -> None:
        self._users: Dict[EntityId, User] = {}
        self._email_index: Dict[str, User] = {}

    def get_by_id(self, user_id: EntityId) -> Optional[User]:
        return self._users.get(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return self._email_index.get(email.strip().lower())

    def add(self, user: User) -> None:
        if user.id in self._users:
            raise ValueError(f"User with id {user.id} already exists")
        if user.email.lower() in self._email_index:
            raise ValueError(f"User with email {user.email} already exists")

        self._users[user.id] = user
        self._email_index[user.email.lower()] = user
