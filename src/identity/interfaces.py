"""
Интерфейсы (порты) для контекста учетных записей.
"""

from typing import Optional, Protocol

from shared_kernel import EntityId

from .domain import User


class IUserRepository(Protocol):
    """Интерфейс репозитория пользователей."""

    def add(self, user: User) -> None: ...
    def get_by_id(self, user_id: EntityId) -> Optional[User]: ...
    def find_by_email(self, email: str) -> Optional[User]: ...
