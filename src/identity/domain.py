"""
Доменная модель контекста учетных записей.

Контекст играет роль поставщика идентичности для бронирований:
регистрирует пользователей и по учетным данным возвращает их ID.
"""

from datetime import datetime

from passlib.hash import pbkdf2_sha256
from pydantic import BaseModel, ConfigDict, Field

from shared_kernel import EntityId, generate_id


def hash_password(password: str) -> str:
    """Возвращает хеш пароля в модульном формате passlib ($pbkdf2-sha256$...)."""
    return pbkdf2_sha256.hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """Проверяет пароль по сохраненному хешу."""
    try:
        return pbkdf2_sha256.verify(password, encoded)
    except ValueError:
        # Строка не является хешем pbkdf2_sha256
        return False


class User(BaseModel):
    """Зарегистрированный пользователь."""

    model_config = ConfigDict(frozen=True)

    id: EntityId = Field(default_factory=generate_id)
    email: str
    password_hash: str = Field(..., repr=False)
    created_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def register(cls, email: str, password: str) -> "User":
        """Создает пользователя с захешированным паролем."""
        return cls(email=email.strip().lower(), password_hash=hash_password(password))

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)
