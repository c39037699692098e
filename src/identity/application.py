"""
Прикладной слой контекста учетных записей.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from shared_kernel import (
    AuthenticationException,
    BusinessRuleValidationException,
    EntityId,
)

from . import interfaces as ports
from .domain import User

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not value:
        raise ValueError("Email обязателен")
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Некорректный формат email")
    return value


class RegisterUserRequest(BaseModel):
    """Запрос на регистрацию пользователя."""

    email: str
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    confirm_password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def email_is_valid(cls, v: str) -> str:
        return _normalize_email(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterUserRequest":
        if self.password != self.confirm_password:
            raise ValueError("Пароли не совпадают")
        return self


class LoginRequest(BaseModel):
    """Запрос на вход."""

    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def email_is_valid(cls, v: str) -> str:
        return _normalize_email(v)


class UserDTO(BaseModel):
    """DTO для представления пользователя."""

    id: EntityId
    email: str
    created_at: str

    @classmethod
    def from_domain(cls, user: User) -> "UserDTO":
        """Создает DTO из доменной модели."""
        return cls(id=user.id, email=user.email, created_at=user.created_at.isoformat())


class IdentityApplicationService:
    """Сервис приложения для регистрации и входа пользователей."""

    def __init__(self, users: ports.IUserRepository):
        self._users = users

    def register(self, request: RegisterUserRequest) -> UserDTO:
        """Регистрирует нового пользователя."""
        if self._users.find_by_email(request.email) is not None:
            raise BusinessRuleValidationException(
                f"Пользователь с email {request.email} уже зарегистрирован"
            )

        user = User.register(email=request.email, password=request.password)
        self._users.add(user)
        return UserDTO.from_domain(user)

    def authenticate(self, request: LoginRequest) -> EntityId:
        """Возвращает ID пользователя по учетным данным."""
        user = self._users.find_by_email(request.email)
        if user is None or not user.check_password(request.password):
            raise AuthenticationException("Неверный email или пароль")
        return user.id

    def get_user(self, user_id: EntityId) -> Optional[UserDTO]:
        user = self._users.get_by_id(user_id)
        if user is None:
            return None
        return UserDTO.from_domain(user)
