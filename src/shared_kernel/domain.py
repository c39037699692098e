"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Общие типы идентификаторов
EntityId = UUID


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=datetime.now)


# Общие перечисления
class BookingStatus(str, Enum):
    """Статусы бронирования."""

    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class ConcurrencyException(DomainException):
    """Исключение при конфликте одновременных изменений."""

    pass


class BusinessRuleValidationException(DomainException):
    """Исключение при нарушении бизнес-правил."""

    pass


class AuthenticationException(DomainException):
    """Исключение: неверные учетные данные."""

    pass


class EntityNotFoundException(DomainException):
    """Исключение: сущность не найдена."""

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} с ID {entity_id} не найден(а)")
        self.entity = entity
        self.entity_id = entity_id


# Время и даты
DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: str) -> date:
    """
    Разбирает дату в формате YYYY-MM-DD.

    Raises:
        ValueError: если строка пустая или не является корректной датой
    """
    if not value or not value.strip():
        raise ValueError("Дата обязательна")
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def parse_time(value: str) -> time:
    """
    Разбирает время суток в формате HH:MM или HH:MM:SS.

    Точность - минута: время с ненулевыми секундами отклоняется.

    Raises:
        ValueError: если строка пустая или не является корректным временем
    """
    if not value or not value.strip():
        raise ValueError("Время обязательно")

    raw = value.strip()
    parts = raw.split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValueError(f"Некорректный формат времени: {raw}")

    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    if second != 0:
        raise ValueError("Время указывается с точностью до минуты")
    return time(hour=hour, minute=minute)


def format_time(value: time) -> str:
    """Форматирует время как HH:MM."""
    return value.strftime("%H:%M")


def combine(day: date, at: time) -> datetime:
    """Возвращает момент времени для даты и времени суток."""
    return datetime.combine(day, at)


class TimeRange(BaseModel):
    """Полуоткрытый интервал времени суток [start, end)."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @model_validator(mode="after")
    def end_after_start(self) -> "TimeRange":
        if self.end <= self.start:
            raise ValueError("Время окончания должно быть позже времени начала")
        return self

    def overlaps(self, other: "TimeRange") -> bool:
        """Пересекаются ли интервалы (касание концами пересечением не считается)."""
        return self.start < other.end and self.end > other.start


# Общие утилиты
def now() -> datetime:
    """Возвращает текущие локальные дату и время."""
    return datetime.now()
