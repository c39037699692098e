"""
Общее ядро (Shared Kernel) системы бронирования переговорных.

Содержит общие типы данных и утилиты, используемые в различных ограниченных контекстах.
"""

from .domain import (
    AuthenticationException,
    # Перечисления
    BookingStatus,
    BusinessRuleValidationException,
    ConcurrencyException,
    DomainEvent,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    EntityNotFoundException,
    TimeRange,
    # Утилиты
    combine,
    format_time,
    generate_id,
    now,
    parse_date,
    parse_time,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "generate_id",
    "DomainEvent",
    "TimeRange",
    # Перечисления
    "BookingStatus",
    # Исключения
    "DomainException",
    "AuthenticationException",
    "ConcurrencyException",
    "BusinessRuleValidationException",
    "EntityNotFoundException",
    # Утилиты
    "parse_date",
    "parse_time",
    "format_time",
    "combine",
    "now",
]
