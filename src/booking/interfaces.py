"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, List, Optional, Protocol, Type, TypeVar

from shared_kernel import DomainEvent, EntityId

from .domain import Booking, Room

T_Event = TypeVar("T_Event", bound=DomainEvent)


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


class IEventBus(Protocol):
    """Интерфейс для шины событий."""

    def publish(self, event: DomainEvent) -> None: ...
    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None: ...


class IBookingRepository(Protocol):
    """
    Интерфейс репозитория для бронирований.

    Бронирования не удаляются: меняется только их статус.
    Метод add обязан отклонять активное бронирование, пересекающееся с другим
    активным бронированием той же переговорной на ту же дату.
    """

    def add(self, booking: Booking) -> None: ...
    def get_by_id(self, booking_id: EntityId) -> Optional[Booking]: ...
    def update(self, booking: Booking) -> None: ...
    def find_by_user(self, user_id: EntityId) -> List[Booking]: ...
    def find_upcoming_for_room_on(self, room_id: EntityId, day: date) -> List[Booking]: ...
    def count_upcoming_for_user(self, user_id: EntityId) -> int: ...
    def find_finished_upcoming(self, now: datetime) -> List[Booking]: ...


class IRoomRepository(Protocol):
    """Интерфейс репозитория для переговорных."""

    def add(self, room: Room) -> None: ...
    def get_by_id(self, room_id: EntityId) -> Optional[Room]: ...
    def list_all(self) -> List[Room]: ...


class IBookingUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста Booking."""

    @property
    def bookings(self) -> IBookingRepository: ...
    @property
    def rooms(self) -> IRoomRepository: ...
    @property
    def event_bus(self) -> IEventBus: ...

    def __enter__(self) -> IBookingUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool: ...
    def collect_event(self, event: DomainEvent) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
