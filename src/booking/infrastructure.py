"""
Инфраструктурный слой контекста бронирования.

Содержит реализации репозиториев и других интерфейсов,
зависимые от конкретных технологий (память, файлы, логирование).
"""

import json
import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Type
from uuid import UUID

from shared_kernel import ConcurrencyException, DomainEvent, EntityId, combine

from . import interfaces as ports
from .domain import Booking, Room, count_upcoming

BookingCheckpoint = Dict[EntityId, Booking]


class InMemoryBookingRepository(ports.IBookingRepository):
    """
    Реализация репозитория бронирований в памяти.

    Чтения и записи защищены блокировкой: запросы на чтение могут
    выполняться вне единицы работы параллельно с записью.
    """

    def __init__(self) -> None:
        self._bookings: Dict[EntityId, Booking] = {}
        self._lock = threading.RLock()

    def get_by_id(self, booking_id: EntityId) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def add(self, booking: Booking) -> None:
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking with id {booking.id} already exists")

            # Вторая линия защиты от двойного бронирования слота
            period = booking.time_range
            if booking.is_upcoming and any(
                existing.conflicts_with(booking.room_id, booking.date, period)
                for existing in self._bookings.values()
            ):
                raise ConcurrencyException(
                    f"Room {booking.room_id} is already booked on {booking.date} "
                    f"between {booking.start_time} and {booking.end_time}"
                )

            self._bookings[booking.id] = booking

    def update(self, booking: Booking) -> None:
        with self._lock:
            if booking.id not in self._bookings:
                raise KeyError(f"Booking with id {booking.id} not found")
            self._bookings[booking.id] = booking

    def find_by_user(self, user_id: EntityId) -> List[Booking]:
        return [booking for booking in self._all() if booking.user_id == user_id]

    def find_upcoming_for_room_on(self, room_id: EntityId, day: date) -> List[Booking]:
        return [
            booking for booking in self._all()
            if booking.room_id == room_id and booking.date == day and booking.is_upcoming
        ]

    def count_upcoming_for_user(self, user_id: EntityId) -> int:
        return count_upcoming(self.find_by_user(user_id))

    def find_finished_upcoming(self, now: datetime) -> List[Booking]:
        return [
            booking for booking in self._all()
            if booking.is_upcoming and combine(booking.date, booking.end_time) <= now
        ]

    def checkpoint(self) -> BookingCheckpoint:
        """Снимок состояния для отката транзакции."""
        with self._lock:
            return dict(self._bookings)

    def restore(self, checkpoint: BookingCheckpoint) -> None:
        with self._lock:
            self._bookings = dict(checkpoint)

    def _all(self) -> List[Booking]:
        with self._lock:
            return list(self._bookings.values())


class JsonFileBookingRepository(InMemoryBookingRepository):
    """Репозиторий бронирований, сохраняющий данные в JSON-файл."""

    def __init__(self, file_path: str):
        """
        Инициализирует репозиторий.

        Args:
            file_path: Путь к JSON-файлу с данными
        """
        super().__init__()
        self._file_path = Path(file_path)
        self._load_data()

    def add(self, booking: Booking) -> None:
        with self._lock:
            super().add(booking)
            self._save_data()

    def update(self, booking: Booking) -> None:
        with self._lock:
            super().update(booking)
            self._save_data()

    def restore(self, checkpoint: BookingCheckpoint) -> None:
        with self._lock:
            # Откат без изменений не переписывает файл
            if checkpoint == self._bookings:
                return
            super().restore(checkpoint)
            self._save_data()

    def _load_data(self) -> None:
        """Загружает данные из JSON-файла."""
        if not self._file_path.exists():
            return

        raw_data = self._file_path.read_text(encoding="utf-8")
        if not raw_data.strip():
            return

        items = json.loads(raw_data)
        self._bookings = {
            UUID(item["id"]): Booking.model_validate(item)
            for item in items
        }

    def _save_data(self) -> None:
        """Сохраняет данные в JSON-файл."""
        self._file_path.parent.mkdir(parents=True, exist_ok=True)

        data = [booking.model_dump(mode="json") for booking in self._bookings.values()]
        with open(self._file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)


class InMemoryRoomRepository(ports.IRoomRepository):
    """Реализация репозитория переговорных в памяти."""

    def __init__(self, rooms: Optional[Iterable[Room]] = None):
        self._rooms: Dict[EntityId, Room] = {}
        for room in rooms or ():
            self.add(room)

    def add(self, room: Room) -> None:
        if room.id in self._rooms:
            raise ValueError(f"Room with id {room.id} already exists")
        self._rooms[room.id] = room

    def get_by_id(self, room_id: EntityId) -> Optional[Room]:
        return self._rooms.get(room_id)

    def list_all(self) -> List[Room]:
        return list(self._rooms.values())


def sample_rooms() -> List[Room]:
    """Тестовые данные для демонстрационного запуска."""
    return [
        Room(
            id=UUID("11111111-1111-1111-1111-111111111111"),
            name="Альфа",
            capacity=4,
            equipments=["Телевизор", "Wi-Fi"],
            description="Небольшая комната для созвонов",
        ),
        Room(
            id=UUID("22222222-2222-2222-2222-222222222222"),
            name="Бета",
            capacity=8,
            equipments=["Проектор", "Доска", "Wi-Fi"],
        ),
        Room(
            id=UUID("33333333-3333-3333-3333-333333333333"),
            name="Гамма",
            capacity=20,
            equipments=["Проектор", "Микрофоны", "Видеосвязь", "Wi-Fi"],
            description="Конференц-зал",
        ),
    ]


class LoggingLogger(ports.ILogger):
    """Реализация логгера поверх стандартного модуля logging."""

    def __init__(self, name: str = "booking"):
        self._logger = logging.getLogger(name)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def _log(self, level: int, message: str, context: dict) -> None:
        if context:
            message = f"{message} | {json.dumps(context, default=str, ensure_ascii=False)}"
        self._logger.log(level, message)


class InMemoryEventBus(ports.IEventBus):
    """Реализация шины событий в памяти."""

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._logger = logger or LoggingLogger()

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        event_type = type(event)
        if event_type not in self._subscribers:
            self._logger.debug(f"No subscribers for event type {event_type.__name__}")
            return

        self._logger.debug(f"Publishing event: {event_type.__name__}", event=event.model_dump())

        for handler in self._subscribers[event_type]:
            try:
                handler(event)
            except Exception as e:
                self._logger.error(
                    f"Error in event handler for {event_type.__name__}",
                    error=str(e),
                    event=event.model_dump(),
                )

    def subscribe(self, event_type: Type[DomainEvent], handler) -> None:
        """Подписывает обработчик на события указанного типа."""
        self._subscribers.setdefault(event_type, []).append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


class BookingUnitOfWork(ports.IBookingUnitOfWork):
    """
    Единица работы для контекста бронирования.

    Блок with удерживает блокировку на всю последовательность
    чтение-проверка-запись, поэтому два конкурирующих запроса на один слот
    выполняются последовательно. Изменения бронирований откатываются при
    исключении, а собранные события публикуются только после фиксации.
    """

    def __init__(
        self,
        bookings_repo: Optional[InMemoryBookingRepository] = None,
        rooms_repo: Optional[ports.IRoomRepository] = None,
        event_bus: Optional[ports.IEventBus] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        self._logger = logger or LoggingLogger()
        self._bookings = bookings_repo if bookings_repo is not None else InMemoryBookingRepository()
        self._rooms = rooms_repo if rooms_repo is not None else InMemoryRoomRepository()
        self._event_bus = event_bus or InMemoryEventBus(self._logger)
        self._lock = threading.RLock()
        self._checkpoint: BookingCheckpoint = {}
        self._pending_events: List[DomainEvent] = []
        self._committed = False

    @property
    def bookings(self) -> InMemoryBookingRepository:
        return self._bookings

    @property
    def rooms(self) -> ports.IRoomRepository:
        return self._rooms

    @property
    def event_bus(self) -> ports.IEventBus:
        return self._event_bus

    def collect_event(self, event: DomainEvent) -> None:
        """Откладывает публикацию события до фиксации."""
        self._pending_events.append(event)

    def commit(self) -> None:
        """Фиксирует все изменения и публикует накопленные события."""
        events, self._pending_events = self._pending_events, []
        self._checkpoint = self._bookings.checkpoint()
        self._committed = True
        self._logger.info("BookingUnitOfWork committed", events=len(events))

        for event in events:
            self._event_bus.publish(event)

    def rollback(self) -> None:
        """Откатывает все изменения."""
        self._bookings.restore(self._checkpoint)
        self._pending_events = []
        self._committed = False
        self._logger.warning("BookingUnitOfWork rolled back")

    def __enter__(self) -> "BookingUnitOfWork":
        self._lock.acquire()
        self._checkpoint = self._bookings.checkpoint()
        self._pending_events = []
        self._committed = False
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            if exc_type is not None:
                self.rollback()
            elif not self._committed:
                self.commit()
        finally:
            self._lock.release()
        return False  # Пробрасываем исключение дальше, если оно было
