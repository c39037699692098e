"""
Доменная модель контекста бронирования.

Содержит сущности переговорной и бронирования, а также движок допуска
бронирований (BookingAdmissionService): чистые функции, которые по запросу и
снимку текущего состояния хранилища решают, можно ли принять бронирование,
отменить его и какие слоты свободны.

Движок не выполняет ввод-вывод и не читает системные часы: все данные,
включая текущий момент времени, передаются явно вызывающей стороной.
"""

import os
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import ClassVar, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared_kernel import (
    BookingStatus,
    BusinessRuleValidationException,
    DomainEvent,
    EntityId,
    TimeRange,
    combine,
    generate_id,
    parse_date,
    parse_time,
)


class Room(BaseModel):
    """Переговорная комната."""

    model_config = ConfigDict(frozen=True)

    id: EntityId = Field(default_factory=generate_id)
    name: str = Field(..., min_length=1)
    capacity: int = Field(..., gt=0)
    equipments: List[str] = Field(default_factory=list)  # Порядок не важен
    description: Optional[str] = None
    image_url: Optional[str] = None


class Booking(BaseModel):
    """
    Бронирование переговорной на один день.

    Переговорная и пользователь связаны только по идентификатору.
    Объект неизменяем: смена статуса возвращает новую копию.
    """

    model_config = ConfigDict(frozen=True)

    id: EntityId = Field(default_factory=generate_id)
    user_id: EntityId
    room_id: EntityId
    date: date
    start_time: time
    end_time: time
    status: BookingStatus = BookingStatus.UPCOMING
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def end_after_start(self) -> "Booking":
        if self.end_time <= self.start_time:
            raise ValueError("Время окончания должно быть позже времени начала")
        return self

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    @property
    def starts_at(self) -> datetime:
        """Момент начала бронирования."""
        return combine(self.date, self.start_time)

    @property
    def is_upcoming(self) -> bool:
        return self.status == BookingStatus.UPCOMING

    def conflicts_with(self, room_id: EntityId, day: date, period: TimeRange) -> bool:
        """Занимает ли активное бронирование указанный интервал в переговорной."""
        return (
            self.is_upcoming
            and self.room_id == room_id
            and self.date == day
            and self.time_range.overlaps(period)
        )

    def cancel(self) -> "Booking":
        """Возвращает отмененную копию бронирования."""
        return self._transition_to(BookingStatus.CANCELLED)

    def complete(self) -> "Booking":
        """Возвращает завершенную копию бронирования."""
        return self._transition_to(BookingStatus.COMPLETED)

    def _transition_to(self, status: BookingStatus) -> "Booking":
        # Из cancelled и completed переходов нет
        if not self.is_upcoming:
            raise BusinessRuleValidationException(
                f"Невозможно перевести бронирование из статуса {self.status.value} "
                f"в {status.value}"
            )
        return self.model_copy(update={"status": status})


class BookingCreated(DomainEvent):
    """Событие создания бронирования."""

    booking_id: EntityId
    room_id: EntityId
    user_id: EntityId
    date: date
    start_time: time
    end_time: time


class BookingCancelled(DomainEvent):
    """Событие отмены бронирования."""

    booking_id: EntityId
    room_id: EntityId
    user_id: EntityId


class BookingCompleted(DomainEvent):
    """Событие завершения бронирования."""

    booking_id: EntityId


class BookingRequest(BaseModel):
    """
    Запрос на бронирование в том виде, в каком его прислал клиент.

    Поля переговорной, даты и времени могут прийти строками из формы или JSON;
    их разбор и проверка выполняются движком допуска.
    """

    user_id: EntityId
    room_id: Union[EntityId, str]
    date: Union[date, str]
    start_time: Union[time, str]
    end_time: Union[time, str]


class TimeSlot(BaseModel):
    """Часовой слот в сетке доступности переговорной."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time
    available: bool


class ErrorKind(str, Enum):
    """Виды отказов движка допуска."""

    INVALID_INPUT = "invalid_input"
    INVALID_TIME_RANGE = "invalid_time_range"
    PAST_DATE = "past_date"
    QUOTA_EXCEEDED = "quota_exceeded"
    SLOT_CONFLICT = "slot_conflict"
    FORBIDDEN = "forbidden"
    INVALID_STATE = "invalid_state"
    TOO_LATE_TO_CANCEL = "too_late_to_cancel"


class BookingError(BaseModel):
    """Отказ движка с сообщением для пользователя."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    field: Optional[str] = None


class BookingRejectedException(BusinessRuleValidationException):
    """Исключение для вызывающих сторон, предпочитающих исключения результатам."""

    def __init__(self, error: BookingError):
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


class BookingResult(BaseModel):
    """Результат решения движка: принятое бронирование либо отказ."""

    model_config = ConfigDict(frozen=True)

    booking: Optional[Booking] = None
    error: Optional[BookingError] = None

    @model_validator(mode="after")
    def exactly_one_outcome(self) -> "BookingResult":
        if (self.booking is None) == (self.error is None):
            raise ValueError("Результат должен содержать либо бронирование, либо ошибку")
        return self

    @classmethod
    def accepted(cls, booking: Booking) -> "BookingResult":
        return cls(booking=booking)

    @classmethod
    def rejected(
        cls, kind: ErrorKind, message: str, field: Optional[str] = None
    ) -> "BookingResult":
        return cls(error=BookingError(kind=kind, message=message, field=field))

    @property
    def is_accepted(self) -> bool:
        return self.booking is not None

    def unwrap(self) -> Booking:
        """Возвращает бронирование или выбрасывает BookingRejectedException."""
        if self.error is not None:
            raise BookingRejectedException(self.error)
        return self.booking


class BookingPolicy(BaseModel):
    """Политики и бизнес-правила для бронирований."""

    model_config = ConfigDict(frozen=True)

    ENV_PREFIX: ClassVar[str] = "ROOM_BOOKING_"

    max_upcoming_bookings: int = Field(3, gt=0)
    cancellation_lead_time: timedelta = timedelta(hours=2)
    opening_hour: int = Field(8, ge=0, le=22)
    closing_hour: int = Field(20, ge=1, le=23)

    @model_validator(mode="after")
    def opening_before_closing(self) -> "BookingPolicy":
        if self.closing_hour <= self.opening_hour:
            raise ValueError("Час закрытия должен быть позже часа открытия")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BookingPolicy":
        """
        Создает политику из переменных окружения.

        Поддерживаются ROOM_BOOKING_MAX_UPCOMING_BOOKINGS,
        ROOM_BOOKING_CANCELLATION_LEAD_MINUTES, ROOM_BOOKING_OPENING_HOUR и
        ROOM_BOOKING_CLOSING_HOUR; отсутствующие берутся по умолчанию.
        """
        environ = os.environ if environ is None else environ
        values = {}

        for name in ("max_upcoming_bookings", "opening_hour", "closing_hour"):
            raw = environ.get(cls.ENV_PREFIX + name.upper())
            if raw:
                values[name] = int(raw)

        lead_minutes = environ.get(cls.ENV_PREFIX + "CANCELLATION_LEAD_MINUTES")
        if lead_minutes:
            values["cancellation_lead_time"] = timedelta(minutes=int(lead_minutes))

        return cls(**values)


def count_upcoming(bookings: Iterable[Booking]) -> int:
    """Количество активных бронирований."""
    return sum(1 for booking in bookings if booking.is_upcoming)


def _coerce_id(value: Union[EntityId, str]) -> EntityId:
    if isinstance(value, EntityId):
        return value
    return EntityId(value.strip())


def _coerce_date(value: Union[date, str]) -> date:
    if isinstance(value, date):
        return value
    return parse_date(value)


def _coerce_time(value: Union[time, str]) -> time:
    if isinstance(value, time):
        if value.second or value.microsecond:
            raise ValueError("Время указывается с точностью до минуты")
        return value
    return parse_time(value)


class BookingAdmissionService:
    """
    Доменный сервис допуска бронирований.

    Не хранит состояния, кроме политики, и не обращается к хранилищу:
    снимок существующих бронирований собирает вызывающая сторона. Проверка
    конфликтов здесь - рекомендательная; при параллельных запросах от двойного
    бронирования защищает хранилище (см. BookingUnitOfWork).
    """

    # Порядок разбора полей запроса; первая ошибка возвращается сразу
    _REQUEST_FIELDS = (
        ("room_id", _coerce_id, "Некорректный ID переговорной"),
        ("date", _coerce_date, "Дата обязательна и должна иметь формат YYYY-MM-DD"),
        ("start_time", _coerce_time, "Время начала обязательно и должно иметь формат HH:MM"),
        ("end_time", _coerce_time, "Время окончания обязательно и должно иметь формат HH:MM"),
    )

    def __init__(self, policy: Optional[BookingPolicy] = None):
        self.policy = policy or BookingPolicy()

    def try_create_booking(
        self,
        request: BookingRequest,
        existing_bookings: Iterable[Booking],
        user_upcoming_count: int,
        now: datetime,
    ) -> BookingResult:
        """
        Проверяет запрос и создает новое бронирование со статусом upcoming.

        Args:
            request: Запрос клиента
            existing_bookings: Бронирования переговорной на запрошенную дату
            user_upcoming_count: Число активных бронирований пользователя
            now: Текущий момент в локальном календаре вызывающей стороны

        Returns:
            BookingResult с новым бронированием или с первым найденным отказом
        """
        values = {}
        for field, coerce, message in self._REQUEST_FIELDS:
            try:
                values[field] = coerce(getattr(request, field))
            except (ValueError, TypeError, AttributeError):
                return BookingResult.rejected(ErrorKind.INVALID_INPUT, message, field=field)

        room_id, day = values["room_id"], values["date"]
        start_time, end_time = values["start_time"], values["end_time"]

        if start_time >= end_time:
            return BookingResult.rejected(
                ErrorKind.INVALID_TIME_RANGE,
                "Время окончания должно быть позже времени начала",
                field="end_time",
            )

        if day < now.date():
            return BookingResult.rejected(
                ErrorKind.PAST_DATE,
                "Нельзя забронировать переговорную на прошедшую дату",
                field="date",
            )

        if user_upcoming_count >= self.policy.max_upcoming_bookings:
            return BookingResult.rejected(
                ErrorKind.QUOTA_EXCEEDED,
                f"Достигнут лимит в {self.policy.max_upcoming_bookings} "
                f"активных бронирования",
            )

        requested = TimeRange(start=start_time, end=end_time)
        if any(b.conflicts_with(room_id, day, requested) for b in existing_bookings):
            return BookingResult.rejected(
                ErrorKind.SLOT_CONFLICT, "Этот слот уже забронирован"
            )

        return BookingResult.accepted(
            Booking(
                user_id=request.user_id,
                room_id=room_id,
                date=day,
                start_time=start_time,
                end_time=end_time,
                created_at=now,
            )
        )

    def try_cancel_booking(
        self, booking: Booking, requester_id: EntityId, now: datetime
    ) -> BookingResult:
        """Проверяет право на отмену и возвращает отмененную копию бронирования."""
        if booking.user_id != requester_id:
            return BookingResult.rejected(
                ErrorKind.FORBIDDEN, "Бронирование принадлежит другому пользователю"
            )

        if not booking.is_upcoming:
            return BookingResult.rejected(
                ErrorKind.INVALID_STATE, "Это бронирование нельзя отменить"
            )

        lead_time = self.policy.cancellation_lead_time
        if booking.starts_at - now < lead_time:
            hours = lead_time.total_seconds() / 3600
            return BookingResult.rejected(
                ErrorKind.TOO_LATE_TO_CANCEL,
                f"Отмена возможна не позднее чем за {hours:g} ч. до начала",
            )

        return BookingResult.accepted(booking.cancel())

    def compute_availability(self, existing_bookings: Iterable[Booking]) -> List[TimeSlot]:
        """
        Строит сетку часовых слотов рабочего дня переговорной.

        Слот занят, если пересекается хотя бы с одним активным бронированием.
        Бронирования должны относиться к одной переговорной и одной дате.
        """
        taken = [b.time_range for b in existing_bookings if b.is_upcoming]

        slots = []
        for hour in range(self.policy.opening_hour, self.policy.closing_hour):
            slot = TimeRange(start=time(hour=hour), end=time(hour=hour + 1))
            slots.append(
                TimeSlot(
                    start=slot.start,
                    end=slot.end,
                    available=not any(slot.overlaps(period) for period in taken),
                )
            )
        return slots
