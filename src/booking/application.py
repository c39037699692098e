"""
Прикладной слой контекста бронирования.

Содержит сервисы приложения, которые координируют
взаимодействие между внешними интерфейсами и доменной моделью:
собирают снимок состояния из хранилища, передают его движку допуска
и атомарно сохраняют результат.
"""

from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel

from shared_kernel import (
    AuthenticationException,
    BookingStatus,
    BusinessRuleValidationException,
    ConcurrencyException,
    DomainException,
    EntityId,
    EntityNotFoundException,
    format_time,
    now as system_now,
    parse_date,
)

from . import interfaces as ports
from .domain import (
    Booking,
    BookingAdmissionService,
    BookingCancelled,
    BookingCompleted,
    BookingCreated,
    BookingPolicy,
    BookingRejectedException,
    BookingRequest,
    ErrorKind,
    Room,
    TimeSlot,
)

Clock = Callable[[], datetime]

# DTO (Data Transfer Objects) для входящих данных


class CreateBookingRequest(BaseModel):
    """Запрос на создание бронирования (тело POST /api/bookings)."""

    room_id: str
    date: str
    start_time: str
    end_time: str


class CancelBookingRequest(BaseModel):
    """Запрос на отмену бронирования."""

    booking_id: EntityId


# DTO для исходящих данных


class RoomDTO(BaseModel):
    """DTO для представления переговорной."""

    id: EntityId
    name: str
    capacity: int
    equipments: List[str]
    description: Optional[str]
    image_url: Optional[str]

    @classmethod
    def from_domain(cls, room: Room) -> "RoomDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=room.id,
            name=room.name,
            capacity=room.capacity,
            equipments=list(room.equipments),
            description=room.description,
            image_url=room.image_url,
        )


class BookingDTO(BaseModel):
    """DTO для представления бронирования."""

    id: EntityId
    user_id: EntityId
    room_id: EntityId
    date: str
    start_time: str
    end_time: str
    status: BookingStatus
    created_at: str
    room: Optional[RoomDTO] = None

    @classmethod
    def from_domain(cls, booking: Booking, room: Optional[Room] = None) -> "BookingDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            room_id=booking.room_id,
            date=booking.date.isoformat(),
            start_time=format_time(booking.start_time),
            end_time=format_time(booking.end_time),
            status=booking.status,
            created_at=booking.created_at.isoformat(),
            room=RoomDTO.from_domain(room) if room is not None else None,
        )


class TimeSlotDTO(BaseModel):
    """DTO для слота доступности."""

    start: str
    end: str
    available: bool

    @classmethod
    def from_domain(cls, slot: TimeSlot) -> "TimeSlotDTO":
        return cls(
            start=format_time(slot.start),
            end=format_time(slot.end),
            available=slot.available,
        )


# Соответствие ошибок HTTP-статусам для транспортного слоя

HTTP_STATUS_BY_ERROR_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INVALID_TIME_RANGE: 400,
    ErrorKind.PAST_DATE: 400,
    ErrorKind.QUOTA_EXCEEDED: 400,
    ErrorKind.INVALID_STATE: 400,
    ErrorKind.TOO_LATE_TO_CANCEL: 400,
    ErrorKind.SLOT_CONFLICT: 409,
    ErrorKind.FORBIDDEN: 403,
}


def http_status_for(exc: DomainException) -> int:
    """Возвращает HTTP-статус для исключения прикладного слоя."""
    if isinstance(exc, BookingRejectedException):
        return HTTP_STATUS_BY_ERROR_KIND[exc.kind]
    if isinstance(exc, EntityNotFoundException):
        return 404
    if isinstance(exc, AuthenticationException):
        return 401
    if isinstance(exc, BusinessRuleValidationException):
        return 400
    if isinstance(exc, ConcurrencyException):
        # Слот заняли параллельным запросом
        return 409
    return 500


def _as_user_id(user_id: Union[EntityId, str]) -> EntityId:
    """Приводит идентификатор пользователя от транспортного слоя к UUID."""
    if isinstance(user_id, EntityId):
        return user_id
    try:
        return EntityId(str(user_id).strip())
    except ValueError:
        raise AuthenticationException("Некорректный идентификатор пользователя")


# Сервисы приложения


class BookingApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        uow: ports.IBookingUnitOfWork,
        policy: Optional[BookingPolicy] = None,
        logger: Optional[ports.ILogger] = None,
        clock: Clock = system_now,
    ):
        """Инициализирует сервис."""
        self._uow = uow
        self._admission = BookingAdmissionService(policy)
        self._logger = logger
        self._clock = clock

    @property
    def uow(self) -> ports.IBookingUnitOfWork:
        return self._uow

    def create_booking(
        self,
        user_id: Union[EntityId, str],
        request: CreateBookingRequest,
        now: Optional[datetime] = None,
    ) -> BookingDTO:
        """
        Создает новое бронирование от имени пользователя.

        Raises:
            BookingRejectedException: если движок допуска отклонил запрос
            ConcurrencyException: если слот заняли параллельным запросом
            AuthenticationException: если идентификатор пользователя не UUID
        """
        now = now or self._clock()
        user_id = _as_user_id(user_id)
        booking_request = BookingRequest(user_id=user_id, **request.model_dump())

        with self._uow:
            # Снимок собирается один раз внутри транзакции
            existing: List[Booking] = []
            try:
                room_id = EntityId(request.room_id.strip())
                day = parse_date(request.date)
            except ValueError:
                # Разбор и отказ выполнит движок
                pass
            else:
                existing = self._uow.bookings.find_upcoming_for_room_on(room_id, day)

            result = self._admission.try_create_booking(
                booking_request,
                existing_bookings=existing,
                user_upcoming_count=self._uow.bookings.count_upcoming_for_user(user_id),
                now=now,
            )
            if not result.is_accepted:
                self._log_warning(
                    "Booking rejected",
                    user_id=user_id,
                    kind=result.error.kind.value,
                    reason=result.error.message,
                )
            booking = result.unwrap()

            if self._uow.rooms.get_by_id(booking.room_id) is None:
                raise EntityNotFoundException("Переговорная", booking.room_id)

            self._uow.bookings.add(booking)
            self._uow.collect_event(
                BookingCreated(
                    booking_id=booking.id,
                    room_id=booking.room_id,
                    user_id=booking.user_id,
                    date=booking.date,
                    start_time=booking.start_time,
                    end_time=booking.end_time,
                )
            )
            self._uow.commit()

        self._log_info("Booking created", booking_id=booking.id, user_id=user_id)
        return BookingDTO.from_domain(booking)

    def cancel_booking(
        self,
        user_id: Union[EntityId, str],
        request: CancelBookingRequest,
        now: Optional[datetime] = None,
    ) -> BookingDTO:
        """Отменяет бронирование пользователя."""
        now = now or self._clock()
        user_id = _as_user_id(user_id)

        with self._uow:
            booking = self._get_booking(request.booking_id)

            result = self._admission.try_cancel_booking(booking, user_id, now)
            if not result.is_accepted:
                self._log_warning(
                    "Cancellation rejected",
                    booking_id=booking.id,
                    kind=result.error.kind.value,
                )
            cancelled = result.unwrap()

            self._uow.bookings.update(cancelled)
            self._uow.collect_event(
                BookingCancelled(
                    booking_id=cancelled.id,
                    room_id=cancelled.room_id,
                    user_id=cancelled.user_id,
                )
            )
            self._uow.commit()

        self._log_info("Booking cancelled", booking_id=cancelled.id, user_id=user_id)
        return BookingDTO.from_domain(cancelled)

    def get_booking(self, booking_id: EntityId) -> BookingDTO:
        """Возвращает информацию о бронировании."""
        booking = self._get_booking(booking_id)
        return BookingDTO.from_domain(booking, self._uow.rooms.get_by_id(booking.room_id))

    def list_user_bookings(self, user_id: Union[EntityId, str]) -> List[BookingDTO]:
        """Возвращает бронирования пользователя, начиная с самых поздних."""
        bookings = sorted(
            self._uow.bookings.find_by_user(_as_user_id(user_id)),
            key=lambda booking: (booking.date, booking.start_time),
            reverse=True,
        )
        return [
            BookingDTO.from_domain(booking, self._uow.rooms.get_by_id(booking.room_id))
            for booking in bookings
        ]

    def complete_finished_bookings(self, now: Optional[datetime] = None) -> int:
        """
        Переводит прошедшие активные бронирования в статус completed.

        Вызывается внешним планировщиком; возвращает число завершенных бронирований.
        """
        now = now or self._clock()

        with self._uow:
            finished = self._uow.bookings.find_finished_upcoming(now)
            for booking in finished:
                self._uow.bookings.update(booking.complete())
                self._uow.collect_event(BookingCompleted(booking_id=booking.id))
            self._uow.commit()

        if finished:
            self._log_info("Finished bookings completed", count=len(finished))
        return len(finished)

    def _get_booking(self, booking_id: EntityId) -> Booking:
        booking = self._uow.bookings.get_by_id(booking_id)
        if booking is None:
            raise EntityNotFoundException("Бронирование", booking_id)
        return booking

    def _log_info(self, message: str, **kwargs) -> None:
        if self._logger is not None:
            self._logger.info(message, **kwargs)

    def _log_warning(self, message: str, **kwargs) -> None:
        if self._logger is not None:
            self._logger.warning(message, **kwargs)


class RoomApplicationService:
    """Сервис приложения для работы с переговорными."""

    def __init__(self, uow: ports.IBookingUnitOfWork, policy: Optional[BookingPolicy] = None):
        """Инициализирует сервис."""
        self._uow = uow
        self._admission = BookingAdmissionService(policy)

    def list_rooms(self) -> List[RoomDTO]:
        """Возвращает список переговорных, упорядоченный по названию."""
        rooms = sorted(self._uow.rooms.list_all(), key=lambda room: room.name)
        return [RoomDTO.from_domain(room) for room in rooms]

    def get_room(self, room_id: EntityId) -> RoomDTO:
        """Возвращает информацию о переговорной."""
        return RoomDTO.from_domain(self._get_room(room_id))

    def get_availability(
        self, room_id: EntityId, day: Union[date, str, None]
    ) -> List[TimeSlotDTO]:
        """Возвращает сетку часовых слотов переговорной на дату."""
        if not day:
            raise BusinessRuleValidationException("Параметр date обязателен")
        if isinstance(day, str):
            try:
                day = parse_date(day)
            except ValueError:
                raise BusinessRuleValidationException(
                    "Дата должна иметь формат YYYY-MM-DD"
                )

        self._get_room(room_id)
        bookings = self._uow.bookings.find_upcoming_for_room_on(room_id, day)
        slots = self._admission.compute_availability(bookings)
        return [TimeSlotDTO.from_domain(slot) for slot in slots]

    def _get_room(self, room_id: EntityId) -> Room:
        room = self._uow.rooms.get_by_id(room_id)
        if room is None:
            raise EntityNotFoundException("Переговорная", room_id)
        return room
