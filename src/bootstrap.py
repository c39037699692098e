from functools import partial
from typing import Optional

from booking.application import BookingApplicationService, RoomApplicationService
from booking.domain import BookingCancelled, BookingCreated, BookingPolicy
from booking.infrastructure import (
    BookingUnitOfWork,
    InMemoryRoomRepository,
    JsonFileBookingRepository,
    LoggingLogger,
    sample_rooms,
)
from identity.application import IdentityApplicationService
from identity.infrastructure import InMemoryUserRepository
from shared_kernel import DomainEvent


def log_booking_event(event: DomainEvent, logger: LoggingLogger) -> None:
    """Записывает доменное событие бронирования в журнал аудита."""
    logger.info(f"Audit: {type(event).__name__}", **event.model_dump(mode="json"))


def bootstrap_app(
    policy: Optional[BookingPolicy] = None,
    bookings_file: Optional[str] = None,
    with_sample_rooms: bool = True,
):
    """
    Создает и настраивает все компоненты приложения.

    Настройка обработчиков logging остается за точкой входа.
    """
    policy = policy or BookingPolicy.from_env()
    logger = LoggingLogger("booking")

    # 1. Создаем Unit of Work для контекста бронирования
    booking_uow = BookingUnitOfWork(
        bookings_repo=JsonFileBookingRepository(bookings_file) if bookings_file else None,
        rooms_repo=InMemoryRoomRepository(sample_rooms() if with_sample_rooms else None),
        logger=logger,
    )

    # 2. Создаем сервисы, передавая им зависимости
    booking_service = BookingApplicationService(booking_uow, policy=policy, logger=logger)
    room_service = RoomApplicationService(booking_uow, policy=policy)
    identity_service = IdentityApplicationService(InMemoryUserRepository())

    # 3. Подписываем обработчики на события
    audit = partial(log_booking_event, logger=LoggingLogger("booking.audit"))
    booking_uow.event_bus.subscribe(BookingCreated, audit)
    booking_uow.event_bus.subscribe(BookingCancelled, audit)

    return {
        "booking_uow": booking_uow,
        "booking_service": booking_service,
        "room_service": room_service,
        "identity_service": identity_service,
    }
