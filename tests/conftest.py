"""
Общие фикстуры для тестов.
"""

from datetime import date, datetime, time
from uuid import uuid4

import pytest

from booking.application import BookingApplicationService, RoomApplicationService
from booking.domain import Booking, BookingAdmissionService, BookingPolicy, Room
from booking.infrastructure import BookingUnitOfWork, InMemoryRoomRepository
from shared_kernel import BookingStatus

# Фиксированный "текущий момент": 19 октября 2026, 09:00 по местному времени
NOW = datetime(2026, 10, 19, 9, 0)
TODAY = NOW.date()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def room() -> Room:
    return Room(name="Альфа", capacity=6, equipments=["Проектор", "Wi-Fi"])


@pytest.fixture
def policy() -> BookingPolicy:
    return BookingPolicy()


@pytest.fixture
def engine(policy: BookingPolicy) -> BookingAdmissionService:
    return BookingAdmissionService(policy)


@pytest.fixture
def booking_factory(room: Room, user_id):
    """Фабрика бронирований с разумными значениями по умолчанию."""

    def make(
        start: str = "09:00",
        end: str = "10:00",
        day: date = TODAY,
        status: BookingStatus = BookingStatus.UPCOMING,
        owner=None,
        room_id=None,
    ) -> Booking:
        return Booking(
            user_id=owner or user_id,
            room_id=room_id or room.id,
            date=day,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            status=status,
            created_at=NOW,
        )

    return make


@pytest.fixture
def uow(room: Room) -> BookingUnitOfWork:
    """Unit of Work с одной переговорной и пустым журналом бронирований."""
    return BookingUnitOfWork(rooms_repo=InMemoryRoomRepository([room]))


@pytest.fixture
def booking_service(uow: BookingUnitOfWork, policy: BookingPolicy) -> BookingApplicationService:
    return BookingApplicationService(uow, policy=policy, clock=lambda: NOW)


@pytest.fixture
def room_service(uow: BookingUnitOfWork, policy: BookingPolicy) -> RoomApplicationService:
    return RoomApplicationService(uow, policy=policy)
