"""Demo records loaded once at startup"""
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from domain.entities import Booking, Room
from domain.enums import BookingStatus
from domain.value_objects import ContactInfo
from application.unit_of_work import UnitOfWorkFactory, atomic

logger = logging.getLogger(__name__)


async def seed_demo_data(uow_factory: UnitOfWorkFactory) -> Optional[Room]:
    """Insert one room and one historical confirmed stay unless rooms already exist

    The stay predates any realistic "today", so it is loaded as a stored
    record rather than through Booking.create.
    """
    async with atomic(uow_factory) as uow:
        if await uow.rooms.find_all():
            logger.info("Rooms already present, skipping demo data")
            return None

        room = Room.create(
            name="Deluxe Room 101",
            description="Sea-view room with a queen bed",
            price=Decimal("2500"),
            capacity=2,
            image_file_names=["deluxe-101.jpg"],
        )
        await uow.rooms.save(room)

        booking = Booking(
            room_id=room.id,
            guest_name="Juan Dela Cruz",
            email_address="guest@example.com",
            contact_info=ContactInfo(phone="09171234567", address="123 Beach Road, Pagudpud"),
            check_in=date(2025, 7, 1),
            check_out=date(2025, 7, 4),
            guests=2,
            total_amount=room.price_for(3),
            special_requests="Vegetarian meals only",
            status=BookingStatus.CONFIRMED,
        )
        await uow.bookings.save(booking)

    logger.info(f"Seeded demo room {room.id} with booking {booking.id}")
    return room
