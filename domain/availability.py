"""Availability calculator

Stays are half-open intervals [check_in, check_out): a check-out on the
same day as another stay's check-in is not a conflict.
"""
from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from domain.entities import Booking
from domain.enums import BookingStatus
from domain.exceptions import BusinessRuleViolation

UNAVAILABLE_MESSAGE = "Room is not available on selected dates."


def overlaps(first_check_in: date, first_check_out: date,
             second_check_in: date, second_check_out: date) -> bool:
    return first_check_in < second_check_out and first_check_out > second_check_in


def booking_overlaps(booking: Booking, check_in: date, check_out: date) -> bool:
    return overlaps(booking.check_in, booking.check_out, check_in, check_out)


def holds_inventory(booking: Booking) -> bool:
    """Only cancelled bookings release their dates; completed stays still count"""
    return booking.status != BookingStatus.CANCELLED


def conflicting_bookings(
    bookings: Iterable[Booking],
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[UUID] = None,
) -> List[Booking]:
    return [
        b for b in bookings
        if holds_inventory(b)
        and b.id != exclude_booking_id
        and booking_overlaps(b, check_in, check_out)
    ]


def is_available(
    bookings: Iterable[Booking],
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[UUID] = None,
) -> bool:
    if check_in >= check_out:
        raise BusinessRuleViolation("Check-in date must be before check-out date.")
    return not conflicting_bookings(bookings, check_in, check_out, exclude_booking_id)


def ensure_available(
    bookings: Iterable[Booking],
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[UUID] = None,
) -> None:
    if not is_available(bookings, check_in, check_out, exclude_booking_id):
        raise BusinessRuleViolation(UNAVAILABLE_MESSAGE)


def has_upcoming_bookings(bookings: Iterable[Booking], today: date) -> bool:
    """True when a booking that still holds inventory ends after today"""
    return any(
        holds_inventory(b) and b.status != BookingStatus.COMPLETED and b.check_out > today
        for b in bookings
    )
