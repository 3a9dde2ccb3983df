"""Occupancy and revenue aggregation for a single room

Occupancy measures how much of a window is covered by stays that overlap
it. Revenue only counts stays that lie entirely inside the window. The two
filters differ on purpose and must not be unified. Occupancy ignores
cancelled stays; revenue counts every stay of the room.
"""
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from domain.availability import booking_overlaps, holds_inventory
from domain.entities import Booking


def occupied_nights(booking: Booking, start: date, end: date) -> int:
    """Nights of the booking that fall inside [start, end)"""
    if not booking_overlaps(booking, start, end):
        return 0
    span_start = max(booking.check_in, start)
    span_end = min(booking.check_out, end)
    return (span_end - span_start).days


def occupancy_rate(bookings: Iterable[Booking], start: date, end: date) -> int:
    """Whole-number percentage of [start, end) covered by bookings

    An empty or inverted window yields 0.
    """
    total_days = (end - start).days
    if total_days <= 0:
        return 0

    occupied = sum(
        occupied_nights(b, start, end)
        for b in bookings
        if holds_inventory(b)
    )
    return occupied * 100 // total_days


def is_within(booking: Booking, start: Optional[date] = None, end: Optional[date] = None) -> bool:
    if start is not None and booking.check_in < start:
        return False
    if end is not None and booking.check_out > end:
        return False
    return True


def total_revenue(
    bookings: Iterable[Booking],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Decimal:
    """Sum of total_amount for every stay fully contained in the optional window"""
    return sum(
        (b.total_amount for b in bookings if is_within(b, start, end)),
        Decimal("0"),
    )
