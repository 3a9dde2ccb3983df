"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, List
from uuid import UUID

from domain.entities import Booking, Room, OtpVerification


class BookingRepository(ABC):
    """Repository interface for Booking Aggregate"""

    @abstractmethod
    async def save(self, booking: Booking) -> Booking:
        """Insert a new booking"""
        pass

    @abstractmethod
    async def update(self, booking: Booking) -> Booking:
        """Replace a stored booking"""
        pass

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        pass

    @abstractmethod
    async def find_by_token(self, booking_token: UUID) -> Optional[Booking]:
        pass

    @abstractmethod
    async def find_by_room(self, room_id: UUID) -> List[Booking]:
        """Bookings for a room, latest check-in first"""
        pass

    @abstractmethod
    async def find_by_email(self, email_address: str) -> List[Booking]:
        """Bookings for an email address, compared case-insensitively"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Booking]:
        pass


class RoomRepository(ABC):
    """Repository interface for Room Aggregate"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        pass


class OtpRepository(ABC):
    """Repository interface for OTP verification records"""

    @abstractmethod
    async def save(self, otp: OtpVerification) -> OtpVerification:
        pass

    @abstractmethod
    async def update(self, otp: OtpVerification) -> OtpVerification:
        pass

    @abstractmethod
    async def find_latest(self, booking_id: UUID, email_address: str) -> Optional[OtpVerification]:
        """Most recent record for the pair that is neither used nor invalidated

        Expired records are returned so callers can tell expiry apart from absence.
        """
        pass

    @abstractmethod
    async def find_by_booking(self, booking_id: UUID) -> List[OtpVerification]:
        pass

    @abstractmethod
    async def invalidate_by_booking(self, booking_id: UUID) -> int:
        """Invalidate every live record of a booking, returning how many changed"""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        pass


class UnitOfWork(ABC):
    """Atomic scope over the repositories

    Writes made through the repositories become visible to other units of
    work only on commit; rollback discards them.
    """

    bookings: BookingRepository
    rooms: RoomRepository
    otps: OtpRepository

    @abstractmethod
    async def begin(self) -> None:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    def lock(self, key: str):
        """Async context manager holding an advisory lock on key"""
        pass

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["UnitOfWork"]:
        await self.begin()
        try:
            yield self
        except BaseException:
            await self.rollback()
            raise
        await self.commit()
