"""In-Memory Repository Implementations"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Generic, List, Optional, Set, TypeVar
from uuid import UUID

from domain.entities import Booking, Room, OtpVerification
from domain.repositories import BookingRepository, RoomRepository, OtpRepository, UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryDatabase:
    """Committed state plus the advisory locks shared by every unit of work"""

    def __init__(self):
        self.bookings: Dict[UUID, Booking] = {}
        self.rooms: Dict[UUID, Room] = {}
        self.otps: Dict[UUID, OtpVerification] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, key: str):
        """Per-key lock, dropped once no task holds or waits for it"""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        lock = self._locks[key]
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]


class _StagedTable(Generic[T]):
    """Committed rows overlaid with this unit of work's pending writes"""

    def __init__(self, committed: Dict[UUID, T]):
        self._committed = committed
        self._pending: Dict[UUID, T] = {}
        self._deleted: Set[UUID] = set()

    def get(self, key: UUID) -> Optional[T]:
        if key in self._deleted:
            return None
        if key in self._pending:
            return self._pending[key]
        return self._committed.get(key)

    def __contains__(self, key: UUID) -> bool:
        return self.get(key) is not None

    def values(self) -> List[T]:
        merged = {**self._committed, **self._pending}
        return [row for key, row in merged.items() if key not in self._deleted]

    def put(self, key: UUID, row: T) -> None:
        self._deleted.discard(key)
        self._pending[key] = row

    def delete(self, key: UUID) -> None:
        self._pending.pop(key, None)
        self._deleted.add(key)

    def apply(self) -> None:
        self._committed.update(self._pending)
        for key in self._deleted:
            self._committed.pop(key, None)
        self.discard()

    def discard(self) -> None:
        self._pending.clear()
        self._deleted.clear()


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of BookingRepository"""

    def __init__(self, table: _StagedTable[Booking]):
        self._table = table

    async def save(self, booking: Booking) -> Booking:
        if booking.id in self._table:
            raise ValueError(f"Booking {booking.id} already exists")
        self._table.put(booking.id, booking)
        return booking

    async def update(self, booking: Booking) -> Booking:
        if booking.id not in self._table:
            raise ValueError("Booking not found")
        self._table.put(booking.id, booking)
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        return self._table.get(booking_id)

    async def find_by_token(self, booking_token: UUID) -> Optional[Booking]:
        for booking in self._table.values():
            if booking.booking_token == booking_token:
                return booking
        return None

    async def find_by_room(self, room_id: UUID) -> List[Booking]:
        bookings = [b for b in self._table.values() if b.room_id == room_id]
        return sorted(bookings, key=lambda b: b.check_in, reverse=True)

    async def find_by_email(self, email_address: str) -> List[Booking]:
        bookings = [b for b in self._table.values() if b.belongs_to(email_address)]
        return sorted(bookings, key=lambda b: b.check_in, reverse=True)

    async def find_all(self) -> List[Booking]:
        return list(self._table.values())


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self, table: _StagedTable[Room]):
        self._table = table

    async def save(self, room: Room) -> Room:
        if room.id in self._table:
            raise ValueError(f"Room {room.id} already exists")
        self._table.put(room.id, room)
        return room

    async def update(self, room: Room) -> Room:
        if room.id not in self._table:
            raise ValueError("Room not found")
        self._table.put(room.id, room)
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        return self._table.get(room_id)

    async def find_all(self) -> List[Room]:
        return sorted(self._table.values(), key=lambda r: r.name)


class InMemoryOtpRepository(OtpRepository):
    """In-memory implementation of OtpRepository"""

    def __init__(self, table: _StagedTable[OtpVerification]):
        self._table = table

    async def save(self, otp: OtpVerification) -> OtpVerification:
        self._table.put(otp.id, otp)
        return otp

    async def update(self, otp: OtpVerification) -> OtpVerification:
        if otp.id not in self._table:
            raise ValueError("OTP verification not found")
        self._table.put(otp.id, otp)
        return otp

    async def find_latest(self, booking_id: UUID, email_address: str) -> Optional[OtpVerification]:
        email = OtpVerification.normalize_email(email_address)
        candidates = [
            o for o in self._table.values()
            if o.booking_id == booking_id
            and o.email_address == email
            and not o.is_used
            and not o.is_invalidated
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda o: o.created_at)

    async def find_by_booking(self, booking_id: UUID) -> List[OtpVerification]:
        records = [o for o in self._table.values() if o.booking_id == booking_id]
        return sorted(records, key=lambda o: o.created_at, reverse=True)

    async def invalidate_by_booking(self, booking_id: UUID) -> int:
        live = [
            o for o in self._table.values()
            if o.booking_id == booking_id and not o.is_used and not o.is_invalidated
        ]
        for record in live:
            self._table.put(record.id, record.invalidate())
        return len(live)

    async def delete_expired(self, now: datetime) -> int:
        expired = [o for o in self._table.values() if o.expires_at < now]
        for record in expired:
            self._table.delete(record.id)
        return len(expired)


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work over an InMemoryDatabase; create one per use case"""

    def __init__(self, database: InMemoryDatabase):
        self._database = database
        self._tables = (
            _StagedTable(database.bookings),
            _StagedTable(database.rooms),
            _StagedTable(database.otps),
        )
        self.bookings = InMemoryBookingRepository(self._tables[0])
        self.rooms = InMemoryRoomRepository(self._tables[1])
        self.otps = InMemoryOtpRepository(self._tables[2])

    async def begin(self) -> None:
        for table in self._tables:
            table.discard()

    async def commit(self) -> None:
        for table in self._tables:
            table.apply()

    async def rollback(self) -> None:
        for table in self._tables:
            table.discard()
        logger.debug("Unit of work rolled back")

    def lock(self, key: str):
        return self._database.lock(key)
