"""Application Services - Business use cases"""
import logging
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

from pydantic import BaseModel

from domain.availability import UNAVAILABLE_MESSAGE, ensure_available, has_upcoming_bookings, is_available
from domain.clock import Clock
from domain.entities import Booking, Room
from domain.enums import BookingStatus, RoomStatus
from domain.exceptions import AuthorizationError, BusinessRuleViolation, NotFoundError, VerificationFailed
from domain.notifications import NotificationSender
from domain.occupancy import occupancy_rate, total_revenue
from domain.repositories import UnitOfWork
from domain.value_objects import ContactInfo, Requester
from application.otp_service import OtpService
from application.unit_of_work import UnitOfWorkFactory, atomic, booking_lock, otp_lock, room_lock

logger = logging.getLogger(__name__)


class BookingReceipt(BaseModel):
    """Outcome of a use case that also tries to message the guest"""
    booking: Booking
    notification_sent: bool


async def _load_booking(uow: UnitOfWork, booking_id: UUID) -> Booking:
    booking = await uow.bookings.find_by_id(booking_id)
    if booking is None:
        raise NotFoundError("booking", booking_id)
    return booking


async def _load_room(uow: UnitOfWork, room_id: UUID) -> Room:
    room = await uow.rooms.find_by_id(room_id)
    if room is None:
        raise NotFoundError("room", room_id)
    return room


class ReservationService:
    """Coordinates booking use cases, one unit of work each

    Notifications go out only after the unit of work has committed; a failed
    delivery is logged and reported on the receipt, never rolled back.
    """

    def __init__(self,
                 uow_factory: UnitOfWorkFactory,
                 otp_service: OtpService,
                 notifier: NotificationSender,
                 clock: Clock):
        self.uow_factory = uow_factory
        self.otp_service = otp_service
        self.notifier = notifier
        self.clock = clock

    # ==================== COMMANDS ====================
    async def create_booking(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        guests: int,
        guest_name: str,
        email_address: str,
        phone: str,
        address: str,
        special_requests: Optional[str] = None,
    ) -> BookingReceipt:
        """Reserve a room and send the guest a verification code"""
        contact_info = ContactInfo(phone=phone, address=address)

        async with atomic(self.uow_factory, room_lock(room_id)) as uow:
            room = await _load_room(uow, room_id)
            if not room.accepts_bookings:
                raise BusinessRuleViolation(UNAVAILABLE_MESSAGE)
            if guests > room.capacity:
                raise BusinessRuleViolation(f"Room capacity is {room.capacity} guest(s).")

            booking = Booking.create(
                room_id=room.id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                total_amount=room.price_for((check_out - check_in).days),
                contact_info=contact_info,
                email_address=email_address,
                guest_name=guest_name,
                today=self.clock.today(),
                special_requests=special_requests,
            )
            ensure_available(await uow.bookings.find_by_room(room.id), check_in, check_out)

            await uow.bookings.save(booking)
            otp_code = await self.otp_service.issue(uow, booking.id, booking.email_address)

        logger.info(f"Booking {booking.id} created for room {room.id} ({check_in} - {check_out})")
        sent = await self._notify(self.notifier.send_otp_verification, booking, otp_code)
        return BookingReceipt(booking=booking, notification_sent=sent)

    async def resend_otp(self, booking_id: UUID, requester: Requester) -> BookingReceipt:
        async with atomic(self.uow_factory, booking_lock(booking_id), otp_lock(booking_id)) as uow:
            booking = await _load_booking(uow, booking_id)
            self._authorize(booking, requester)
            if booking.status != BookingStatus.PENDING:
                raise BusinessRuleViolation("Only pending bookings can receive a new verification code.")
            otp_code = await self.otp_service.issue(uow, booking.id, booking.email_address)

        sent = await self._notify(self.notifier.send_otp_verification, booking, otp_code)
        return BookingReceipt(booking=booking, notification_sent=sent)

    async def confirm_booking(self, booking_id: UUID, otp_code: str) -> BookingReceipt:
        """Confirm a pending booking with the code sent to the guest

        Marking the code used, confirming the booking and invalidating the
        remaining codes commit together. A wrong code is recorded as an
        attempt even though the booking is left untouched.
        """
        async with atomic(self.uow_factory, booking_lock(booking_id), otp_lock(booking_id)) as uow:
            booking = await _load_booking(uow, booking_id)
            if booking.status != BookingStatus.PENDING:
                raise BusinessRuleViolation("Only pending bookings can be confirmed.")

            outcome = await self.otp_service.check(uow, booking.id, otp_code, booking.email_address)
            if not outcome.is_valid:
                raise VerificationFailed(outcome)

            confirmed = await uow.bookings.update(booking.confirm())
            await uow.otps.invalidate_by_booking(booking.id)

        logger.info(f"Booking {booking_id} confirmed")
        sent = await self._notify(self.notifier.send_booking_confirmation, confirmed)
        return BookingReceipt(booking=confirmed, notification_sent=sent)

    async def update_booking_dates(
        self,
        booking_id: UUID,
        check_in: date,
        check_out: date,
        requester: Requester,
    ) -> BookingReceipt:
        room_id = (await self.get_booking(booking_id)).room_id

        async with atomic(self.uow_factory, room_lock(room_id), booking_lock(booking_id)) as uow:
            booking = await _load_booking(uow, booking_id)
            self._authorize(booking, requester)
            updated = booking.update_dates(check_in, check_out, self.clock.today())
            ensure_available(
                await uow.bookings.find_by_room(room_id),
                check_in,
                check_out,
                exclude_booking_id=booking.id,
            )
            updated = await uow.bookings.update(updated)

        logger.info(f"Booking {booking_id} moved to {check_in} - {check_out}")
        sent = await self._notify(self.notifier.send_booking_update, updated, "dates")
        return BookingReceipt(booking=updated, notification_sent=sent)

    async def cancel_booking(self, booking_id: UUID, requester: Requester) -> BookingReceipt:
        return await self._apply(booking_id, requester, Booking.cancel, self.notifier.send_booking_cancellation)

    async def check_in(self, booking_id: UUID, requester: Requester) -> BookingReceipt:
        self._require_staff(requester, "Only staff can check guests in.")
        return await self._apply(booking_id, requester, Booking.check_in_guest, self._status_update)

    async def check_out(self, booking_id: UUID, requester: Requester) -> BookingReceipt:
        self._require_staff(requester, "Only staff can check guests out.")
        return await self._apply(booking_id, requester, Booking.check_out_guest, self._status_update)

    async def complete_booking(self, booking_id: UUID, requester: Requester) -> BookingReceipt:
        return await self._apply(
            booking_id,
            requester,
            lambda booking: booking.complete(self.clock.today()),
            self._status_update,
        )

    async def update_status(
        self,
        booking_id: UUID,
        new_status: BookingStatus,
        requester: Requester,
    ) -> BookingReceipt:
        """Staff shortcut that routes a requested status to its guarded transition"""
        self._require_staff(requester, "Only staff can change booking status.")

        if new_status == BookingStatus.CONFIRMED:
            return await self._apply(booking_id, requester, Booking.confirm,
                                     self.notifier.send_booking_confirmation)
        if new_status == BookingStatus.CHECKED_IN:
            return await self.check_in(booking_id, requester)
        if new_status == BookingStatus.CHECKED_OUT:
            return await self.check_out(booking_id, requester)
        if new_status == BookingStatus.COMPLETED:
            return await self.complete_booking(booking_id, requester)
        if new_status == BookingStatus.CANCELLED:
            return await self.cancel_booking(booking_id, requester)

        raise BusinessRuleViolation("Unsupported or invalid status transition.")

    # ==================== QUERIES ====================
    async def get_booking(self, booking_id: UUID) -> Booking:
        async with atomic(self.uow_factory) as uow:
            return await _load_booking(uow, booking_id)

    async def get_booking_by_token(self, booking_token: UUID) -> Booking:
        async with atomic(self.uow_factory) as uow:
            booking = await uow.bookings.find_by_token(booking_token)
        if booking is None:
            raise NotFoundError("booking", booking_token)
        return booking

    async def get_bookings_by_email(self, email_address: str) -> List[Booking]:
        async with atomic(self.uow_factory) as uow:
            return await uow.bookings.find_by_email(email_address)

    async def get_all_bookings(self) -> List[Booking]:
        async with atomic(self.uow_factory) as uow:
            bookings = await uow.bookings.find_all()
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    # ==================== HELPERS ====================
    async def _apply(
        self,
        booking_id: UUID,
        requester: Requester,
        transition: Callable[[Booking], Booking],
        notify: Callable[[Booking], Awaitable[bool]],
    ) -> BookingReceipt:
        async with atomic(self.uow_factory, booking_lock(booking_id)) as uow:
            booking = await _load_booking(uow, booking_id)
            self._authorize(booking, requester)
            updated = await uow.bookings.update(transition(booking))
            if updated.status in (BookingStatus.CONFIRMED, BookingStatus.CANCELLED):
                await uow.otps.invalidate_by_booking(updated.id)

        logger.info(f"Booking {booking_id} moved from {booking.status.value} to {updated.status.value}")
        sent = await self._notify(notify, updated)
        return BookingReceipt(booking=updated, notification_sent=sent)

    async def _status_update(self, booking: Booking) -> bool:
        return await self.notifier.send_booking_update(booking, booking.status.value)

    @staticmethod
    def _authorize(booking: Booking, requester: Requester) -> None:
        if not requester.may_act_for(booking.email_address):
            logger.warning(f"Requester refused access to booking {booking.id}")
            raise AuthorizationError()

    @staticmethod
    def _require_staff(requester: Requester, message: str) -> None:
        if not requester.is_staff:
            raise AuthorizationError(message)

    @staticmethod
    async def _notify(send: Callable[..., Awaitable[bool]], *args) -> bool:
        try:
            sent = await send(*args)
        except Exception:
            logger.exception(f"Notification {getattr(send, '__name__', send)} failed")
            return False
        if not sent:
            logger.error(f"Notification {getattr(send, '__name__', send)} was not delivered")
        return bool(sent)


class RoomService:
    """Service for Room business use cases"""

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock):
        self.uow_factory = uow_factory
        self.clock = clock

    async def create_room(
        self,
        name: str,
        description: Optional[str],
        price: Decimal,
        capacity: int,
        image_file_names: Optional[List[str]] = None,
    ) -> Room:
        room = Room.create(name, description, price, capacity, image_file_names)
        async with atomic(self.uow_factory) as uow:
            await uow.rooms.save(room)
        logger.info(f"Room {room.id} ({room.name}) created")
        return room

    async def get_room(self, room_id: UUID) -> Room:
        async with atomic(self.uow_factory) as uow:
            return await _load_room(uow, room_id)

    async def list_rooms(self) -> List[Room]:
        async with atomic(self.uow_factory) as uow:
            return await uow.rooms.find_all()

    async def update_room(
        self,
        room_id: UUID,
        name: str,
        description: Optional[str],
        price: Decimal,
        capacity: int,
    ) -> Room:
        async with atomic(self.uow_factory, room_lock(room_id)) as uow:
            room = await _load_room(uow, room_id)
            return await uow.rooms.update(room.update_details(name, description, price, capacity))

    async def add_room_images(self, room_id: UUID, file_names: List[str]) -> Room:
        async with atomic(self.uow_factory, room_lock(room_id)) as uow:
            room = await _load_room(uow, room_id)
            return await uow.rooms.update(room.add_images(file_names))

    async def update_room_status(self, room_id: UUID, new_status: RoomStatus) -> Room:
        """Only Available, Inactive and Maintenance can be requested directly"""
        async with atomic(self.uow_factory, room_lock(room_id)) as uow:
            room = await _load_room(uow, room_id)
            upcoming = has_upcoming_bookings(await uow.bookings.find_by_room(room_id), self.clock.today())

            if new_status == RoomStatus.AVAILABLE:
                updated = room.activate()
            elif new_status == RoomStatus.INACTIVE:
                updated = room.deactivate(upcoming)
            elif new_status == RoomStatus.MAINTENANCE:
                updated = room.set_maintenance(upcoming)
            else:
                raise BusinessRuleViolation(
                    "Invalid status update. Only Available, Inactive, and Maintenance are allowed."
                )
            updated = await uow.rooms.update(updated)

        logger.info(f"Room {room_id} status changed from {room.status.value} to {updated.status.value}")
        return updated

    async def check_availability(self, room_id: UUID, check_in: date, check_out: date) -> bool:
        async with atomic(self.uow_factory) as uow:
            room = await _load_room(uow, room_id)
            bookings = await uow.bookings.find_by_room(room_id)
        return room.accepts_bookings and is_available(bookings, check_in, check_out)

    async def list_available_rooms(self, check_in: date, check_out: date) -> List[Room]:
        """Rooms open for bookings with no conflicting stay, cheapest first"""
        if check_in >= check_out:
            raise BusinessRuleViolation("Check-in date must be before check-out date.")

        available = []
        async with atomic(self.uow_factory) as uow:
            for room in await uow.rooms.find_all():
                if not room.accepts_bookings:
                    continue
                if is_available(await uow.bookings.find_by_room(room.id), check_in, check_out):
                    available.append(room)
        return sorted(available, key=lambda r: r.price)

    async def get_occupancy_rate(self, room_id: UUID, start: date, end: date) -> int:
        async with atomic(self.uow_factory) as uow:
            await _load_room(uow, room_id)
            bookings = await uow.bookings.find_by_room(room_id)
        return occupancy_rate(bookings, start, end)

    async def get_revenue(self, room_id: UUID, start: Optional[date] = None, end: Optional[date] = None) -> Decimal:
        async with atomic(self.uow_factory) as uow:
            await _load_room(uow, room_id)
            bookings = await uow.bookings.find_by_room(room_id)
        return total_revenue(bookings, start, end)
