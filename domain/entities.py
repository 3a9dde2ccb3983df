"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from typing import ClassVar, Optional, List, Iterable
import hashlib
import hmac

from domain.enums import BookingStatus, RoomStatus, VerificationOutcome
from domain.exceptions import BusinessRuleViolation
from domain.value_objects import ContactInfo, DateRange, GalleryImage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(BaseModel):
    """Booking Aggregate Root Entity

    Instances are immutable. Every state change goes through a named
    operation that checks its guard and returns the next version of the
    booking; the caller persists the returned value.
    """

    # Identity
    id: UUID = Field(default_factory=uuid4)
    booking_token: UUID = Field(default_factory=uuid4)

    # Reference to the room, resolved by storage on demand
    room_id: UUID

    # Guest
    guest_name: str
    email_address: str
    contact_info: ContactInfo

    # Stay
    check_in: date
    check_out: date
    guests: int
    total_amount: Decimal
    special_requests: str = ""

    status: BookingStatus = BookingStatus.PENDING

    # Metadata
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime = Field(default_factory=_utcnow)
    version: int = 1

    class Config:
        frozen = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room_id: UUID,
        check_in: date,
        check_out: date,
        guests: int,
        total_amount: Decimal,
        contact_info: ContactInfo,
        email_address: str,
        guest_name: str,
        today: date,
        special_requests: Optional[str] = None,
    ) -> "Booking":
        """Create a pending booking with a fresh identity and token"""
        Booking._validate_dates(check_in, check_out, today)

        return Booking(
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            total_amount=total_amount,
            contact_info=contact_info,
            email_address=email_address.strip(),
            guest_name=guest_name.strip(),
            special_requests=(special_requests or "").strip(),
            status=BookingStatus.PENDING,
        )

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self) -> "Booking":
        if self.status != BookingStatus.PENDING:
            raise BusinessRuleViolation("Only pending bookings can be confirmed.")
        return self._transition(BookingStatus.CONFIRMED)

    def check_in_guest(self) -> "Booking":
        if self.status != BookingStatus.CONFIRMED:
            raise BusinessRuleViolation("Only confirmed bookings can be checked in.")
        return self._transition(BookingStatus.CHECKED_IN)

    def check_out_guest(self) -> "Booking":
        if self.status != BookingStatus.CHECKED_IN:
            raise BusinessRuleViolation("Only checked-in bookings can be checked out.")
        return self._transition(BookingStatus.CHECKED_OUT)

    def complete(self, today: date) -> "Booking":
        if self.status != BookingStatus.CHECKED_OUT:
            raise BusinessRuleViolation("Only checked-out bookings can be completed.")
        if today < self.check_out:
            raise BusinessRuleViolation("Booking cannot be completed before the check-out date.")
        return self._transition(BookingStatus.COMPLETED)

    def cancel(self) -> "Booking":
        if self.status == BookingStatus.COMPLETED:
            raise BusinessRuleViolation("Completed bookings cannot be cancelled.")
        return self._transition(BookingStatus.CANCELLED)

    # ==================== MODIFICATION METHODS ====================
    def update_dates(self, check_in: date, check_out: date, today: date) -> "Booking":
        if self.status != BookingStatus.PENDING:
            raise BusinessRuleViolation("Only pending bookings can have their dates updated.")
        Booking._validate_dates(check_in, check_out, today)
        return self.model_copy(update={
            "check_in": check_in,
            "check_out": check_out,
            "modified_at": _utcnow(),
            "version": self.version + 1,
        })

    # ==================== QUERY METHODS ====================
    @property
    def period(self) -> DateRange:
        return DateRange(check_in=self.check_in, check_out=self.check_out)

    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    def belongs_to(self, email_address: str) -> bool:
        return self.email_address.strip().lower() == email_address.strip().lower()

    # ==================== PRIVATE METHODS ====================
    def _transition(self, status: BookingStatus) -> "Booking":
        return self.model_copy(update={
            "status": status,
            "modified_at": _utcnow(),
            "version": self.version + 1,
        })

    @staticmethod
    def _validate_dates(check_in: date, check_out: date, today: date) -> None:
        if check_in >= check_out:
            raise BusinessRuleViolation("Check-in date must be before check-out date.")
        if check_in < today:
            raise BusinessRuleViolation("Check-in date cannot be in the past.")


class Room(BaseModel):
    """Room Aggregate Root Entity"""

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = ""
    price: Decimal
    capacity: int
    images: List[GalleryImage] = Field(default_factory=list)
    status: RoomStatus = RoomStatus.AVAILABLE

    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime = Field(default_factory=_utcnow)

    class Config:
        frozen = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        name: str,
        description: Optional[str],
        price: Decimal,
        capacity: int,
        image_file_names: Optional[Iterable[str]] = None,
    ) -> "Room":
        name, description = Room._validate_details(name, description, price, capacity)
        return Room(
            name=name,
            description=description,
            price=price,
            capacity=capacity,
            images=Room._to_images(image_file_names),
        )

    # ==================== MODIFICATION METHODS ====================
    def update_details(
        self,
        name: str,
        description: Optional[str],
        price: Decimal,
        capacity: int,
    ) -> "Room":
        name, description = Room._validate_details(name, description, price, capacity)
        return self.model_copy(update={
            "name": name,
            "description": description,
            "price": price,
            "capacity": capacity,
            "modified_at": _utcnow(),
        })

    def add_images(self, file_names: Iterable[str]) -> "Room":
        new_images = Room._to_images(file_names)
        if not new_images:
            raise BusinessRuleViolation("At least one image is required.")
        return self.model_copy(update={
            "images": [*self.images, *new_images],
            "modified_at": _utcnow(),
        })

    # ==================== STATE TRANSITION METHODS ====================
    def activate(self) -> "Room":
        if self.status == RoomStatus.AVAILABLE:
            raise BusinessRuleViolation("Room is already active.")
        return self._with_status(RoomStatus.AVAILABLE)

    def deactivate(self, has_upcoming_bookings: bool) -> "Room":
        if self.status == RoomStatus.INACTIVE:
            raise BusinessRuleViolation("Room is already inactive.")
        if has_upcoming_bookings:
            raise BusinessRuleViolation("Cannot deactivate a room with upcoming bookings.")
        return self._with_status(RoomStatus.INACTIVE)

    def set_maintenance(self, has_upcoming_bookings: bool) -> "Room":
        if self.status == RoomStatus.MAINTENANCE:
            raise BusinessRuleViolation("Room is already under maintenance.")
        if has_upcoming_bookings:
            raise BusinessRuleViolation("Cannot put a room with upcoming bookings under maintenance.")
        return self._with_status(RoomStatus.MAINTENANCE)

    # ==================== QUERY METHODS ====================
    @property
    def accepts_bookings(self) -> bool:
        return self.status not in (RoomStatus.MAINTENANCE, RoomStatus.INACTIVE)

    def price_for(self, nights: int) -> Decimal:
        return self.price * nights

    # ==================== PRIVATE METHODS ====================
    def _with_status(self, status: RoomStatus) -> "Room":
        return self.model_copy(update={"status": status, "modified_at": _utcnow()})

    @staticmethod
    def _to_images(file_names: Optional[Iterable[str]]) -> List[GalleryImage]:
        if not file_names:
            return []
        return [GalleryImage(file_name=f.strip()) for f in file_names if f and f.strip()]

    @staticmethod
    def _validate_details(name, description, price, capacity):
        if not name or not name.strip():
            raise BusinessRuleViolation("Room name is required.")
        if price is None or price <= 0:
            raise BusinessRuleViolation("Room price must be greater than zero.")
        if capacity is None or capacity <= 0:
            raise BusinessRuleViolation("Room capacity must be greater than zero.")
        return name.strip(), (description or "").strip()


class OtpVerification(BaseModel):
    """One-time passcode issued for a booking confirmation

    Only the SHA-256 digest of the code is kept. Once used or invalidated the
    record never validates again.
    """

    MAX_ATTEMPTS: ClassVar[int] = 5

    id: UUID = Field(default_factory=uuid4)
    booking_id: UUID
    email_address: str
    hashed_otp_code: str
    expires_at: datetime
    attempts: int = 0
    is_used: bool = False
    is_invalidated: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    class Config:
        frozen = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        booking_id: UUID,
        email_address: str,
        otp_code: str,
        now: datetime,
        expiration_minutes: int = 15,
    ) -> "OtpVerification":
        if not email_address or not email_address.strip():
            raise BusinessRuleViolation("Email address cannot be empty.")
        if not otp_code or not otp_code.strip():
            raise BusinessRuleViolation("OTP code cannot be empty.")
        if expiration_minutes <= 0:
            raise BusinessRuleViolation("Expiration minutes must be greater than 0.")

        return OtpVerification(
            booking_id=booking_id,
            email_address=OtpVerification.normalize_email(email_address),
            hashed_otp_code=OtpVerification.hash_code(otp_code),
            expires_at=now + timedelta(minutes=expiration_minutes),
            created_at=now,
        )

    # ==================== QUERY METHODS ====================
    def check(self, otp_code: str, now: datetime, max_attempts: int = MAX_ATTEMPTS) -> VerificationOutcome:
        """Classify a submitted code without changing the record"""
        if self.is_used or self.is_invalidated:
            return VerificationOutcome.NOT_FOUND
        if self.has_exceeded_max_attempts(max_attempts):
            return VerificationOutcome.EXHAUSTED
        if self.is_expired(now):
            return VerificationOutcome.EXPIRED
        if not hmac.compare_digest(self.hashed_otp_code, OtpVerification.hash_code(otp_code or "")):
            return VerificationOutcome.MISMATCH
        return VerificationOutcome.VALID

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def has_exceeded_max_attempts(self, max_attempts: int = MAX_ATTEMPTS) -> bool:
        return self.attempts >= max_attempts

    def is_active(self, now: datetime) -> bool:
        return not self.is_used and not self.is_invalidated and not self.is_expired(now)

    # ==================== STATE TRANSITION METHODS ====================
    def increment_attempts(self) -> "OtpVerification":
        return self.model_copy(update={"attempts": self.attempts + 1})

    def mark_as_used(self) -> "OtpVerification":
        return self.model_copy(update={"is_used": True})

    def invalidate(self) -> "OtpVerification":
        return self.model_copy(update={"is_invalidated": True})

    # ==================== HELPERS ====================
    @staticmethod
    def normalize_email(email_address: str) -> str:
        return email_address.strip().lower()

    @staticmethod
    def hash_code(otp_code: str) -> str:
        return hashlib.sha256(otp_code.strip().encode("utf-8")).hexdigest()
