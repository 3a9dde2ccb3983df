"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import BookingStatus, RoomStatus


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class CreateBookingRequest(BaseModel):
    """Create booking request DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    guests: int = Field(gt=0)
    guest_name: str = Field(min_length=1)
    email_address: str = Field(min_length=3)
    phone: str
    address: str
    special_requests: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    """OTP verification request DTO"""
    otp_code: str = Field(min_length=1, max_length=12)


class GuestActionRequest(BaseModel):
    """Guest identifies themselves by the email the booking was made with"""
    email_address: str


class UpdateBookingDatesRequest(GuestActionRequest):
    """Update booking dates request DTO"""
    check_in: date
    check_out: date


class UpdateBookingStatusRequest(BaseModel):
    """Staff status update request DTO"""
    status: BookingStatus


class GuestBookingResponse(BaseModel):
    """Booking as shown to the guest; keyed by token, never by internal id"""
    booking_token: UUID
    room_id: UUID
    guest_name: str
    email_address: str
    check_in: date
    check_out: date
    nights: int
    guests: int
    total_amount: Decimal
    special_requests: str
    status: str
    created_at: datetime
    modified_at: datetime


class BookingResponse(GuestBookingResponse):
    """Booking as shown to staff"""
    booking_id: UUID
    phone: str
    address: str
    version: int


class CreateBookingResponse(BaseModel):
    """Create booking response DTO"""
    booking: GuestBookingResponse
    otp_sent: bool


class BookingActionResponse(BaseModel):
    """Guest-facing result of a booking command"""
    booking: GuestBookingResponse
    notification_sent: bool


class StaffBookingActionResponse(BaseModel):
    """Staff-facing result of a booking command"""
    booking: BookingResponse
    notification_sent: bool


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(gt=0)
    capacity: int = Field(gt=0)
    images: List[str] = []


class UpdateRoomRequest(BaseModel):
    """Update room details request DTO"""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(gt=0)
    capacity: int = Field(gt=0)


class AddRoomImagesRequest(BaseModel):
    """Add gallery images request DTO"""
    file_names: List[str] = Field(min_length=1)


class UpdateRoomStatusRequest(BaseModel):
    """Update room status request DTO"""
    status: RoomStatus


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    name: str
    description: str
    price: Decimal
    capacity: int
    images: List[str]
    status: str
    created_at: datetime
    modified_at: datetime


class AvailabilityResponse(BaseModel):
    """Room availability response DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    available: bool


class OccupancyResponse(BaseModel):
    """Occupancy rate response DTO"""
    room_id: UUID
    start_date: date
    end_date: date
    occupancy_rate: int


class RevenueResponse(BaseModel):
    """Revenue response DTO"""
    room_id: UUID
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_revenue: Decimal


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """Staff user response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
