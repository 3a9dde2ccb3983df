import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Bookings
    CreateBookingRequest, VerifyOtpRequest, GuestActionRequest, UpdateBookingDatesRequest,
    UpdateBookingStatusRequest, GuestBookingResponse, BookingResponse, CreateBookingResponse,
    BookingActionResponse, StaffBookingActionResponse,
    # Rooms
    CreateRoomRequest, UpdateRoomRequest, AddRoomImagesRequest, UpdateRoomStatusRequest,
    RoomResponse, AvailabilityResponse, OccupancyResponse, RevenueResponse,
    # Auth
    Token, UserResponse
)
from api.dependencies import (
    get_container, get_reservation_service, get_room_service,
    authenticate_staff, get_current_active_staff
)
from application.services import BookingReceipt, ReservationService, RoomService
from config import settings
from domain.auth import StaffUser
from domain.entities import Booking, Room
from domain.enums import BookingStatus, RoomStatus
from domain.exceptions import (
    AuthorizationError, BusinessRuleViolation, InfrastructureError, NotFoundError, VerificationFailed
)
from domain.value_objects import Requester
from infrastructure.otp_purge_scheduler import run_otp_purge_scheduler
from infrastructure.security import create_access_token
from infrastructure.seed import seed_demo_data

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed demo data and run the OTP purge loop for the life of the app"""
    container = get_container()
    if settings.SEED_DEMO_DATA:
        await seed_demo_data(container.uow_factory)

    purge_task = asyncio.create_task(
        run_otp_purge_scheduler(container.otp_service, settings.OTP_PURGE_INTERVAL_SECONDS)
    )
    logger.info(f"{settings.APP_NAME} v{settings.VERSION} started")
    yield
    purge_task.cancel()
    with suppress(asyncio.CancelledError):
        await purge_task
    logger.info("Application shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    description="Room booking engine with OTP-verified guest confirmation",
    version=settings.VERSION,
    lifespan=lifespan
)

# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(BusinessRuleViolation)
async def business_rule_handler(request: Request, exc: BusinessRuleViolation):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})

@app.exception_handler(VerificationFailed)
async def verification_failed_handler(request: Request, exc: VerificationFailed):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "reason": exc.reason.value, "can_retry": exc.can_retry},
    )

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})

@app.exception_handler(AuthorizationError)
async def authorization_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": exc.message})

@app.exception_handler(InfrastructureError)
async def infrastructure_handler(request: Request, exc: InfrastructureError):
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": exc.message})

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    """Get all BookingStatus enum values"""
    return {
        "values": [item.value for item in BookingStatus],
        "description": "Booking status values; Booked is reserved and never reached"
    }

@app.get("/api/enums/room-status", tags=["Enum Reference"])
async def get_room_statuses():
    """Get all RoomStatus enum values"""
    return {
        "values": [item.value for item in RoomStatus],
        "description": "Only Available, Inactive and Maintenance can be set directly"
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = authenticate_staff(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(data={"sub": user.username})
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: StaffUser = Depends(get_current_active_staff)):
    return current_user

# ============================================================================
# GUEST BOOKING ENDPOINTS (keyed by booking token)
# ============================================================================

@app.post("/api/bookings", response_model=CreateBookingResponse, status_code=201, tags=["Bookings"])
async def create_booking(
    request: CreateBookingRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Reserve a room; a verification code is sent to the guest"""
    receipt = await service.create_booking(
        room_id=request.room_id,
        check_in=request.check_in,
        check_out=request.check_out,
        guests=request.guests,
        guest_name=request.guest_name,
        email_address=request.email_address,
        phone=request.phone,
        address=request.address,
        special_requests=request.special_requests
    )
    return CreateBookingResponse(
        booking=_booking_to_guest_response(receipt.booking),
        otp_sent=receipt.notification_sent
    )

@app.get("/api/bookings/{booking_token}", response_model=GuestBookingResponse, tags=["Bookings"])
async def get_booking_by_token(
    booking_token: UUID,
    service: ReservationService = Depends(get_reservation_service)
):
    """View a booking by its guest token"""
    booking = await service.get_booking_by_token(booking_token)
    return _booking_to_guest_response(booking)

@app.post("/api/bookings/{booking_token}/verify", response_model=BookingActionResponse, tags=["Bookings"])
async def verify_booking(
    booking_token: UUID,
    request: VerifyOtpRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Confirm a pending booking with the emailed code"""
    booking = await service.get_booking_by_token(booking_token)
    receipt = await service.confirm_booking(booking.id, request.otp_code)
    return _guest_action_response(receipt)

@app.post("/api/bookings/{booking_token}/resend-otp", response_model=BookingActionResponse, tags=["Bookings"])
async def resend_otp(
    booking_token: UUID,
    request: GuestActionRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Issue a new verification code, replacing the previous one"""
    booking = await service.get_booking_by_token(booking_token)
    receipt = await service.resend_otp(booking.id, Requester.guest(request.email_address))
    return _guest_action_response(receipt)

@app.put("/api/bookings/{booking_token}/dates", response_model=BookingActionResponse, tags=["Bookings"])
async def update_booking_dates(
    booking_token: UUID,
    request: UpdateBookingDatesRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Move a pending booking to new dates"""
    booking = await service.get_booking_by_token(booking_token)
    receipt = await service.update_booking_dates(
        booking.id, request.check_in, request.check_out, Requester.guest(request.email_address)
    )
    return _guest_action_response(receipt)

@app.post("/api/bookings/{booking_token}/cancel", response_model=BookingActionResponse, tags=["Bookings"])
async def cancel_booking(
    booking_token: UUID,
    request: GuestActionRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Cancel a booking"""
    booking = await service.get_booking_by_token(booking_token)
    receipt = await service.cancel_booking(booking.id, Requester.guest(request.email_address))
    return _guest_action_response(receipt)

# ============================================================================
# STAFF BOOKING ENDPOINTS
# ============================================================================

@app.get("/api/admin/bookings", response_model=List[BookingResponse], tags=["Bookings (staff)"])
async def get_all_bookings(
    email_address: Optional[str] = None,
    service: ReservationService = Depends(get_reservation_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """List bookings, optionally for one email address"""
    if email_address:
        bookings = await service.get_bookings_by_email(email_address)
    else:
        bookings = await service.get_all_bookings()
    return [_booking_to_response(b) for b in bookings]

@app.get("/api/admin/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings (staff)"])
async def get_booking(
    booking_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Get booking by ID"""
    booking = await service.get_booking(booking_id)
    return _booking_to_response(booking)

@app.post("/api/admin/bookings/{booking_id}/check-in", response_model=StaffBookingActionResponse, tags=["Bookings (staff)"])
async def check_in_booking(
    booking_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Check the guest in"""
    receipt = await service.check_in(booking_id, current_user.as_requester())
    return _staff_action_response(receipt)

@app.post("/api/admin/bookings/{booking_id}/check-out", response_model=StaffBookingActionResponse, tags=["Bookings (staff)"])
async def check_out_booking(
    booking_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Check the guest out"""
    receipt = await service.check_out(booking_id, current_user.as_requester())
    return _staff_action_response(receipt)

@app.post("/api/admin/bookings/{booking_id}/complete", response_model=StaffBookingActionResponse, tags=["Bookings (staff)"])
async def complete_booking(
    booking_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Close a checked-out booking once its check-out date has passed"""
    receipt = await service.complete_booking(booking_id, current_user.as_requester())
    return _staff_action_response(receipt)

@app.post("/api/admin/bookings/{booking_id}/cancel", response_model=StaffBookingActionResponse, tags=["Bookings (staff)"])
async def cancel_booking_as_staff(
    booking_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Cancel any booking"""
    receipt = await service.cancel_booking(booking_id, current_user.as_requester())
    return _staff_action_response(receipt)

@app.put("/api/admin/bookings/{booking_id}/status", response_model=StaffBookingActionResponse, tags=["Bookings (staff)"])
async def update_booking_status(
    booking_id: UUID,
    request: UpdateBookingStatusRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Move a booking to the requested status through its guarded transition"""
    receipt = await service.update_status(booking_id, request.status, current_user.as_requester())
    return _staff_action_response(receipt)

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(service: RoomService = Depends(get_room_service)):
    """List all rooms"""
    rooms = await service.list_rooms()
    return [_room_to_response(r) for r in rooms]

@app.get("/api/rooms/available", response_model=List[RoomResponse], tags=["Rooms"])
async def list_available_rooms(
    check_in: date,
    check_out: date,
    service: RoomService = Depends(get_room_service)
):
    """Rooms bookable for the whole stay, cheapest first"""
    rooms = await service.list_available_rooms(check_in, check_out)
    return [_room_to_response(r) for r in rooms]

@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(room_id: UUID, service: RoomService = Depends(get_room_service)):
    """Get room by ID"""
    room = await service.get_room(room_id)
    return _room_to_response(room)

@app.get("/api/rooms/{room_id}/availability", response_model=AvailabilityResponse, tags=["Rooms"])
async def check_room_availability(
    room_id: UUID,
    check_in: date,
    check_out: date,
    service: RoomService = Depends(get_room_service)
):
    """Check whether a room can be booked for a stay"""
    available = await service.check_availability(room_id, check_in, check_out)
    return AvailabilityResponse(room_id=room_id, check_in=check_in, check_out=check_out, available=available)

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Create a room"""
    room = await service.create_room(
        name=request.name,
        description=request.description,
        price=request.price,
        capacity=request.capacity,
        image_file_names=request.images
    )
    return _room_to_response(room)

@app.put("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: UUID,
    request: UpdateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Update room details"""
    room = await service.update_room(
        room_id=room_id,
        name=request.name,
        description=request.description,
        price=request.price,
        capacity=request.capacity
    )
    return _room_to_response(room)

@app.post("/api/rooms/{room_id}/images", response_model=RoomResponse, tags=["Rooms"])
async def add_room_images(
    room_id: UUID,
    request: AddRoomImagesRequest,
    service: RoomService = Depends(get_room_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Append images to the room gallery"""
    room = await service.add_room_images(room_id, request.file_names)
    return _room_to_response(room)

@app.put("/api/rooms/{room_id}/status", response_model=RoomResponse, tags=["Rooms"])
async def update_room_status(
    room_id: UUID,
    request: UpdateRoomStatusRequest,
    service: RoomService = Depends(get_room_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Activate, deactivate or put a room under maintenance"""
    room = await service.update_room_status(room_id, request.status)
    return _room_to_response(room)

@app.get("/api/rooms/{room_id}/occupancy", response_model=OccupancyResponse, tags=["Reports"])
async def get_room_occupancy(
    room_id: UUID,
    start_date: date,
    end_date: date,
    service: RoomService = Depends(get_room_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Percentage of nights in the window covered by stays"""
    rate = await service.get_occupancy_rate(room_id, start_date, end_date)
    return OccupancyResponse(room_id=room_id, start_date=start_date, end_date=end_date, occupancy_rate=rate)

@app.get("/api/rooms/{room_id}/revenue", response_model=RevenueResponse, tags=["Reports"])
async def get_room_revenue(
    room_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: RoomService = Depends(get_room_service),
    current_user: StaffUser = Depends(get_current_active_staff)
):
    """Income from stays that lie entirely inside the window"""
    revenue = await service.get_revenue(room_id, start_date, end_date)
    return RevenueResponse(room_id=room_id, start_date=start_date, end_date=end_date, total_revenue=revenue)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _booking_to_guest_response(booking: Booking) -> GuestBookingResponse:
    """Convert Booking entity to GuestBookingResponse"""
    return GuestBookingResponse(
        booking_token=booking.booking_token,
        room_id=booking.room_id,
        guest_name=booking.guest_name,
        email_address=booking.email_address,
        check_in=booking.check_in,
        check_out=booking.check_out,
        nights=booking.nights(),
        guests=booking.guests,
        total_amount=booking.total_amount,
        special_requests=booking.special_requests,
        status=booking.status.value,
        created_at=booking.created_at,
        modified_at=booking.modified_at
    )

def _booking_to_response(booking: Booking) -> BookingResponse:
    """Convert Booking entity to BookingResponse"""
    return BookingResponse(
        **_booking_to_guest_response(booking).model_dump(),
        booking_id=booking.id,
        phone=booking.contact_info.phone,
        address=booking.contact_info.address,
        version=booking.version
    )

def _guest_action_response(receipt: BookingReceipt) -> BookingActionResponse:
    return BookingActionResponse(
        booking=_booking_to_guest_response(receipt.booking),
        notification_sent=receipt.notification_sent
    )

def _staff_action_response(receipt: BookingReceipt) -> StaffBookingActionResponse:
    return StaffBookingActionResponse(
        booking=_booking_to_response(receipt.booking),
        notification_sent=receipt.notification_sent
    )

def _room_to_response(room: Room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.id,
        name=room.name,
        description=room.description,
        price=room.price,
        capacity=room.capacity,
        images=[image.file_name for image in room.images],
        status=room.status.value,
        created_at=room.created_at,
        modified_at=room.modified_at
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
