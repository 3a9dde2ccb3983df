"""API Dependencies - Service wiring and staff authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from typing import Dict, Optional
from uuid import UUID

from config import settings
from domain.auth import StaffUser, StaffUserInDB
from domain.clock import Clock, SystemClock
from domain.notifications import NotificationSender
from application.otp_service import OtpService
from application.services import ReservationService, RoomService
from infrastructure.notifications import LoggingNotificationSender
from infrastructure.repositories.in_memory_repositories import InMemoryDatabase, InMemoryUnitOfWork
from infrastructure.security import decode_access_token, get_password_hash, verify_password
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


class ServiceContainer:
    """Shared storage, clock and notifier plus the services built on them"""

    def __init__(self, clock: Optional[Clock] = None, notifier: Optional[NotificationSender] = None):
        self.database = InMemoryDatabase()
        self.clock = clock or SystemClock()
        self.notifier = notifier or LoggingNotificationSender()
        self.otp_service = OtpService(self.uow_factory, self.clock)
        self.reservation_service = ReservationService(
            self.uow_factory, self.otp_service, self.notifier, self.clock
        )
        self.room_service = RoomService(self.uow_factory, self.clock)

    def uow_factory(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self.database)


_container = ServiceContainer()


def get_container() -> ServiceContainer:
    return _container


def get_reservation_service(container: ServiceContainer = Depends(get_container)) -> ReservationService:
    return container.reservation_service


def get_room_service(container: ServiceContainer = Depends(get_container)) -> RoomService:
    return container.room_service


# Staff accounts come from configuration; passwords are hashed on first use
_staff_users_db: Dict[str, dict] = {
    settings.ADMIN_USERNAME: {
        "username": settings.ADMIN_USERNAME,
        "full_name": "Front Desk Admin",
        "email": settings.ADMIN_EMAIL,
        "plain_password": settings.ADMIN_PASSWORD,
        "disabled": False,
        "user_id": UUID("123e4567-e89b-12d3-a456-426614174000"),
    }
}

_password_hash_cache: Dict[str, str] = {}


def _get_hashed_password(username: str) -> str:
    if username not in _password_hash_cache:
        user = _staff_users_db.get(username)
        if user and "plain_password" in user:
            _password_hash_cache[username] = get_password_hash(user["plain_password"])
    return _password_hash_cache.get(username, "")


def get_staff_user(username: str) -> Optional[StaffUserInDB]:
    if username not in _staff_users_db:
        return None
    user_dict = _staff_users_db[username].copy()
    user_dict.pop("plain_password", None)
    user_dict["hashed_password"] = _get_hashed_password(username)
    return StaffUserInDB(**user_dict)


def authenticate_staff(username: str, password: str) -> Optional[StaffUserInDB]:
    user = get_staff_user(username)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


async def get_current_staff(token: str = Depends(oauth2_scheme)) -> StaffUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = get_staff_user(token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_staff(current_user: StaffUser = Depends(get_current_staff)) -> StaffUser:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user
