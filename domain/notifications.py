"""Outbound guest messaging interface"""
from abc import ABC, abstractmethod

from domain.entities import Booking


class NotificationSender(ABC):
    """Delivers guest messages; each call reports whether delivery succeeded"""

    @abstractmethod
    async def send_otp_verification(self, booking: Booking, otp_code: str) -> bool:
        pass

    @abstractmethod
    async def send_booking_confirmation(self, booking: Booking) -> bool:
        pass

    @abstractmethod
    async def send_booking_update(self, booking: Booking, update_type: str) -> bool:
        pass

    @abstractmethod
    async def send_booking_cancellation(self, booking: Booking) -> bool:
        pass
