"""Notification sender that records guest messages in the application log"""
import logging

from domain.entities import Booking
from domain.notifications import NotificationSender

logger = logging.getLogger(__name__)


class LoggingNotificationSender(NotificationSender):
    """Stands in for mail delivery, which lives outside this service"""

    async def send_otp_verification(self, booking: Booking, otp_code: str) -> bool:
        logger.info(f"Verification code issued for booking token {booking.booking_token}")
        logger.debug(f"OTP for {booking.email_address}: {otp_code}")
        return True

    async def send_booking_confirmation(self, booking: Booking) -> bool:
        logger.info(
            f"Confirmation sent to {booking.email_address} for {booking.check_in} - {booking.check_out}"
        )
        return True

    async def send_booking_update(self, booking: Booking, update_type: str) -> bool:
        logger.info(f"Booking update ({update_type}) sent to {booking.email_address}")
        return True

    async def send_booking_cancellation(self, booking: Booking) -> bool:
        logger.info(f"Cancellation notice sent to {booking.email_address}")
        return True
