"""
OTP retention sweep
Runs as a background asyncio task from the app lifespan and periodically
deletes verification records whose expiry has passed.
"""
import asyncio
import logging

from application.otp_service import OtpService
from domain.exceptions import InfrastructureError

logger = logging.getLogger(__name__)


async def purge_expired_otps(otp_service: OtpService) -> int:
    try:
        return await otp_service.purge_expired()
    except InfrastructureError as exc:
        logger.error(f"OTP purge failed: {exc}")
        return 0


async def run_otp_purge_scheduler(otp_service: OtpService, interval_seconds: int) -> None:
    """Sweep once on startup, then every interval_seconds until cancelled"""
    logger.info(f"OTP purge scheduler started (interval: {interval_seconds}s)")
    await purge_expired_otps(otp_service)
    while True:
        await asyncio.sleep(interval_seconds)
        await purge_expired_otps(otp_service)
