"""One-time passcode issuing and verification for booking confirmation"""
import logging
import secrets
from typing import Optional
from uuid import UUID

from config import settings
from domain.clock import Clock
from domain.entities import OtpVerification
from domain.enums import VerificationOutcome
from domain.repositories import UnitOfWork
from application.unit_of_work import UnitOfWorkFactory, atomic, otp_lock

logger = logging.getLogger(__name__)


class OtpService:
    """Issues and checks booking passcodes

    Only digests are stored. Issuing a code for a booking supersedes every
    live code for that booking. Validation never raises for a wrong,
    expired or exhausted code; it reports a VerificationOutcome and persists
    the attempt before returning.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Clock,
        expiry_minutes: Optional[int] = None,
        max_attempts: Optional[int] = None,
        code_length: Optional[int] = None,
    ):
        self.uow_factory = uow_factory
        self.clock = clock
        self.expiry_minutes = expiry_minutes or settings.OTP_EXPIRY_MINUTES
        self.max_attempts = max_attempts or settings.OTP_MAX_ATTEMPTS
        self.code_length = code_length or settings.OTP_LENGTH

    def generate_code(self) -> str:
        return f"{secrets.randbelow(10 ** self.code_length):0{self.code_length}d}"

    async def issue(self, uow: UnitOfWork, booking_id: UUID, email_address: str) -> str:
        """Supersede live codes and store a new one inside the caller's unit of work"""
        superseded = await uow.otps.invalidate_by_booking(booking_id)
        otp_code = self.generate_code()
        record = OtpVerification.create(
            booking_id=booking_id,
            email_address=email_address,
            otp_code=otp_code,
            now=self.clock.now(),
            expiration_minutes=self.expiry_minutes,
        )
        await uow.otps.save(record)
        logger.info(f"Issued OTP for booking {booking_id} (superseded {superseded})")
        return otp_code

    async def generate(self, booking_id: UUID, email_address: str) -> str:
        """Issue a code in its own unit of work and return the plaintext for delivery"""
        async with atomic(self.uow_factory, otp_lock(booking_id)) as uow:
            return await self.issue(uow, booking_id, email_address)

    async def validate(self, booking_id: UUID, otp_code: str, email_address: str) -> VerificationOutcome:
        async with atomic(self.uow_factory, otp_lock(booking_id)) as uow:
            return await self.check(uow, booking_id, otp_code, email_address)

    async def check(self, uow: UnitOfWork, booking_id: UUID, otp_code: str, email_address: str) -> VerificationOutcome:
        """Classify a code inside the caller's unit of work; the caller holds otp_lock

        A match is staged as used and lands only if the caller commits. A
        mismatch is committed at once so the attempt counts even when the
        caller rolls back.
        """
        record = await uow.otps.find_latest(booking_id, email_address)
        if record is None:
            outcome = VerificationOutcome.NOT_FOUND
        else:
            outcome = record.check(otp_code, self.clock.now(), self.max_attempts)
            if outcome == VerificationOutcome.VALID:
                await uow.otps.update(record.mark_as_used())
            elif outcome == VerificationOutcome.MISMATCH:
                await self._record_failed_attempt(record)

        if outcome.is_valid:
            logger.info(f"OTP verified for booking {booking_id}")
        else:
            logger.info(f"OTP rejected for booking {booking_id}: {outcome.value}")
        return outcome

    async def _record_failed_attempt(self, record: OtpVerification) -> None:
        async with atomic(self.uow_factory) as attempt_uow:
            await attempt_uow.otps.update(record.increment_attempts())

    async def invalidate(self, booking_id: UUID, email_address: str) -> bool:
        async with atomic(self.uow_factory, otp_lock(booking_id)) as uow:
            record = await uow.otps.find_latest(booking_id, email_address)
            if record is None:
                return False
            await uow.otps.update(record.invalidate())
            return True

    async def get_attempts(self, booking_id: UUID, email_address: str) -> int:
        async with atomic(self.uow_factory) as uow:
            record = await uow.otps.find_latest(booking_id, email_address)
            return record.attempts if record else 0

    async def purge_expired(self) -> int:
        """Retention sweep: drop records whose expiry has passed"""
        async with atomic(self.uow_factory) as uow:
            removed = await uow.otps.delete_expired(self.clock.now())
        if removed:
            logger.info(f"Purged {removed} expired OTP record(s)")
        return removed
