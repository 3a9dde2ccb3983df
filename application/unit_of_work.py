"""Atomic use-case scope shared by the application services"""
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Callable
from uuid import UUID

from domain.exceptions import InfrastructureError, ReservationError
from domain.repositories import UnitOfWork

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[], UnitOfWork]


# Locks must be taken in this order: room, booking, otp
def room_lock(room_id: UUID) -> str:
    return f"room:{room_id}"


def booking_lock(booking_id: UUID) -> str:
    return f"booking:{booking_id}"


def otp_lock(booking_id: UUID) -> str:
    return f"otp:{booking_id}"


@asynccontextmanager
async def atomic(uow_factory: UnitOfWorkFactory, *lock_keys: str) -> AsyncIterator[UnitOfWork]:
    """Run a block inside a fresh unit of work, holding the given advisory locks

    Domain errors pass through after rollback. Anything else is rolled back
    and surfaced as InfrastructureError.
    """
    uow = uow_factory()
    async with AsyncExitStack() as stack:
        for key in lock_keys:
            await stack.enter_async_context(uow.lock(key))
        try:
            async with uow.transaction():
                yield uow
        except ReservationError:
            raise
        except Exception as exc:
            logger.exception("Unit of work failed and was rolled back")
            raise InfrastructureError(
                "The operation could not be completed. Please try again later."
            ) from exc
