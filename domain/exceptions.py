"""Domain error taxonomy"""
from domain.enums import VerificationOutcome


class ReservationError(Exception):
    """Base class for every recoverable failure surfaced by the reservation core"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class BusinessRuleViolation(ReservationError):
    """A state-machine guard or booking rule was not satisfied"""


class NotFoundError(ReservationError):
    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = str(identifier)
        super().__init__(f"{resource.capitalize()} not found.")


class AuthorizationError(ReservationError):
    """The caller is not entitled to act on the booking"""

    def __init__(self, message: str = "You are not authorized to act on this booking."):
        super().__init__(message)


_VERIFICATION_MESSAGES = {
    VerificationOutcome.NOT_FOUND: "No active verification code was found. Please request a new code.",
    VerificationOutcome.EXPIRED: "The verification code has expired. Please request a new code.",
    VerificationOutcome.EXHAUSTED: "Maximum verification attempts exceeded. Please request a new code or contact support.",
    VerificationOutcome.MISMATCH: "Invalid verification code.",
}


class VerificationFailed(ReservationError):
    def __init__(self, reason: VerificationOutcome):
        self.reason = reason
        super().__init__(_VERIFICATION_MESSAGES.get(reason, "Verification failed."))

    @property
    def can_retry(self) -> bool:
        """Mismatch may be retried with the same code; everything else needs a resend"""
        return self.reason == VerificationOutcome.MISMATCH


class InfrastructureError(ReservationError):
    """Storage or another collaborator failed; the unit of work was rolled back"""
