"""Domain Value Objects"""
from pydantic import BaseModel, validator
from datetime import date
from typing import Optional

from domain.exceptions import BusinessRuleViolation


class DateRange(BaseModel):
    """Half-open stay interval [check_in, check_out)"""
    check_in: date
    check_out: date

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise BusinessRuleViolation("Check-in date must be before check-out date.")
        return v

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        return self.check_in < other.check_out and self.check_out > other.check_in

    def contains(self, other: "DateRange") -> bool:
        return self.check_in <= other.check_in and other.check_out <= self.check_out

    class Config:
        frozen = True


class ContactInfo(BaseModel):
    """Guest phone and postal address"""
    phone: str
    address: str

    @validator('phone')
    def phone_not_blank(cls, v):
        if not v or not v.strip():
            raise BusinessRuleViolation("Phone cannot be empty.")
        return v.strip()

    @validator('address')
    def address_not_blank(cls, v):
        if not v or not v.strip():
            raise BusinessRuleViolation("Address cannot be empty.")
        return v.strip()

    class Config:
        frozen = True


class GalleryImage(BaseModel):
    """Image shown in a room's gallery"""
    file_name: str

    class Config:
        frozen = True


class Requester(BaseModel):
    """Whoever is asking the orchestrator to act on a booking"""
    email: Optional[str] = None
    username: Optional[str] = None
    is_staff: bool = False

    @classmethod
    def guest(cls, email: str) -> "Requester":
        return cls(email=email)

    @classmethod
    def staff(cls, username: str) -> "Requester":
        return cls(username=username, is_staff=True)

    def may_act_for(self, email_address: str) -> bool:
        if self.is_staff:
            return True
        if not self.email:
            return False
        return self.email.strip().lower() == email_address.strip().lower()

    class Config:
        frozen = True
