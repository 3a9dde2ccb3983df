"""Domain Entities - Staff accounts"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from typing import Optional

from domain.value_objects import Requester


class StaffUser(BaseModel):
    """Hotel staff member allowed to manage rooms and every booking"""
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False

    class Config:
        from_attributes = True

    def as_requester(self) -> Requester:
        return Requester.staff(self.username)


class StaffUserInDB(StaffUser):
    """Staff member with hashed password for storage"""
    hashed_password: str
