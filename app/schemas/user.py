from pydantic import BaseModel, EmailStr, field_validator
from typing import List, Optional
from app.core.permissions import DIVISIONS
from app.models.user import UserRole

# Shared properties
class UserBase(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    roles: Optional[List[UserRole]] = None
    division: Optional[str] = None
    position: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("division")
    @classmethod
    def check_division(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        value = value.strip().upper()
        if value not in DIVISIONS:
            raise ValueError(f"division must be one of: {', '.join(DIVISIONS)}")
        return value

# Properties to receive via API on creation
class UserCreate(UserBase):
    email: EmailStr
    password: str

# Properties to receive via API on update
class UserUpdate(UserBase):
    password: Optional[str] = None

# Properties a user may change on their own profile
class UserUpdateMe(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    password: Optional[str] = None

# Properties to return to client
class UserRead(UserBase):
    id: str
    email: EmailStr
    last_login: Optional[str] = None
    created_at: Optional[str] = None

    class Config:
        from_attributes = True


class DeactivationResult(BaseModel):
    deactivated_count: int
    threshold: str
    emails: List[str]
