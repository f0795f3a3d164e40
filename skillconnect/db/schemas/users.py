from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Role = Literal["mentee", "mentor", "admin"]
AccountStatus = Literal["active", "inactive", "suspended", "pending"]


class UserBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: str
    phone: Optional[str] = None


class UserCreate(UserBase):
    roles: List[Role] = Field(default_factory=lambda: ["mentee"])
    account_status: AccountStatus = "pending"
    email_verified: bool = False
    registration_source: str = "web"


class UserUpdate(BaseModel):
    roles: Optional[List[Role]] = None
    current_role: Optional[Role] = None
    account_status: Optional[AccountStatus] = None
    suspension_reason: Optional[str] = None


class User(UserBase):
    id: str
    roles: List[str]
    current_role: str
    account_status: str
    suspension_reason: Optional[str] = None
    email_verified: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserStatusUpdate(BaseModel):
    status: Literal["active", "inactive", "suspended"]
    reason: Optional[str] = None


class UserRolesUpdate(BaseModel):
    roles: List[Role] = Field(min_length=1)


class RoleSwitch(BaseModel):
    role: Role
