from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CategoryEnum(str, Enum):
    waste = "waste"
    flood = "flood"
    electricity = "electricity"


class StatusEnum(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class RoleEnum(str, Enum):
    citizen = "citizen"
    admin = "admin"


# --- Domain records (returned by repositories and services) ---

class Account(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    email: str
    pincode: str = ""
    address: str = ""
    reward_points: int = 0
    role: RoleEnum = RoleEnum.citizen
    created_at: datetime


class Location(BaseModel):
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Report(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    owner_id: str
    category: CategoryEnum
    description: str = ""
    label: Optional[str] = None
    image_url: Optional[str] = None
    location: Optional[Location] = None
    status: StatusEnum = StatusEnum.pending
    points: int
    created_at: datetime


class RewardSummary(BaseModel):
    account_id: str
    reward_points: int
    reports_by_status: Dict[str, int]
    reports_by_category: Dict[str, int]


# --- Request payloads ---

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    pincode: str = ""
    address: str = ""


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    # Email is immutable after registration; a supplied "email" key is ignored
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    pincode: Optional[str] = None
    address: Optional[str] = None


class ReportSubmission(BaseModel):
    # Category stays a plain string so the service answers unknown values with a 400
    category: str
    description: str = ""
    label: Optional[str] = None
    image_url: Optional[str] = None
    location: Optional[Location] = None


class DecisionRequest(BaseModel):
    decision: str


class PointsAward(BaseModel):
    amount: int


# --- Responses ---

class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: Account


class UploadResponse(BaseModel):
    image_url: str
