"""
Pydantic schemas for the scholarship backend.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    MODERATOR = "moderator"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class ScholarshipCreate(BaseModel):
    """Scholarship fields; extra descriptive fields are stored as sent."""

    model_config = ConfigDict(extra="allow")

    universityName: str = Field(..., min_length=1)
    scholarshipName: str = Field(..., min_length=1)
    degree: str = Field(..., min_length=1)
    applicationFees: float = Field(..., ge=0)


class ScholarshipUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    universityName: Optional[str] = None
    scholarshipName: Optional[str] = None
    degree: Optional[str] = None
    applicationFees: Optional[float] = Field(default=None, ge=0)


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = Field(..., min_length=3, max_length=320)
    displayName: Optional[str] = None
    photoURL: Optional[str] = None


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    displayName: Optional[str] = None
    photoURL: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Role


class RoleResponse(BaseModel):
    role: Role


class ReviewCreate(BaseModel):
    """Review body. Any ``email`` sent by the client is replaced server-side."""

    model_config = ConfigDict(extra="allow")

    scholarshipId: str = Field(..., min_length=1)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    comment: Optional[str] = Field(default=None, max_length=4096)


class ApplicationCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    userEmail: str = Field(..., min_length=3, max_length=320)
    scholarshipId: str = Field(..., min_length=1)


class CheckoutRequest(BaseModel):
    applicationFees: float = Field(..., gt=0)
    scholarshipId: str = Field(..., min_length=1)
    scholarshipName: Optional[str] = None
    studentEmail: str = Field(..., min_length=3, max_length=320)
    applicationId: Optional[str] = None


class CheckoutResponse(BaseModel):
    url: str


class PaymentConfirmationResponse(BaseModel):
    success: bool
    paymentStatus: str
    scholarshipId: Optional[str] = None
    modifiedCount: int = 0


class InsertResponse(BaseModel):
    acknowledged: Literal[True] = True
    insertedId: str


class UpdateResponse(BaseModel):
    acknowledged: Literal[True] = True
    matchedCount: int
    modifiedCount: int


class DeleteResponse(BaseModel):
    acknowledged: Literal[True] = True
    deletedCount: int


class ExistsResponse(BaseModel):
    exists: Literal[True] = True
    message: str


class HealthResponse(BaseModel):
    status: Literal["ok"]
