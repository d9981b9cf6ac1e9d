"""
API request and response models for the Oil Union REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
registry/models.py, which own the internal domain representation. Route
handlers map between the two (model_validate(from_attributes) on the way out,
model_dump() into service keyword arguments on the way in).

Every response uses the same envelope:
    {"success": true,  "data": {...}, "message": "..."}
    {"success": false, "error": "...", "code": "...", "details": [...]}

A handful of wire names are camelCase for the existing frontend
(requiresPasswordChange, tempPassword, tempPass, currentPassword, newPassword,
userId, refreshToken). Those fields use alias= with populate_by_name so Python
code keeps snake_case.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from datetime import date
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from auth.tokens import PASSWORD_MAX_BYTES

T = TypeVar("T")

# Character cap for the schema; _within_bcrypt_limit enforces the byte cap.
_PASSWORD_MAX = PASSWORD_MAX_BYTES


def _within_bcrypt_limit(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DealerStatusEnum(str, Enum):
    active = "active"
    suspended = "suspended"


class EmployeeStatusEnum(str, Enum):
    active = "active"
    terminated = "terminated"


class CustomerTypeEnum(str, Enum):
    private = "private"
    government = "government"


class CustomerStatusEnum(str, Enum):
    active = "active"
    inactive = "inactive"


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class Envelope(BaseModel, Generic[T]):
    """Success envelope. data is None for operations that only report a message."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Failure envelope returned by every exception handler in api/main.py."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: str
    code: str
    details: Optional[list[FieldError]] = None


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "Kashmir Oil Union API is running"
    version: str
    timestamp: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth / account requests
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)

    check_password_bytes = field_validator("password")(_within_bcrypt_limit)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    refresh_token: str = Field(alias="refreshToken", min_length=1)


class ForgotPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr


class ProfileUpdate(BaseModel):
    """PATCH /users/profile and PUT /auth/profile. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    username: Optional[str] = Field(default=None, min_length=1, max_length=100)


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword", min_length=1, max_length=_PASSWORD_MAX)
    new_password: str = Field(alias="newPassword", min_length=6, max_length=_PASSWORD_MAX)

    check_password_bytes = field_validator("current_password", "new_password")(_within_bcrypt_limit)


# ---------------------------------------------------------------------------
# Dealer requests (admin)
# ---------------------------------------------------------------------------


class DealerCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    company_name: str = Field(min_length=1, max_length=255)
    primary_contact_name: str = Field(min_length=1, max_length=255)
    primary_contact_phone: str = Field(min_length=1, max_length=30)
    primary_contact_email: EmailStr
    address: str = Field(min_length=1, max_length=1000)


class DealerPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    primary_contact_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    primary_contact_phone: Optional[str] = Field(default=None, min_length=1, max_length=30)
    primary_contact_email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    status: Optional[DealerStatusEnum] = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1, max_length=36)


# ---------------------------------------------------------------------------
# Employee / customer requests (dealer)
# ---------------------------------------------------------------------------


class EmployeeCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=1, max_length=30)
    email: EmailStr
    aadhar: str = Field(pattern=r"^\d{12}$", description="12-digit national id number.")
    position: str = Field(min_length=1, max_length=100)
    hire_date: date


class EmployeePatch(BaseModel):
    """Status is not patchable; use POST /employees/{id}/terminate."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    position: Optional[str] = Field(default=None, min_length=1, max_length=100)


class TerminateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    termination_date: date
    termination_reason: str = Field(min_length=1, max_length=1000)


class CustomerCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: CustomerTypeEnum
    name_or_entity: str = Field(min_length=1, max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    phone: str = Field(min_length=1, max_length=30)
    email: EmailStr
    official_id: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=1, max_length=1000)


class CustomerPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[CustomerTypeEnum] = None
    name_or_entity: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_person: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    official_id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    address: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    status: Optional[CustomerStatusEnum] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """An account as seen by clients. password_hash is never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    role: str
    name: str
    username: str
    email: str
    temp_pass: bool
    dealer_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_login: Optional[str] = None


class UserData(BaseModel):
    user: UserResponse


class LoginData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserResponse
    token: str
    refresh_token: str = Field(alias="refreshToken")
    # Dealer login only.
    requires_password_change: Optional[bool] = Field(default=None, alias="requiresPasswordChange")


class TokenData(BaseModel):
    token: str


class DealerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    company_name: str
    primary_contact_name: str
    primary_contact_phone: str
    primary_contact_email: str
    address: str
    status: str
    created_at: str
    updated_at: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    username: Optional[str] = None


class DealerData(BaseModel):
    dealer: DealerResponse


class DealerList(BaseModel):
    dealers: list[DealerResponse]


class DealerCreatedData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dealer: DealerResponse
    temp_password: str = Field(alias="tempPassword")


class TempPassData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temp_pass: str = Field(alias="tempPass")


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    dealer_id: str
    first_name: str
    last_name: str
    phone: str
    email: str
    aadhar: str
    position: str
    hire_date: str
    status: str
    termination_date: Optional[str] = None
    termination_reason: Optional[str] = None
    created_at: str
    updated_at: str


class EmployeeData(BaseModel):
    employee: EmployeeResponse


class EmployeeList(BaseModel):
    employees: list[EmployeeResponse]


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    dealer_id: str
    type: str
    name_or_entity: str
    contact_person: Optional[str] = None
    phone: str
    email: str
    official_id: str
    address: str
    status: str
    created_at: str
    updated_at: str


class CustomerData(BaseModel):
    customer: CustomerResponse


class CustomerList(BaseModel):
    customers: list[CustomerResponse]


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    who_user_id: str
    who_user_name: str
    dealer_id: Optional[str] = None
    action_type: str
    details: str
    timestamp: str


class AuditLogList(BaseModel):
    logs: list[AuditLogResponse]


class SearchResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str  # "employee" | "customer"
    name: str
    email: str
    phone: str
    status: str
    dealer_id: str
    dealer_name: str
    additional: dict[str, Any] = Field(default_factory=dict)


class SearchData(BaseModel):
    results: list[SearchResultResponse]


class AadharMatch(BaseModel):
    """The active employee holding a given aadhar (check-aadhar)."""

    id: str
    type: str = "employee"
    name: str
    email: str
    phone: str
    status: str
    dealer_id: str
    aadhar: str
    position: str
    hire_date: str
