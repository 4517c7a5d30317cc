"""
API request and response models for BuildTrack REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tracker/models.py, which own the internal domain representation. Route
handlers map between the two.

Wire format: tracker payloads use camelCase field names (startDate,
budgetTotal, ...) because that is what the web and mobile clients send.
Python code uses snake_case; the alias generator bridges the two and
populate_by_name lets tests and internal callers use either.
"""

from enum import Enum
from typing import Annotated, Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel
from pydantic.networks import validate_email

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 255

T = TypeVar("T")

# Surrounding whitespace is trimmed from identity fields only. Passwords are
# taken byte for byte.
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response.

    error is the human-readable message clients display ("Unauthorized",
    "Invalid credentials", ...). code is the stable machine-readable form.
    detail carries field-level validation errors when present.
    """

    model_config = ConfigDict(frozen=True)

    error: str
    code: str
    detail: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health.

    ok is what the web and mobile clients poll; status and version are for
    operators and load balancers.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool = True
    status: str = "ok"
    version: str


class DataResponse(BaseModel, Generic[T]):
    """{"data": ...} wrapper used by every tracker route."""

    data: T


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class _EmailModel(BaseModel):
    email: TrimmedStr = Field(max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        """Reject malformed addresses but keep the submitted spelling.

        Email is an exact-match, case-sensitive key. Surrounding whitespace
        is trimmed; case and spelling are kept as submitted.
        """
        validate_email(value)
        return value


class SignupRequest(_EmailModel):
    """Request body for POST /api/v1/auth/signup."""

    name: TrimmedStr = Field(min_length=1, max_length=255)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)


class LoginRequest(_EmailModel):
    """Request body for POST /api/v1/auth/login.

    No minimum length beyond non-empty: a short password is a credential
    mismatch (401), not a validation error.
    """

    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    """Public view of a user. Never includes hash or salt."""

    id: int
    email: str
    name: str


class AuthResponse(BaseModel):
    """Response for signup and login."""

    token: str
    user: UserOut


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me."""

    user: UserOut


class LogoutResponse(BaseModel):
    ok: bool = True


# ---------------------------------------------------------------------------
# Tracker -- enums
# ---------------------------------------------------------------------------


class ProjectStatusEnum(str, Enum):
    planning = "planning"
    active = "active"
    on_hold = "on_hold"
    completed = "completed"


class TaskStatusEnum(str, Enum):
    todo = "todo"
    in_progress = "in_progress"
    blocked = "blocked"
    done = "done"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Tracker -- projects
# ---------------------------------------------------------------------------


class ProjectCreate(_CamelModel):
    name: str = Field(min_length=1, max_length=255)
    status: ProjectStatusEnum = ProjectStatusEnum.planning
    start_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    end_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    budget_total: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=5000)


class ProjectPatch(_CamelModel):
    """Partial update. Only fields present in the request body are written."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[ProjectStatusEnum] = None
    start_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    end_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    budget_total: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=5000)


class ProjectOut(_CamelModel):
    id: int
    name: str
    status: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget_total: Optional[float] = None
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Tracker -- tasks
# ---------------------------------------------------------------------------


class TaskCreate(_CamelModel):
    title: str = Field(min_length=1, max_length=255)
    status: TaskStatusEnum = TaskStatusEnum.todo
    due_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)


class TaskPatch(_CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[TaskStatusEnum] = None
    due_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)


class TaskOut(_CamelModel):
    id: int
    project_id: int
    title: str
    status: str
    due_date: Optional[str] = None


# ---------------------------------------------------------------------------
# Tracker -- expenses
# ---------------------------------------------------------------------------


class ExpenseCreate(_CamelModel):
    amount: float
    category_id: str = Field(min_length=1, max_length=64)
    description: Optional[str] = Field(default=None, max_length=1000)
    expense_date: str = Field(pattern=DATE_PATTERN)


class ExpenseOut(_CamelModel):
    id: int
    project_id: int
    amount: float
    category_id: str
    description: Optional[str] = None
    expense_date: str


# ---------------------------------------------------------------------------
# Tracker -- company
# ---------------------------------------------------------------------------


class CompanySetupRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class CompanyOut(_CamelModel):
    id: int
    name: str
    company_setup_complete: bool


class CompanyResponse(BaseModel):
    company: Optional[CompanyOut] = None
