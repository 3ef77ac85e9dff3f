"""
Database Schemas for the OTT catalog

Each Pydantic model represents a collection in MongoDB. The collection name
is the lowercase of the class name (e.g., User -> "user", Content -> "content").
Documents are stored with camelCase keys, the same shape the API speaks; the
Python attributes stay snake_case through the alias generator.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool, field_validator, model_validator
from pydantic.alias_generators import to_camel

DUBBING_LANGUAGES = [
    "tamil", "telugu", "kannada", "malayalam", "hindi", "punjabi",
    "bengali", "marathi", "bhojpuri", "gujarati", "english",
    "haryanvi", "rajasthani", "deccani", "arabic",
]

Role = Literal["user", "admin"]
ActivityAction = Literal[
    "login", "logout", "create", "update", "delete", "import", "export",
    "role_change", "status_change", "register",
]
ACTIVITY_ACTIONS = list(get_args(ActivityAction))


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# -------- Collections --------

class User(CamelModel):
    """
    Users collection schema
    The password is only ever stored as a bcrypt hash and is stripped from responses.
    """
    username: str = Field(..., min_length=3, max_length=30, description="Unique username")
    email: EmailStr = Field(..., description="Email address (unique)")
    password_hash: str = Field(..., description="BCrypt hash of the user's password")
    role: Role = Field("user", description="user | admin")
    is_active: bool = Field(True, description="Soft-disable flag")
    last_login: Optional[datetime] = None


class Useractivity(CamelModel):
    """
    Append-only audit log of state-changing operations
    Collection: "useractivity"
    """
    user: Any = Field(..., description="ObjectId of the acting user")
    action: ActivityAction
    details: Dict[str, Any] = Field(default_factory=dict)


class Dubbing(BaseModel):
    tamil: bool = False
    telugu: bool = False
    kannada: bool = False
    malayalam: bool = False
    hindi: bool = False
    punjabi: bool = False
    bengali: bool = False
    marathi: bool = False
    bhojpuri: bool = False
    gujarati: bool = False
    english: bool = False
    haryanvi: bool = False
    rajasthani: bool = False
    deccani: bool = False
    arabic: bool = False

    def total(self) -> int:
        return sum(1 for lang in DUBBING_LANGUAGES if getattr(self, lang))


class SourceFlags(CamelModel):
    in_house: bool = False
    commissioned: bool = False
    co_production: bool = False


SOURCE_FLAG_FOR = {"In-House": "in_house", "Commissioned": "commissioned", "Co-Production": "co_production"}


class Content(CamelModel):
    """
    Catalog entries
    Collection: "content"
    (platform, title, year) should be unique; only an advisory probe enforces it.
    """
    platform: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    self_declared_genre: Optional[str] = ""
    assigned_genre: Optional[str] = None
    primary_language: str = Field(..., min_length=1)
    self_declared_format: Optional[str] = ""
    assigned_format: Optional[str] = None
    year: int = Field(..., ge=1900, le=2030)
    release_date: Optional[datetime] = None
    seasons: Optional[int] = Field(1, ge=0)
    episodes: Optional[int] = Field(None, ge=0)
    duration_hours: Optional[float] = Field(None, ge=0)
    source: str = "TBD"
    source_flags: SourceFlags = Field(default_factory=SourceFlags)
    dubbing: Dubbing = Field(default_factory=Dubbing)
    total_dubbings: int = 0
    age_rating: str = "Not Rated"

    @field_validator("release_date", mode="before")
    @classmethod
    def _parse_release_date(cls, value):
        if value in (None, ""):
            return None
        if isinstance(value, datetime):
            return _naive_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str) and len(value) == 10:
            return datetime.strptime(value, "%Y-%m-%d")
        return value

    @field_validator("episodes", "duration_hours", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        return None if value == "" else value

    @model_validator(mode="after")
    def _derive(self):
        if self.release_date is not None:
            self.release_date = _naive_utc(self.release_date)
        self.total_dubbings = self.dubbing.total()
        if "source_flags" not in self.model_fields_set and self.source in SOURCE_FLAG_FOR:
            setattr(self.source_flags, SOURCE_FLAG_FOR[self.source], True)
        return self


class ContentUpdate(CamelModel):
    platform: Optional[str] = None
    title: Optional[str] = None
    self_declared_genre: Optional[str] = None
    assigned_genre: Optional[str] = None
    primary_language: Optional[str] = None
    self_declared_format: Optional[str] = None
    assigned_format: Optional[str] = None
    year: Optional[int] = None
    release_date: Optional[Union[datetime, str]] = None
    seasons: Optional[int] = None
    episodes: Optional[Union[int, str]] = None
    duration_hours: Optional[Union[float, str]] = None
    source: Optional[str] = None
    source_flags: Optional[Dict[str, bool]] = None
    dubbing: Optional[Dict[str, bool]] = None
    age_rating: Optional[str] = None


# -------- Request bodies --------

class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role = "user"


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class ProfileUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None


class RoleUpdate(CamelModel):
    role: Role


class BulkRoleUpdate(CamelModel):
    user_ids: List[str] = Field(..., min_length=1)
    role: Role


class BulkStatusUpdate(CamelModel):
    user_ids: List[str] = Field(..., min_length=1)
    set_active: StrictBool


class DuplicateCheck(CamelModel):
    platform: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    year: int


class CustomAnalyticsRequest(CamelModel):
    """Body of POST /api/analytics/custom; any extra keys are treated as filters."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    group_by: Optional[Union[str, List[str]]] = None
    aggregation_type: str = "count"
    metric: str = "count"
