from typing import Optional, List
from enum import Enum

from pydantic import BaseModel, Field


# =========================
# Enums
# =========================
class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


# =========================
# AUTH
# =========================
class UserLogin(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# =========================
# SHORTEN
# =========================
class ShortenRequest(BaseModel):
    url: Optional[str] = None
    vanity: Optional[str] = Field(default=None, min_length=1, max_length=120)


class ShortenResponse(BaseModel):
    url: str


# =========================
# STATS
# =========================
class UserCount(BaseModel):
    username: Optional[str] = None
    count: int


class TypeCount(BaseModel):
    mimetype: str
    count: int


class UsageReport(BaseModel):
    """
    Point-in-time usage snapshot. Recomputed on every request.
    """

    size: str
    size_num: int
    count: int
    count_by_user: List[UserCount] = []
    count_users: int
    views_count: int
    types_count: List[TypeCount] = []
