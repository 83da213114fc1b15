from __future__ import annotations

from pydantic import BaseModel, Field

from contentdesk.schemas.common import ApiModel


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=200)


class UserOut(ApiModel):
    id: int
    name: str
    email: str
    role: str
    csrf_token: str | None = None  # echo in X-CSRF-Token on mutating requests
