from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    # The dashboard consumes camelCase keys.
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class UserRef(ApiModel):
    id: int
    name: str
    email: str | None = None
    role: str | None = None
    image: str | None = None


class StaffSummary(ApiModel):
    id: int
    name: str
    email: str
    image: str | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None


class ToolRef(ApiModel):
    id: int
    name: str
    slug: str | None = None
    category: str | None = None
