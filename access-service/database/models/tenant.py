import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field
from enum import Enum

from database.models.timestamps import timestamp_field


class TenantKind(str, Enum):
    HQ = "HQ"
    BRANCH = "BRANCH"
    PARTNER = "PARTNER"


class Tenant(SQLModel, table=True):
    __tablename__ = "tenants"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(unique=True, index=True, max_length=255)
    kind: str = Field(default=TenantKind.BRANCH.value, max_length=20)  # Store as string, not enum
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
