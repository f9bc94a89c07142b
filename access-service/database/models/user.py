import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field
from typing import Optional

from database.models.timestamps import timestamp_field


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    email: Optional[str] = Field(default=None, unique=True, index=True, max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=255)
    role: str = Field(index=True, max_length=50)  # Role value, stored as string
    business_unit_id: Optional[str] = Field(default=None, foreign_key="business_units.id", index=True)
    tenant_id: Optional[str] = Field(default=None, foreign_key="tenants.id", index=True)  # Direct assignment, may be stale
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
