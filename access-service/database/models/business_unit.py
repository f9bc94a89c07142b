import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from database.models.timestamps import timestamp_field


class BusinessUnit(SQLModel, table=True):
    """A sub-organization of exactly one tenant. Links users to a tenant."""
    __tablename__ = "business_units"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    name: str = Field(max_length=255)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
