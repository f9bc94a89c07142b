import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional

from database.models.timestamps import timestamp_field


class Permission(SQLModel, table=True):
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(unique=True, index=True, max_length=100)  # e.g., "deals:read", "business_units:write"
    resource: str = Field(index=True, max_length=50)  # e.g., "deals", "business_units"
    action: str = Field(max_length=50)  # e.g., "read", "write", "delete"
    description: Optional[str] = Field(default=None, max_length=500)


class RolePermission(SQLModel, table=True):
    """Grant row. granted=False records a deliberate revocation."""
    __tablename__ = "role_permissions"

    role: str = Field(primary_key=True, max_length=50)
    permission_id: str = Field(foreign_key="permissions.id", primary_key=True)
    granted: bool = Field(default=True)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
