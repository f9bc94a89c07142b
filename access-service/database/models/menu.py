import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field
from typing import Optional

from database.models.timestamps import timestamp_field


class MenuItem(SQLModel, table=True):
    """Navigation entry. tenant_id=None marks a global (platform) item."""
    __tablename__ = "menu_items"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    tenant_id: Optional[str] = Field(default=None, foreign_key="tenants.id", index=True)
    path: str = Field(max_length=255)
    label: str = Field(max_length=100)
    icon: Optional[str] = Field(default=None, max_length=50)
    order: int = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = timestamp_field()


class RoleMenuItem(SQLModel, table=True):
    __tablename__ = "role_menu_items"

    menu_item_id: str = Field(foreign_key="menu_items.id", primary_key=True)
    role: str = Field(primary_key=True, max_length=50)
    is_visible: bool = Field(default=True)
    is_enabled: bool = Field(default=True)
