from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from services.tenant_scope import ScopeKind


class DecisionResponse(BaseModel):
    resource: str
    action: str
    allowed: bool


class MenuEntryResponse(BaseModel):
    path: str
    label: str
    icon: Optional[str] = None

    class Config:
        from_attributes = True


class ScopeResponse(BaseModel):
    kind: ScopeKind
    tenant_id: Optional[str] = None

    class Config:
        from_attributes = True


class RolePermissionsResponse(BaseModel):
    role: str
    permissions: list[str]


class GrantUpdate(BaseModel):
    role: str
    resource: str
    action: str
    granted: bool = True
    description: Optional[str] = None


class GrantResponse(BaseModel):
    role: str
    permission: str
    granted: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class PermissionDefinitionIn(BaseModel):
    resource: str
    action: str
    description: Optional[str] = None
    replaces: Optional[tuple[str, str]] = None


class IdentifierIn(BaseModel):
    resource: str
    action: str


class RenameRequest(BaseModel):
    old_identifiers: list[IdentifierIn]
    new_definitions: list[PermissionDefinitionIn] = Field(default_factory=list)


class MigrationResponse(BaseModel):
    removed: list[str]
    created: list[str]
    skipped: list[str]
    carried_grants: list[tuple[str, str, bool]]

    class Config:
        from_attributes = True


class RoleMigrationResponse(BaseModel):
    users: dict[str, str]
    grants_rewritten: int
    menu_rows_rewritten: int
    unknown_literals: list[str]
    merged_grants: list[tuple[str, str, str, bool]] = Field(default_factory=list)
    merged_menu_rows: list[tuple[str, str, str]] = Field(default_factory=list)

    class Config:
        from_attributes = True


class RoleConfiguration(BaseModel):
    role: str
    is_visible: bool = True
    is_enabled: bool = True


class MenuItemCreate(BaseModel):
    path: str
    label: str
    icon: Optional[str] = None
    order: int = 0
    tenant_id: Optional[str] = None
    is_active: bool = True
    role_configurations: list[RoleConfiguration] = Field(default_factory=list)


class MenuItemUpdate(BaseModel):
    path: Optional[str] = None
    label: Optional[str] = None
    icon: Optional[str] = None
    order: Optional[int] = None
    tenant_id: Optional[str] = None
    is_active: Optional[bool] = None
    role_configurations: Optional[list[RoleConfiguration]] = None


class RoleMenuItemResponse(BaseModel):
    role: str
    is_visible: bool
    is_enabled: bool

    class Config:
        from_attributes = True


class MenuItemResponse(BaseModel):
    id: str
    tenant_id: Optional[str] = None
    path: str
    label: str
    icon: Optional[str] = None
    order: int
    is_active: bool
    roles: list[RoleMenuItemResponse] = Field(default_factory=list)
