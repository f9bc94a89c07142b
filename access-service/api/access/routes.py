from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from api.access.schemas import (
    DecisionResponse,
    GrantResponse,
    GrantUpdate,
    MenuEntryResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MigrationResponse,
    RenameRequest,
    RoleMigrationResponse,
    RoleMenuItemResponse,
    RolePermissionsResponse,
    ScopeResponse,
)
from api.dependencies import get_access_control, get_current_user_id, get_database, require_permission
from core.exceptions import (
    AccessControlError,
    ConflictError,
    InvalidIdentifier,
    MigrationFailed,
    NotFoundError,
)
from core.identifiers import normalize
from core.permissions import Permissions
from database.connection import Database
from services import provisioning
from services.access_control import AccessControl
from services.catalog_migration import PermissionDefinition

router = APIRouter()


def _http_error(exc: AccessControlError) -> HTTPException:
    if isinstance(exc, InvalidIdentifier):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, MigrationFailed):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Access control error")


# ---------------------------------------------------------------------
# Decisions for the current user
# ---------------------------------------------------------------------
@router.get("/can-perform", response_model=DecisionResponse)
def can_perform(
    resource: str,
    action: str,
    user_id: str = Depends(get_current_user_id),
    access: AccessControl = Depends(get_access_control),
):
    """Check whether the current user's role may perform an operation."""
    allowed = access.can_perform(user_id, resource, action)
    return DecisionResponse(resource=resource, action=action, allowed=allowed)


@router.get("/menu", response_model=list[MenuEntryResponse])
def visible_menu(
    user_id: str = Depends(get_current_user_id),
    access: AccessControl = Depends(get_access_control),
):
    """Navigation entries visible to the current user, in display order."""
    return access.visible_menu(user_id)


@router.get("/scope", response_model=ScopeResponse)
def resolve_scope(
    user_id: str = Depends(get_current_user_id),
    access: AccessControl = Depends(get_access_control),
):
    return access.resolve_scope(user_id)


# ---------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------
@router.get("/roles/{role}/permissions", response_model=RolePermissionsResponse)
def role_permissions(
    role: str,
    access: AccessControl = Depends(get_access_control),
    current_user: str = Depends(require_permission(Permissions.TENANTS_READ)),
):
    """Permissions granted to a role. For display only."""
    try:
        permissions = access.effective_permissions(role)
    except AccessControlError as exc:
        raise _http_error(exc)
    return RolePermissionsResponse(role=role, permissions=sorted(permissions))


@router.get("/grants", response_model=list[GrantResponse])
def list_grants(
    role: Optional[str] = None,
    access: AccessControl = Depends(get_access_control),
    current_user: str = Depends(require_permission(Permissions.TENANTS_READ)),
):
    """Explicit grant rows, optionally for one role."""
    try:
        return access.list_grants(role)
    except AccessControlError as exc:
        raise _http_error(exc)


# ---------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------
@router.put("/grants", response_model=GrantResponse)
def set_grant(
    data: GrantUpdate,
    access: AccessControl = Depends(get_access_control),
    current_user: str = Depends(require_permission(Permissions.TENANTS_WRITE)),
):
    """Grant or revoke an operation for a role. Idempotent."""
    try:
        row = access.grant(data.role, data.resource, data.action, data.granted, data.description)
    except AccessControlError as exc:
        raise _http_error(exc)

    return GrantResponse(
        role=row.role,
        permission=normalize(data.resource, data.action),
        granted=row.granted,
        updated_at=row.updated_at,
    )


@router.post("/migrations/rename", response_model=MigrationResponse)
def rename_permissions(
    data: RenameRequest,
    access: AccessControl = Depends(get_access_control),
    current_user: str = Depends(require_permission(Permissions.TENANTS_WRITE)),
):
    """Atomically replace permission identifiers, carrying their grants."""
    try:
        return access.rename_permissions(
            [(old.resource, old.action) for old in data.old_identifiers],
            [PermissionDefinition(**definition.model_dump()) for definition in data.new_definitions],
        )
    except AccessControlError as exc:
        raise _http_error(exc)


@router.post("/migrations/repair-identifiers", response_model=MigrationResponse)
def repair_identifiers(
    access: AccessControl = Depends(get_access_control),
    current_user: str = Depends(require_permission(Permissions.TENANTS_WRITE)),
):
    """Rewrite every non-canonical permission identifier to its canonical form."""
    try:
        return access.repair_legacy_identifiers()
    except AccessControlError as exc:
        raise _http_error(exc)


@router.post("/migrations/legacy-roles", response_model=RoleMigrationResponse)
def migrate_legacy_roles(
    access: AccessControl = Depends(get_access_control),
    current_user: str = Depends(require_permission(Permissions.TENANTS_WRITE)),
):
    """Rewrite legacy role literals on users, grants and menu rows."""
    try:
        return access.migrate_legacy_roles()
    except AccessControlError as exc:
        raise _http_error(exc)


# ---------------------------------------------------------------------
# Menu administration
# ---------------------------------------------------------------------
def _menu_item_response(configured: provisioning.ConfiguredMenuItem) -> MenuItemResponse:
    item = configured.item
    return MenuItemResponse(
        id=item.id,
        tenant_id=item.tenant_id,
        path=item.path,
        label=item.label,
        icon=item.icon,
        order=item.order,
        is_active=item.is_active,
        roles=[RoleMenuItemResponse.model_validate(row) for row in configured.roles],
    )


@router.get("/menu-items", response_model=list[MenuItemResponse])
def list_menu_items(
    tenant_id: Optional[str] = None,
    db: Database = Depends(get_database),
    current_user: str = Depends(require_permission(Permissions.TENANTS_READ)),
):
    """Every menu item with its role rows, active or not."""
    with db.session() as session:
        items = provisioning.list_menu_items(session, tenant_id)
        return [_menu_item_response(configured) for configured in items]


@router.post("/menu-items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    data: MenuItemCreate,
    db: Database = Depends(get_database),
    current_user: str = Depends(require_permission(Permissions.TENANTS_WRITE)),
):
    """Create a menu item with per-role visibility."""
    try:
        with db.transaction() as session:
            item = provisioning.create_menu_item(
                session,
                **data.model_dump(exclude={"role_configurations"}),
                role_configurations=[config.model_dump() for config in data.role_configurations],
            )
            return _menu_item_response(provisioning.get_menu_item(session, item.id))
    except AccessControlError as exc:
        raise _http_error(exc)


@router.put("/menu-items/{menu_item_id}", response_model=MenuItemResponse)
def update_menu_item(
    menu_item_id: str,
    data: MenuItemUpdate,
    db: Database = Depends(get_database),
    current_user: str = Depends(require_permission(Permissions.TENANTS_WRITE)),
):
    """Edit a menu item. role_configurations, when sent, replaces all role rows."""
    role_configurations = None
    if data.role_configurations is not None:
        role_configurations = [config.model_dump() for config in data.role_configurations]

    try:
        with db.transaction() as session:
            item = provisioning.update_menu_item(
                session,
                menu_item_id,
                role_configurations=role_configurations,
                **data.model_dump(exclude_unset=True, exclude={"role_configurations"}),
            )
            return _menu_item_response(provisioning.get_menu_item(session, item.id))
    except AccessControlError as exc:
        raise _http_error(exc)


@router.delete("/menu-items/{menu_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_menu_item(
    menu_item_id: str,
    db: Database = Depends(get_database),
    current_user: str = Depends(require_permission(Permissions.TENANTS_DELETE)),
):
    """Delete a menu item and its role rows."""
    try:
        with db.transaction() as session:
            provisioning.delete_menu_item(session, menu_item_id)
    except AccessControlError as exc:
        raise _http_error(exc)
