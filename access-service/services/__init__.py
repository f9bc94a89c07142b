from services.permission_catalog import PermissionCatalog, GrantRecord
from services.tenant_scope import TenantScope, TenantScopeResolver, ScopeKind
from services.menu_visibility import MenuVisibilityEngine
from services.catalog_migration import (
    CatalogMigration,
    MigrationReport,
    PermissionDefinition,
    RoleMigrationReport,
)
from services.access_control import AccessControl, MenuEntry

__all__ = [
    "PermissionCatalog",
    "GrantRecord",
    "TenantScope",
    "TenantScopeResolver",
    "ScopeKind",
    "MenuVisibilityEngine",
    # Migrations
    "CatalogMigration",
    "MigrationReport",
    "PermissionDefinition",
    "RoleMigrationReport",
    # Facade
    "AccessControl",
    "MenuEntry",
]
