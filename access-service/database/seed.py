"""
Database seeding script for the default catalog, tenant and menus.
Run this after database tables are created. Safe to run repeatedly.
"""
from sqlmodel import Session, select

from core.permissions import PERMISSION_DEFINITIONS, ROLE_PERMISSIONS
from database.connection import Database
from database.models import BusinessUnit, MenuItem, Role, RolePermission, TenantKind
from services import provisioning
from services.permission_catalog import PermissionCatalog
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TENANT_NAME = "HQ"
DEFAULT_BUSINESS_UNIT_NAME = "Main Office"

_ALL_TENANT_ROLES = [role for role in Role if role is not Role.SYSTEM_ADMIN]
_MANAGEMENT_ROLES = [Role.HQ_ADMIN, Role.TENANT_ADMIN]

# Default tenant menu: (path, label, icon, roles)
TENANT_MENU = [
    ("/dashboard", "Dashboard", "home", _ALL_TENANT_ROLES),
    ("/customers", "Customers", "users", _ALL_TENANT_ROLES),
    ("/deals", "Deals", "briefcase", [Role.HQ_ADMIN, Role.TENANT_ADMIN, Role.SALES_MANAGER, Role.SALES_REP]),
    ("/tasks", "Tasks", "check-square", _ALL_TENANT_ROLES),
    ("/accounts", "Accounts", "building", [Role.HQ_ADMIN, Role.TENANT_ADMIN, Role.SALES_MANAGER, Role.SALES_REP]),
    ("/reports", "Reports", "bar-chart", [Role.HQ_ADMIN, Role.TENANT_ADMIN, Role.SALES_MANAGER]),
    ("/business-units", "Business Units", "sitemap", [Role.HQ_ADMIN]),
    ("/users", "Users", "user-cog", _MANAGEMENT_ROLES),
]

# Global menu for the platform administrator
ADMIN_MENU = [
    ("/dashboard", "Dashboard", "home"),
    ("/tenants", "Tenants", "globe"),
    ("/business-units", "Business Units", "sitemap"),
    ("/users", "Users", "user-cog"),
    ("/menu-management", "Menu Management", "menu"),
    ("/settings", "Settings", "settings"),
]


def _seed_catalog(session: Session) -> None:
    catalog = PermissionCatalog(session)
    for definition in PERMISSION_DEFINITIONS:
        catalog.upsert_permission(definition["resource"], definition["action"], definition["description"])

    # Only missing rows are seeded; a deliberate revocation survives re-seeding
    for role, permissions in ROLE_PERMISSIONS.items():
        for permission in permissions:
            stored = catalog.get_permission(permission.resource, permission.action)
            if session.get(RolePermission, (role.value, stored.id)) is None:
                catalog.grant(role, permission.resource, permission.action)


def _seed_menu(session: Session, tenant_id, entries) -> int:
    existing_paths = set(session.exec(select(MenuItem.path).where(MenuItem.tenant_id == tenant_id)).all())
    created = 0
    for order, (path, label, icon, roles) in enumerate(entries, start=1):
        if path in existing_paths:
            continue
        provisioning.create_menu_item(
            session, path, label, tenant_id=tenant_id, icon=icon, order=order, roles=roles
        )
        created += 1
    return created


def seed_database(db: Database) -> None:
    """Seed permissions, default grants, the default tenant and both menus."""
    with db.transaction() as session:
        _seed_catalog(session)

        tenant = provisioning.get_tenant_by_name(session, DEFAULT_TENANT_NAME)
        if tenant is None:
            tenant = provisioning.create_tenant(session, DEFAULT_TENANT_NAME, TenantKind.HQ)

        business_unit = session.exec(
            select(BusinessUnit).where(
                BusinessUnit.tenant_id == tenant.id,
                BusinessUnit.name == DEFAULT_BUSINESS_UNIT_NAME,
            )
        ).first()
        if business_unit is None:
            provisioning.create_business_unit(session, tenant.id, DEFAULT_BUSINESS_UNIT_NAME)

        tenant_items = _seed_menu(session, tenant.id, TENANT_MENU)
        admin_items = _seed_menu(
            session, None, [(path, label, icon, [Role.SYSTEM_ADMIN]) for path, label, icon in ADMIN_MENU]
        )

    logger.info(
        f"[Seed] Database seeded: {len(PERMISSION_DEFINITIONS)} permissions, "
        f"{tenant_items} tenant menu items, {admin_items} admin menu items"
    )


if __name__ == "__main__":
    database = Database()
    database.create_all()
    seed_database(database)
    database.dispose()
