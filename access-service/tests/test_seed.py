"""
Tests for the default data seed.
"""
from sqlmodel import select

from core.permissions import PERMISSION_DEFINITIONS, ROLE_PERMISSIONS, Permissions
from database.models import MenuItem, Permission, Role, RolePermission
from database.seed import ADMIN_MENU, DEFAULT_TENANT_NAME, TENANT_MENU, seed_database
from services import provisioning


def _count(db, model):
    with db.session() as session:
        return len(session.exec(select(model)).all())


class TestSeedDatabase:
    """Test suite for seed_database."""

    def test_seeds_catalog_and_grants(self, db, access):
        seed_database(db)

        assert _count(db, Permission) == len(PERMISSION_DEFINITIONS)
        assert _count(db, RolePermission) == sum(len(perms) for perms in ROLE_PERMISSIONS.values())
        assert access.effective_permissions(Role.SYSTEM_ADMIN) == {perm.value for perm in Permissions}
        assert "accounts:delete" not in access.effective_permissions(Role.SALES_REP)

    def test_is_idempotent(self, db):
        seed_database(db)
        seed_database(db)

        assert _count(db, Permission) == len(PERMISSION_DEFINITIONS)
        assert _count(db, MenuItem) == len(TENANT_MENU) + len(ADMIN_MENU)

    def test_revocation_survives_reseeding(self, db, access):
        seed_database(db)
        access.grant(Role.SUPPORT, "tasks", "write", False)

        seed_database(db)

        assert "tasks:write" not in access.effective_permissions(Role.SUPPORT)

    def test_menus(self, db, access):
        seed_database(db)
        with db.transaction() as session:
            tenant = provisioning.get_tenant_by_name(session, DEFAULT_TENANT_NAME)
            admin = provisioning.create_user(session, Role.SYSTEM_ADMIN)
            support = provisioning.create_user(session, Role.SUPPORT, tenant_id=tenant.id)

        assert [entry.path for entry in access.visible_menu(admin.id)] == [path for path, _, _ in ADMIN_MENU]
        assert [entry.path for entry in access.visible_menu(support.id)] == ["/dashboard", "/customers", "/tasks"]
