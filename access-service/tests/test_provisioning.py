"""
Tests for tenant, user and menu administration.
"""
import pytest
from sqlmodel import select

from core.exceptions import ConflictError, NotFoundError, UnknownRole
from database.models import MenuItem, Role, RoleMenuItem, Tenant, TenantKind
from services import provisioning


class TestTenants:
    """Test suite for tenant lifecycle."""

    def test_create_tenant(self, session):
        tenant = provisioning.create_tenant(session, "Partner Co", TenantKind.PARTNER)

        assert tenant.kind == "PARTNER"
        assert provisioning.get_tenant_by_name(session, "Partner Co").id == tenant.id

    def test_duplicate_name(self, session):
        provisioning.create_tenant(session, "T1")

        with pytest.raises(ConflictError):
            provisioning.create_tenant(session, "T1")

    def test_business_units_block_deletion(self, session, scenario):
        with pytest.raises(ConflictError):
            provisioning.delete_tenant(session, scenario.tenant.id)
        assert provisioning.get_tenant(session, scenario.tenant.id) is not None

    def test_users_block_deletion(self, session):
        tenant = provisioning.create_tenant(session, "T9")
        provisioning.create_user(session, Role.SUPPORT, tenant_id=tenant.id)

        with pytest.raises(ConflictError):
            provisioning.delete_tenant(session, tenant.id)

    def test_delete_removes_menu_first(self, session):
        tenant = provisioning.create_tenant(session, "T9")
        provisioning.create_menu_item(session, "/deals", "Deals", tenant_id=tenant.id, roles=[Role.SALES_REP])

        provisioning.delete_tenant(session, tenant.id)

        assert session.get(Tenant, tenant.id) is None
        assert session.exec(select(MenuItem)).all() == []
        assert session.exec(select(RoleMenuItem)).all() == []

    def test_delete_missing(self, session):
        with pytest.raises(NotFoundError):
            provisioning.delete_tenant(session, "missing")


class TestUsers:
    """Test suite for business units and users."""

    def test_business_unit_needs_tenant(self, session):
        with pytest.raises(NotFoundError):
            provisioning.create_business_unit(session, "missing", "B1")

    def test_legacy_role_is_stored_canonical(self, session, scenario):
        user = provisioning.create_user(session, "manager", business_unit_id=scenario.business_unit.id)

        assert user.role == "SALES_MANAGER"

    def test_unknown_role(self, session):
        with pytest.raises(UnknownRole):
            provisioning.create_user(session, "wizard")

    def test_dangling_links_are_rejected(self, session):
        with pytest.raises(NotFoundError):
            provisioning.create_user(session, Role.SUPPORT, business_unit_id="missing")
        with pytest.raises(NotFoundError):
            provisioning.create_user(session, Role.SUPPORT, tenant_id="missing")

    def test_duplicate_email(self, session, scenario):
        with pytest.raises(ConflictError):
            provisioning.create_user(session, Role.SUPPORT, email="u1@example.com")

    def test_update_user_role(self, session, scenario):
        user = provisioning.update_user_role(session, scenario.user.id, "support")

        assert user.role == "SUPPORT"


class TestMenu:
    """Test suite for menu administration."""

    def test_configure_role_row_is_idempotent(self, session, scenario):
        provisioning.configure_role_menu_item(session, scenario.menu_item.id, Role.SALES_MANAGER, is_enabled=False)
        provisioning.configure_role_menu_item(session, scenario.menu_item.id, Role.SALES_MANAGER)

        rows = session.exec(select(RoleMenuItem)).all()
        assert len(rows) == 1
        assert rows[0].is_enabled is True

    def test_delete_menu_item(self, session, scenario):
        provisioning.delete_menu_item(session, scenario.menu_item.id)

        assert session.get(MenuItem, scenario.menu_item.id) is None
        assert session.exec(select(RoleMenuItem)).all() == []

    def test_missing_menu_item(self, session):
        with pytest.raises(NotFoundError):
            provisioning.set_menu_item_active(session, "missing", False)
        with pytest.raises(NotFoundError):
            provisioning.configure_role_menu_item(session, "missing", Role.SUPPORT)

    def test_copy_menu_to_tenants(self, session, scenario):
        provisioning.create_menu_item(
            session, "/tasks", "Tasks", tenant_id=scenario.tenant.id, order=2, roles=[Role.SALES_REP]
        )
        target = provisioning.create_tenant(session, "T2")
        provisioning.create_menu_item(session, "/tasks", "My Tasks", tenant_id=target.id)

        copied = provisioning.copy_menu_to_tenants(session, scenario.tenant.id)

        assert copied == {target.id: 1}
        items = session.exec(select(MenuItem).where(MenuItem.tenant_id == target.id)).all()
        assert sorted((item.path, item.label) for item in items) == [("/deals", "Deals"), ("/tasks", "My Tasks")]

        deals = next(item for item in items if item.path == "/deals")
        roles = session.exec(select(RoleMenuItem.role).where(RoleMenuItem.menu_item_id == deals.id)).all()
        assert roles == ["SALES_MANAGER"]

        assert provisioning.copy_menu_to_tenants(session, scenario.tenant.id) == {target.id: 0}

    def test_copy_from_missing_tenant(self, session):
        with pytest.raises(NotFoundError):
            provisioning.copy_menu_to_tenants(session, "missing")

    def test_create_with_role_configurations(self, session, scenario):
        item = provisioning.create_menu_item(
            session, "/reports", "Reports", tenant_id=scenario.tenant.id,
            role_configurations=[
                {"role": "SALES_MANAGER"},
                {"role": "support", "is_visible": True, "is_enabled": False},
            ],
        )

        configured = provisioning.get_menu_item(session, item.id)
        assert [(r.role, r.is_visible, r.is_enabled) for r in configured.roles] == [
            ("SALES_MANAGER", True, True),
            ("SUPPORT", True, False),
        ]

    def test_update_menu_item_fields(self, session, scenario):
        item = provisioning.update_menu_item(
            session, scenario.menu_item.id, label="Pipeline", icon="funnel", order=4, is_active=False
        )

        assert (item.path, item.label, item.icon, item.order, item.is_active) == (
            "/deals", "Pipeline", "funnel", 4, False
        )
        assert item.tenant_id == scenario.tenant.id
        # Role rows are untouched without role_configurations
        roles = session.exec(select(RoleMenuItem.role).where(RoleMenuItem.menu_item_id == item.id)).all()
        assert roles == ["SALES_MANAGER"]

    def test_update_menu_item_moves_between_tenants(self, session, scenario):
        target = provisioning.create_tenant(session, "T2")

        item = provisioning.update_menu_item(session, scenario.menu_item.id, tenant_id=target.id)
        assert item.tenant_id == target.id

        item = provisioning.update_menu_item(session, scenario.menu_item.id, tenant_id=None)
        assert item.tenant_id is None

    def test_update_ignores_none_for_required_fields(self, session, scenario):
        item = provisioning.update_menu_item(session, scenario.menu_item.id, path=None, label=None, order=None)

        assert (item.path, item.label, item.order) == ("/deals", "Deals", 1)

    def test_update_replaces_role_configurations(self, session, scenario):
        provisioning.update_menu_item(
            session,
            scenario.menu_item.id,
            role_configurations=[{"role": Role.SALES_REP, "is_enabled": False}, {"role": "admin"}],
        )

        configured = provisioning.get_menu_item(session, scenario.menu_item.id)
        assert [(r.role, r.is_visible, r.is_enabled) for r in configured.roles] == [
            ("SALES_REP", True, False),
            ("SYSTEM_ADMIN", True, True),
        ]

        provisioning.update_menu_item(session, scenario.menu_item.id, role_configurations=[])
        assert provisioning.get_menu_item(session, scenario.menu_item.id).roles == []

    def test_update_with_unknown_role_changes_nothing(self, session, scenario):
        with pytest.raises(UnknownRole):
            provisioning.update_menu_item(
                session, scenario.menu_item.id, label="Changed", role_configurations=[{"role": "wizard"}]
            )

        assert session.get(MenuItem, scenario.menu_item.id).label == "Deals"
        roles = session.exec(select(RoleMenuItem.role)).all()
        assert roles == ["SALES_MANAGER"]

    def test_update_errors(self, session, scenario):
        with pytest.raises(NotFoundError):
            provisioning.update_menu_item(session, "missing", label="X")
        with pytest.raises(NotFoundError):
            provisioning.update_menu_item(session, scenario.menu_item.id, tenant_id="missing")
        with pytest.raises(TypeError):
            provisioning.update_menu_item(session, scenario.menu_item.id, parent_id="x")

    def test_list_menu_items(self, session, scenario):
        provisioning.create_menu_item(session, "/admin", "Admin", order=0, roles=[Role.SYSTEM_ADMIN])
        provisioning.create_menu_item(session, "/old", "Old", tenant_id=scenario.tenant.id, order=9, is_active=False)

        everything = provisioning.list_menu_items(session)
        assert [c.item.path for c in everything] == ["/admin", "/deals", "/old"]
        assert [r.role for r in everything[0].roles] == ["SYSTEM_ADMIN"]
        assert everything[2].roles == []

        tenant_items = provisioning.list_menu_items(session, scenario.tenant.id)
        assert [c.item.path for c in tenant_items] == ["/deals", "/old"]
        assert [r.role for r in tenant_items[0].roles] == ["SALES_MANAGER"]

    def test_list_menu_items_empty(self, session):
        assert provisioning.list_menu_items(session) == []
        assert provisioning.get_menu_item(session, "missing") is None
