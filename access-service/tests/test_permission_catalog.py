"""
Tests for the permission catalog.

These tests verify:
- grant is idempotent and last writer wins
- lookups are exact: no inheritance, no wildcards
- legacy rows are adopted instead of duplicated
"""
import pytest
from sqlmodel import select

from core.exceptions import ConflictError, InvalidIdentifier, NotFoundError, UnknownRole
from database.models import Permission, Role, RolePermission
from services.permission_catalog import PermissionCatalog


class TestGrant:
    """Test suite for grant and is_granted."""

    def test_grant_then_check(self, session):
        catalog = PermissionCatalog(session)
        catalog.grant(Role.SALES_REP, "deals", "read")

        assert catalog.is_granted(Role.SALES_REP, "deals", "read") is True
        assert catalog.is_granted(Role.SALES_REP, "deals", "write") is False
        assert catalog.is_granted(Role.SUPPORT, "deals", "read") is False

    def test_grant_is_idempotent(self, session):
        catalog = PermissionCatalog(session)
        catalog.grant(Role.SALES_REP, "deals", "read", True)
        catalog.grant(Role.SALES_REP, "deals", "read", True)
        catalog.grant(Role.SALES_REP, "Deals", " read", False)

        rows = session.exec(select(RolePermission)).all()
        assert len(rows) == 1
        assert rows[0].granted is False
        assert len(session.exec(select(Permission)).all()) == 1

    def test_revocation_denies(self, session):
        catalog = PermissionCatalog(session)
        catalog.grant(Role.SALES_REP, "deals", "read", False)

        assert catalog.is_granted(Role.SALES_REP, "deals", "read") is False
        assert catalog.effective_permissions(Role.SALES_REP) == set()

    def test_delimiter_variants_share_one_permission(self, session):
        catalog = PermissionCatalog(session)
        catalog.grant(Role.HQ_ADMIN, "business units", "read")

        assert catalog.is_granted(Role.HQ_ADMIN, "business-units", "read") is True
        assert [p.name for p in catalog.list_permissions()] == ["business_units:read"]

    def test_no_wildcards(self, session):
        catalog = PermissionCatalog(session)
        catalog.grant(Role.SYSTEM_ADMIN, "deals", "*")

        assert catalog.is_granted(Role.SYSTEM_ADMIN, "deals", "read") is False

    def test_legacy_role_literal_is_mapped(self, session):
        catalog = PermissionCatalog(session)
        row = catalog.grant("manager", "deals", "read")

        assert row.role == Role.SALES_MANAGER.value

    def test_unknown_role(self, session):
        catalog = PermissionCatalog(session)

        with pytest.raises(UnknownRole) as exc_info:
            catalog.grant("wizard", "deals", "read")
        assert isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.literal == "wizard"

    def test_invalid_identifier(self, session):
        catalog = PermissionCatalog(session)

        with pytest.raises(InvalidIdentifier):
            catalog.grant(Role.SALES_REP, "", "read")
        with pytest.raises(InvalidIdentifier):
            catalog.is_granted(Role.SALES_REP, "deals", "")


class TestCatalogRows:
    """Test suite for permission upsert and listings."""

    def test_legacy_row_is_adopted_and_repaired(self, session):
        session.add(Permission(name="business_units:read", resource="business-units", action="read"))
        session.flush()

        permission = PermissionCatalog(session).upsert_permission("business units", "read", "Read BUs")

        assert permission.resource == "business_units"
        assert permission.description == "Read BUs"
        assert len(session.exec(select(Permission)).all()) == 1

    def test_split_rows_conflict(self, session):
        session.add(Permission(name="business_units:read", resource="legacy", action="read"))
        session.add(Permission(name="legacy:business", resource="business_units", action="read"))
        session.flush()

        with pytest.raises(ConflictError):
            PermissionCatalog(session).upsert_permission("business_units", "read")

    def test_effective_permissions(self, session):
        catalog = PermissionCatalog(session)
        catalog.grant(Role.SUPPORT, "tasks", "read")
        catalog.grant(Role.SUPPORT, "tasks", "write")
        catalog.grant(Role.SUPPORT, "customers", "read", False)

        assert catalog.effective_permissions(Role.SUPPORT) == {"tasks:read", "tasks:write"}

    def test_list_grants_includes_revocations_in_order(self, session):
        catalog = PermissionCatalog(session)
        catalog.grant(Role.SUPPORT, "tasks", "read")
        catalog.grant(Role.HQ_ADMIN, "deals", "write", False)
        catalog.grant(Role.HQ_ADMIN, "accounts", "read")

        grants = catalog.list_grants()
        assert [(g.role, g.permission, g.granted) for g in grants] == [
            ("HQ_ADMIN", "accounts:read", True),
            ("HQ_ADMIN", "deals:write", False),
            ("SUPPORT", "tasks:read", True),
        ]
        assert [g.permission for g in catalog.list_grants(Role.SUPPORT)] == ["tasks:read"]


class TestTimestamps:
    """Test suite for row timestamps."""

    def test_new_grant_has_aware_timestamps(self, session):
        row = PermissionCatalog(session).grant(Role.SALES_REP, "deals", "read")

        assert row.created_at.tzinfo is not None
        assert row.updated_at.tzinfo is not None

    def test_regrant_refreshes_updated_at(self, session):
        catalog = PermissionCatalog(session)
        row = catalog.grant(Role.SALES_REP, "deals", "read")
        first_update = row.updated_at

        row = catalog.grant(Role.SALES_REP, "deals", "read", False)

        assert row.updated_at.tzinfo is not None
        assert row.updated_at >= first_update

    def test_timestamps_survive_commit(self, db):
        with db.transaction() as session:
            PermissionCatalog(session).grant(Role.SUPPORT, "tasks", "read")
        with db.transaction() as session:
            PermissionCatalog(session).grant(Role.SUPPORT, "tasks", "read", False)

        with db.session() as session:
            row = session.exec(select(RolePermission)).one()
            assert row.granted is False
            assert row.created_at is not None
