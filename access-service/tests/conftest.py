"""
Pytest fixtures for the access-control engine.

Usage:
    def test_manager_sees_deals(access, scenario):
        assert [e.path for e in access.visible_menu(scenario.user.id)] == ["/deals"]

    def test_requires_header(client):
        assert client.get("/api/access/menu").status_code == 401

Every test gets its own in-memory SQLite database, so tests never share state.
"""
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from database.connection import Database
from database.models import BusinessUnit, MenuItem, Role, Tenant, User
from main import create_app
from services import provisioning
from services.access_control import AccessControl


@dataclass
class Scenario:
    tenant: Tenant
    business_unit: BusinessUnit
    user: User
    menu_item: MenuItem


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def session(db):
    with db.session() as session:
        yield session


@pytest.fixture
def access(db) -> AccessControl:
    return AccessControl(db)


@pytest.fixture
def scenario(db) -> Scenario:
    """Tenant T1 with business unit B1, SALES_MANAGER U1 in B1, and menu item /deals."""
    with db.transaction() as session:
        tenant = provisioning.create_tenant(session, "T1")
        business_unit = provisioning.create_business_unit(session, tenant.id, "B1")
        user = provisioning.create_user(
            session,
            Role.SALES_MANAGER,
            email="u1@example.com",
            business_unit_id=business_unit.id,
        )
        menu_item = provisioning.create_menu_item(
            session, "/deals", "Deals", tenant_id=tenant.id, order=1, roles=[Role.SALES_MANAGER]
        )
    return Scenario(tenant=tenant, business_unit=business_unit, user=user, menu_item=menu_item)


@pytest.fixture
def client():
    app = create_app(database_url="sqlite://", seed=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_access(client) -> AccessControl:
    """Facade over the database the test client's app is using."""
    return AccessControl(client.app.state.db)
