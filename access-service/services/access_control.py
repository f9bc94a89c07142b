"""
Access decision facade.

The single entry point route handlers and administrative tooling use.
Decision calls (can_perform, visible_menu and the record-level tenant checks)
never raise for missing or malformed data: they fail closed with False or an
empty menu. Administrative calls propagate every error to the caller.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

from core.exceptions import ConflictError, InvalidIdentifier
from database.connection import Database
from database.models import Role, RolePermission, User, canonical_role, parse_role
from services import catalog_migration
from services.catalog_migration import MigrationReport, PermissionDefinition, RoleMigrationReport
from services.menu_visibility import MenuVisibilityEngine
from services.permission_catalog import GrantRecord, PermissionCatalog
from services.tenant_scope import TenantScope, TenantScopeResolver
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MenuEntry:
    path: str
    label: str
    icon: Optional[str] = None


class AccessControl:
    """Combines scope resolution, the permission catalog and menu visibility."""

    def __init__(self, db: Database):
        self.db = db

    # ---------------------------------------------------------------------
    # Decisions (read-only, fail closed)
    # ---------------------------------------------------------------------
    def can_perform(self, user_id: str, resource: str, action: str) -> bool:
        """Role-level operation check. Tenant scope does not gate operations."""
        with self.db.session() as session:
            user = session.get(User, user_id)
            if user is None:
                logger.warning(f"[AccessControl] Unknown user {user_id}, denying {resource}:{action}")
                return False

            role = canonical_role(user.role)
            if role is None:
                logger.warning(f"[AccessControl] User {user_id} has non-canonical role {user.role!r}, denying")
                return False

            try:
                allowed = PermissionCatalog(session).is_granted(role, resource, action)
            except InvalidIdentifier as exc:
                logger.warning(f"[AccessControl] Denying malformed identifier for user {user_id}: {exc}")
                return False

        if not allowed:
            logger.info(f"[AccessControl] Denied {resource}:{action} for {role.value} user {user_id}")
        return allowed

    def visible_menu(self, user_id: str) -> list[MenuEntry]:
        with self.db.session() as session:
            user = session.get(User, user_id)
            if user is None:
                logger.warning(f"[AccessControl] Unknown user {user_id}, empty menu")
                return []

            items = MenuVisibilityEngine(session).visible_menu(user)
            return [MenuEntry(path=item.path, label=item.label, icon=item.icon) for item in items]

    def resolve_scope(self, user_id: str) -> TenantScope:
        with self.db.session() as session:
            user = session.get(User, user_id)
            if user is None:
                return TenantScope.unresolved()
            return TenantScopeResolver(session).resolve(user)

    def can_access_tenant(self, user_id: str, tenant_id: str) -> bool:
        with self.db.session() as session:
            user = session.get(User, user_id)
            return user is not None and TenantScopeResolver(session).can_access_tenant(user, tenant_id)

    def can_access_business_unit(self, user_id: str, business_unit_id: str) -> bool:
        with self.db.session() as session:
            user = session.get(User, user_id)
            return user is not None and TenantScopeResolver(session).can_access_business_unit(
                user, business_unit_id
            )

    # ---------------------------------------------------------------------
    # Diagnostics
    # ---------------------------------------------------------------------
    def effective_permissions(self, role: Role | str) -> set[str]:
        role = parse_role(role)
        with self.db.session() as session:
            return PermissionCatalog(session).effective_permissions(role)

    def list_grants(self, role: Optional[Role | str] = None) -> list[GrantRecord]:
        role = parse_role(role) if role is not None else None
        with self.db.session() as session:
            return PermissionCatalog(session).list_grants(role)

    # ---------------------------------------------------------------------
    # Administration (transactional, errors propagate)
    # ---------------------------------------------------------------------
    def grant(
        self,
        role: Role | str,
        resource: str,
        action: str,
        granted: bool = True,
        description: Optional[str] = None,
    ) -> RolePermission:
        try:
            with self.db.transaction() as session:
                return PermissionCatalog(session).grant(role, resource, action, granted, description)
        except IntegrityError as exc:
            # Another writer inserted the same row first; the caller decides whether to retry
            raise ConflictError(f"Concurrent write on {resource}:{action} for {role}") from exc

    def rename_permissions(
        self,
        old_identifiers: Iterable[tuple[str, str]],
        new_definitions: Iterable[PermissionDefinition | dict],
    ) -> MigrationReport:
        return catalog_migration.rename_permissions(self.db, old_identifiers, new_definitions)

    def repair_legacy_identifiers(self) -> MigrationReport:
        return catalog_migration.repair_legacy_identifiers(self.db)

    def migrate_legacy_roles(self) -> RoleMigrationReport:
        return catalog_migration.migrate_legacy_roles(self.db)
