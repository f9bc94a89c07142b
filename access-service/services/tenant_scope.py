from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlmodel import Session

from database.models import BusinessUnit, RoleLevel, Tenant, User, canonical_role
from utils.logger import get_logger

logger = get_logger(__name__)


class ScopeKind(str, Enum):
    GLOBAL = "global"          # Platform role, not bound to any tenant
    SCOPED = "scoped"          # Bound to exactly one tenant
    UNRESOLVED = "unresolved"  # No usable tenant link; every decision fails closed


@dataclass(frozen=True)
class TenantScope:
    kind: ScopeKind
    tenant_id: Optional[str] = None

    @classmethod
    def global_scope(cls) -> "TenantScope":
        return cls(ScopeKind.GLOBAL)

    @classmethod
    def scoped(cls, tenant_id: str) -> "TenantScope":
        return cls(ScopeKind.SCOPED, tenant_id)

    @classmethod
    def unresolved(cls) -> "TenantScope":
        return cls(ScopeKind.UNRESOLVED)

    @property
    def is_global(self) -> bool:
        return self.kind is ScopeKind.GLOBAL

    @property
    def is_resolved(self) -> bool:
        return self.kind is not ScopeKind.UNRESOLVED


class TenantScopeResolver:
    """Maps a user to its effective tenant via business unit, then direct link."""

    def __init__(self, session: Session):
        self.session = session

    def resolve(self, user: User) -> TenantScope:
        role = canonical_role(user.role)
        if role is None:
            logger.warning(f"[TenantScope] User {user.id} has non-canonical role {user.role!r}")
            return TenantScope.unresolved()

        # Platform roles ignore any tenant fields on the user record
        if role.level is RoleLevel.PLATFORM:
            return TenantScope.global_scope()

        if user.business_unit_id:
            business_unit = self.session.get(BusinessUnit, user.business_unit_id)
            if business_unit is not None:
                return self._existing_tenant(user, business_unit.tenant_id)
            logger.warning(
                f"[TenantScope] User {user.id} links missing business unit {user.business_unit_id}"
            )

        if user.tenant_id:
            return self._existing_tenant(user, user.tenant_id)

        logger.info(f"[TenantScope] User {user.id} has no tenant link")
        return TenantScope.unresolved()

    def _existing_tenant(self, user: User, tenant_id: str) -> TenantScope:
        if self.session.get(Tenant, tenant_id) is None:
            logger.warning(f"[TenantScope] User {user.id} resolves to missing tenant {tenant_id}")
            return TenantScope.unresolved()
        return TenantScope.scoped(tenant_id)

    # ---------------------------------------------------------------------
    # Record-level tenant checks
    # ---------------------------------------------------------------------
    def can_access_tenant(self, user: User, tenant_id: str) -> bool:
        if self.session.get(Tenant, tenant_id) is None:
            return False
        scope = self.resolve(user)
        return scope.is_global or scope.tenant_id == tenant_id

    def can_access_business_unit(self, user: User, business_unit_id: str) -> bool:
        business_unit = self.session.get(BusinessUnit, business_unit_id)
        if business_unit is None:
            return False
        scope = self.resolve(user)
        return scope.is_global or scope.tenant_id == business_unit.tenant_id
