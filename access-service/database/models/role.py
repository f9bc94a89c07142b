from enum import Enum

from core.exceptions import UnknownRole


class RoleLevel(str, Enum):
    PLATFORM = "platform"  # Global scope, never tenant-bound
    TENANT = "tenant"      # Scoped to the user's effective tenant


class Role(str, Enum):
    SYSTEM_ADMIN = "SYSTEM_ADMIN"    # Platform - full system access
    HQ_ADMIN = "HQ_ADMIN"            # Headquarters administration
    TENANT_ADMIN = "TENANT_ADMIN"    # Manage own tenant
    SALES_MANAGER = "SALES_MANAGER"  # Manage accounts and deals of a business unit
    SALES_REP = "SALES_REP"          # Work assigned accounts
    SUPPORT = "SUPPORT"              # Customer support

    @property
    def level(self) -> RoleLevel:
        if self is Role.SYSTEM_ADMIN:
            return RoleLevel.PLATFORM
        return RoleLevel.TENANT


# Lower-case role literals found in legacy user records and client code
LEGACY_ROLE_ALIASES = {
    "admin": Role.SYSTEM_ADMIN,
    "manager": Role.SALES_MANAGER,
    "account_manager": Role.SALES_REP,
    "sales": Role.SALES_REP,
    "sales_rep": Role.SALES_REP,
    "support": Role.SUPPORT,
}


def parse_role(literal: Role | str) -> Role:
    """Map a role literal (canonical or legacy) to a Role.

    Raises:
        UnknownRole: if the literal matches neither scheme.
    """
    if isinstance(literal, Role):
        return literal
    if not isinstance(literal, str):
        raise UnknownRole(literal)

    text = literal.strip()
    try:
        return Role(text.upper())
    except ValueError:
        pass

    alias = LEGACY_ROLE_ALIASES.get(text.lower())
    if alias is None:
        raise UnknownRole(literal)
    return alias


def canonical_role(literal: str) -> Role | None:
    """Strict lookup used on request paths: only canonical values resolve."""
    try:
        return Role(literal)
    except ValueError:
        return None
