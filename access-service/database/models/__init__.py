from database.models.user import User
from database.models.tenant import Tenant, TenantKind
from database.models.business_unit import BusinessUnit
from database.models.role import Role, RoleLevel, LEGACY_ROLE_ALIASES, parse_role, canonical_role
from database.models.permission import Permission, RolePermission
from database.models.menu import MenuItem, RoleMenuItem

__all__ = [
    "User",
    "Tenant",
    "TenantKind",
    "BusinessUnit",
    "Role",
    "RoleLevel",
    "LEGACY_ROLE_ALIASES",
    "parse_role",
    "canonical_role",
    "Permission",
    "RolePermission",
    "MenuItem",
    "RoleMenuItem",
]
