"""
Centralized permission definitions for the CRM.
All permission names should be referenced from here.
"""
from enum import Enum

from database.models.role import Role


class Permissions(str, Enum):
    # User management
    USERS_READ = "users:read"
    USERS_WRITE = "users:write"
    USERS_DELETE = "users:delete"

    # Customers
    CUSTOMERS_READ = "customers:read"
    CUSTOMERS_WRITE = "customers:write"
    CUSTOMERS_DELETE = "customers:delete"

    # Deals
    DEALS_READ = "deals:read"
    DEALS_WRITE = "deals:write"
    DEALS_DELETE = "deals:delete"

    # Tasks
    TASKS_READ = "tasks:read"
    TASKS_WRITE = "tasks:write"
    TASKS_DELETE = "tasks:delete"

    # Accounts
    ACCOUNTS_READ = "accounts:read"
    ACCOUNTS_WRITE = "accounts:write"
    ACCOUNTS_DELETE = "accounts:delete"

    # Business units
    BUSINESS_UNITS_READ = "business_units:read"
    BUSINESS_UNITS_WRITE = "business_units:write"
    BUSINESS_UNITS_DELETE = "business_units:delete"

    # Tenant management (also guards menu and catalog administration)
    TENANTS_READ = "tenants:read"
    TENANTS_WRITE = "tenants:write"
    TENANTS_DELETE = "tenants:delete"

    # Reports
    REPORTS_READ = "reports:read"

    @property
    def resource(self) -> str:
        return self.value.split(":")[0]

    @property
    def action(self) -> str:
        return self.value.split(":")[1]


_DESCRIPTIONS = {
    Permissions.USERS_READ: "Read user information",
    Permissions.USERS_WRITE: "Create and update users",
    Permissions.USERS_DELETE: "Delete users",
    Permissions.CUSTOMERS_READ: "Read customer information",
    Permissions.CUSTOMERS_WRITE: "Create and update customers",
    Permissions.CUSTOMERS_DELETE: "Delete customers",
    Permissions.DEALS_READ: "Read deal information",
    Permissions.DEALS_WRITE: "Create and update deals",
    Permissions.DEALS_DELETE: "Delete deals",
    Permissions.TASKS_READ: "Read task information",
    Permissions.TASKS_WRITE: "Create and update tasks",
    Permissions.TASKS_DELETE: "Delete tasks",
    Permissions.ACCOUNTS_READ: "Read account information",
    Permissions.ACCOUNTS_WRITE: "Create and update accounts",
    Permissions.ACCOUNTS_DELETE: "Delete accounts",
    Permissions.BUSINESS_UNITS_READ: "Read business unit information",
    Permissions.BUSINESS_UNITS_WRITE: "Create and update business units",
    Permissions.BUSINESS_UNITS_DELETE: "Delete business units",
    Permissions.TENANTS_READ: "Read tenant information",
    Permissions.TENANTS_WRITE: "Create and update tenants",
    Permissions.TENANTS_DELETE: "Delete tenants",
    Permissions.REPORTS_READ: "Read reports",
}

# Permission definitions for database seeding
PERMISSION_DEFINITIONS = [
    {"resource": perm.resource, "action": perm.action, "description": _DESCRIPTIONS[perm]}
    for perm in Permissions
]

# Default grants per role
ROLE_PERMISSIONS = {
    Role.SYSTEM_ADMIN: list(Permissions),
    Role.HQ_ADMIN: [
        Permissions.ACCOUNTS_READ, Permissions.ACCOUNTS_WRITE, Permissions.ACCOUNTS_DELETE,
        Permissions.CUSTOMERS_READ, Permissions.CUSTOMERS_WRITE, Permissions.CUSTOMERS_DELETE,
        Permissions.DEALS_READ, Permissions.DEALS_WRITE, Permissions.DEALS_DELETE,
        Permissions.TASKS_READ, Permissions.TASKS_WRITE, Permissions.TASKS_DELETE,
        Permissions.REPORTS_READ, Permissions.USERS_READ, Permissions.USERS_WRITE,
        Permissions.BUSINESS_UNITS_READ, Permissions.BUSINESS_UNITS_WRITE,
    ],
    Role.TENANT_ADMIN: [
        Permissions.ACCOUNTS_READ, Permissions.ACCOUNTS_WRITE,
        Permissions.CUSTOMERS_READ, Permissions.CUSTOMERS_WRITE,
        Permissions.DEALS_READ, Permissions.DEALS_WRITE,
        Permissions.TASKS_READ, Permissions.TASKS_WRITE,
        Permissions.REPORTS_READ,
    ],
    Role.SALES_MANAGER: [
        Permissions.ACCOUNTS_READ, Permissions.ACCOUNTS_WRITE,
        Permissions.CUSTOMERS_READ, Permissions.CUSTOMERS_WRITE,
        Permissions.DEALS_READ, Permissions.DEALS_WRITE,
        Permissions.TASKS_READ, Permissions.TASKS_WRITE,
        Permissions.REPORTS_READ,
    ],
    Role.SALES_REP: [
        # Read-only accounts, NO deletes
        Permissions.ACCOUNTS_READ,
        Permissions.CUSTOMERS_READ, Permissions.CUSTOMERS_WRITE,
        Permissions.DEALS_READ, Permissions.DEALS_WRITE,
        Permissions.TASKS_READ, Permissions.TASKS_WRITE,
    ],
    Role.SUPPORT: [
        Permissions.CUSTOMERS_READ,
        Permissions.TASKS_READ, Permissions.TASKS_WRITE,
    ],
}
