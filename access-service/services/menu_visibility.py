from typing import Optional

from sqlmodel import Session, col, select

from database.models import MenuItem, RoleMenuItem, User, canonical_role
from services.tenant_scope import TenantScopeResolver
from utils.logger import get_logger

logger = get_logger(__name__)


class MenuVisibilityEngine:
    """
    Filters and orders navigation entries for a user.

    An item is shown only when it is active, belongs to the user's scope
    (global items for the platform role, the effective tenant's items for
    everyone else) and has a role row that is both visible and enabled.
    """

    def __init__(self, session: Session, resolver: Optional[TenantScopeResolver] = None):
        self.session = session
        self.resolver = resolver or TenantScopeResolver(session)

    def visible_menu(self, user: User) -> list[MenuItem]:
        scope = self.resolver.resolve(user)
        if not scope.is_resolved:
            logger.info(f"[MenuVisibility] Unresolved scope for user {user.id}, empty menu")
            return []

        role = canonical_role(user.role)

        query = (
            select(MenuItem)
            .join(RoleMenuItem, RoleMenuItem.menu_item_id == MenuItem.id)
            .where(
                MenuItem.is_active == True,  # noqa: E712
                RoleMenuItem.role == role.value,
                RoleMenuItem.is_visible == True,  # noqa: E712
                RoleMenuItem.is_enabled == True,  # noqa: E712
            )
        )

        # Global and tenant items are never mixed in one result
        if scope.is_global:
            query = query.where(col(MenuItem.tenant_id).is_(None))
        else:
            query = query.where(MenuItem.tenant_id == scope.tenant_id)

        items = list(self.session.exec(query.order_by(col(MenuItem.order), col(MenuItem.id))).all())
        logger.debug(f"[MenuVisibility] {len(items)} items for user {user.id} ({scope.kind.value})")
        return items
