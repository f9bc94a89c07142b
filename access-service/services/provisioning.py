"""
Tenant, business unit, user and menu administration.

Plain functions over a caller-owned session, in the shape of the CRUD modules:
they add and flush, the caller commits (usually through Database.transaction()).
"""
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from sqlmodel import Session, col, select

from core.exceptions import ConflictError, NotFoundError
from database.models import BusinessUnit, MenuItem, Role, RoleMenuItem, Tenant, TenantKind, User, parse_role
from database.models.timestamps import utcnow
from utils.logger import get_logger

logger = get_logger(__name__)

MENU_ITEM_FIELDS = {"path", "label", "icon", "order", "tenant_id", "is_active"}
REQUIRED_MENU_ITEM_FIELDS = {"path", "label", "order", "is_active"}


@dataclass
class ConfiguredMenuItem:
    item: MenuItem
    roles: list[RoleMenuItem] = field(default_factory=list)


# ---------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------
def create_tenant(session: Session, name: str, kind: TenantKind | str = TenantKind.BRANCH) -> Tenant:
    """Create a new tenant. Names are unique."""
    if get_tenant_by_name(session, name):
        raise ConflictError(f"Tenant {name!r} already exists")

    tenant = Tenant(name=name, kind=TenantKind(kind).value)
    session.add(tenant)
    session.flush()
    logger.info(f"[Provisioning] Created tenant {tenant.name} ({tenant.id})")
    return tenant


def get_tenant(session: Session, tenant_id: str) -> Optional[Tenant]:
    return session.get(Tenant, tenant_id)


def get_tenant_by_name(session: Session, name: str) -> Optional[Tenant]:
    return session.exec(select(Tenant).where(Tenant.name == name)).first()


def get_all_tenants(session: Session) -> list[Tenant]:
    return list(session.exec(select(Tenant).order_by(Tenant.name)).all())


def delete_tenant(session: Session, tenant_id: str) -> None:
    """Delete a tenant and its menu.

    Business units and users block deletion: they must be moved or removed
    first, so no user is silently left without a tenant.
    """
    tenant = session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError(f"Tenant {tenant_id} not found")

    if session.exec(select(BusinessUnit).where(BusinessUnit.tenant_id == tenant_id)).first():
        raise ConflictError(f"Tenant {tenant.name} still has business units")
    if session.exec(select(User).where(User.tenant_id == tenant_id)).first():
        raise ConflictError(f"Tenant {tenant.name} still has users")

    items = session.exec(select(MenuItem).where(MenuItem.tenant_id == tenant_id)).all()
    for item in items:
        _delete_role_rows(session, item.id)
    session.flush()
    for item in items:
        session.delete(item)
    session.flush()

    session.delete(tenant)
    session.flush()
    logger.info(f"[Provisioning] Deleted tenant {tenant.name} with {len(items)} menu items")


# ---------------------------------------------------------------------
# Business units and users
# ---------------------------------------------------------------------
def create_business_unit(session: Session, tenant_id: str, name: str) -> BusinessUnit:
    if session.get(Tenant, tenant_id) is None:
        raise NotFoundError(f"Tenant {tenant_id} not found")

    business_unit = BusinessUnit(tenant_id=tenant_id, name=name)
    session.add(business_unit)
    session.flush()
    logger.info(f"[Provisioning] Created business unit {name} in tenant {tenant_id}")
    return business_unit


def create_user(
    session: Session,
    role: Role | str,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
    business_unit_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
) -> User:
    """Create a user with a canonical role. Legacy literals are mapped on the way in."""
    role = parse_role(role)

    if business_unit_id and session.get(BusinessUnit, business_unit_id) is None:
        raise NotFoundError(f"Business unit {business_unit_id} not found")
    if tenant_id and session.get(Tenant, tenant_id) is None:
        raise NotFoundError(f"Tenant {tenant_id} not found")
    if email and session.exec(select(User).where(User.email == email)).first():
        raise ConflictError(f"User {email} already exists")

    user = User(
        email=email,
        display_name=display_name,
        role=role.value,
        business_unit_id=business_unit_id,
        tenant_id=tenant_id,
    )
    session.add(user)
    session.flush()
    return user


def update_user_role(session: Session, user_id: str, role: Role | str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    user.role = parse_role(role).value
    user.updated_at = utcnow()
    session.add(user)
    session.flush()
    return user


# ---------------------------------------------------------------------
# Menu
# ---------------------------------------------------------------------
def create_menu_item(
    session: Session,
    path: str,
    label: str,
    tenant_id: Optional[str] = None,
    icon: Optional[str] = None,
    order: int = 0,
    is_active: bool = True,
    roles: Optional[Iterable[Role | str]] = None,
    role_configurations: Optional[Iterable[Mapping]] = None,
) -> MenuItem:
    """Create a menu item (global when tenant_id is None).

    roles makes it visible and enabled for each role; role_configurations
    gives per-role flags as {"role", "is_visible", "is_enabled"} mappings.
    """
    if tenant_id and session.get(Tenant, tenant_id) is None:
        raise NotFoundError(f"Tenant {tenant_id} not found")
    configurations = _parse_role_configurations(role_configurations or [])

    item = MenuItem(tenant_id=tenant_id, path=path, label=label, icon=icon, order=order, is_active=is_active)
    session.add(item)
    session.flush()

    for role in roles or []:
        configure_role_menu_item(session, item.id, role)
    for role, is_visible, is_enabled in configurations:
        configure_role_menu_item(session, item.id, role, is_visible, is_enabled)
    return item


def update_menu_item(
    session: Session,
    menu_item_id: str,
    role_configurations: Optional[Iterable[Mapping]] = None,
    **changes,
) -> MenuItem:
    """Edit a menu item. Only the given fields change.

    Accepts path, label, icon, order, tenant_id and is_active. None clears
    icon and makes the item global via tenant_id; for the other fields it
    means "leave as is". When role_configurations is given it replaces every
    role row of the item, so an empty list hides the item from all roles.
    """
    unknown = set(changes) - MENU_ITEM_FIELDS
    if unknown:
        raise TypeError(f"Unknown menu item fields: {sorted(unknown)}")

    item = session.get(MenuItem, menu_item_id)
    if item is None:
        raise NotFoundError(f"Menu item {menu_item_id} not found")
    if changes.get("tenant_id") and session.get(Tenant, changes["tenant_id"]) is None:
        raise NotFoundError(f"Tenant {changes['tenant_id']} not found")
    configurations = None
    if role_configurations is not None:
        configurations = _parse_role_configurations(role_configurations)

    for key, value in changes.items():
        if value is None and key in REQUIRED_MENU_ITEM_FIELDS:
            continue
        setattr(item, key, value)
    session.add(item)
    session.flush()

    if configurations is not None:
        _delete_role_rows(session, item.id)
        session.flush()
        for role, is_visible, is_enabled in configurations:
            session.add(RoleMenuItem(
                menu_item_id=item.id,
                role=role.value,
                is_visible=is_visible,
                is_enabled=is_enabled,
            ))
        session.flush()

    logger.info(f"[Provisioning] Updated menu item {item.path} ({item.id})")
    return item


def get_menu_item(session: Session, menu_item_id: str) -> Optional[ConfiguredMenuItem]:
    item = session.get(MenuItem, menu_item_id)
    if item is None:
        return None
    roles = session.exec(
        select(RoleMenuItem).where(RoleMenuItem.menu_item_id == item.id).order_by(col(RoleMenuItem.role))
    ).all()
    return ConfiguredMenuItem(item=item, roles=list(roles))


def list_menu_items(session: Session, tenant_id: Optional[str] = None) -> list[ConfiguredMenuItem]:
    """Menu items with all their role rows, in display order.

    Active and inactive items alike. With a tenant_id only that tenant's
    items are listed, otherwise every item including global ones.
    """
    query = select(MenuItem).order_by(col(MenuItem.order), col(MenuItem.id))
    if tenant_id is not None:
        query = query.where(MenuItem.tenant_id == tenant_id)
    items = session.exec(query).all()

    roles: dict[str, list[RoleMenuItem]] = {item.id: [] for item in items}
    if items:
        for row in session.exec(
            select(RoleMenuItem)
            .where(col(RoleMenuItem.menu_item_id).in_(list(roles)))
            .order_by(col(RoleMenuItem.role))
        ).all():
            roles[row.menu_item_id].append(row)

    return [ConfiguredMenuItem(item=item, roles=roles[item.id]) for item in items]


def configure_role_menu_item(
    session: Session,
    menu_item_id: str,
    role: Role | str,
    is_visible: bool = True,
    is_enabled: bool = True,
) -> RoleMenuItem:
    """Set visibility flags of a menu item for one role. Idempotent."""
    role = parse_role(role)
    if session.get(MenuItem, menu_item_id) is None:
        raise NotFoundError(f"Menu item {menu_item_id} not found")

    row = session.get(RoleMenuItem, (menu_item_id, role.value))
    if row is None:
        row = RoleMenuItem(menu_item_id=menu_item_id, role=role.value)
    row.is_visible = is_visible
    row.is_enabled = is_enabled
    session.add(row)
    session.flush()
    return row


def set_menu_item_active(session: Session, menu_item_id: str, is_active: bool) -> MenuItem:
    item = session.get(MenuItem, menu_item_id)
    if item is None:
        raise NotFoundError(f"Menu item {menu_item_id} not found")

    item.is_active = is_active
    session.add(item)
    session.flush()
    return item


def delete_menu_item(session: Session, menu_item_id: str) -> None:
    item = session.get(MenuItem, menu_item_id)
    if item is None:
        raise NotFoundError(f"Menu item {menu_item_id} not found")

    # Role rows reference the item
    _delete_role_rows(session, menu_item_id)
    session.flush()
    session.delete(item)
    session.flush()


def copy_menu_to_tenants(
    session: Session,
    source_tenant_id: str,
    target_tenant_ids: Optional[Iterable[str]] = None,
) -> dict[str, int]:
    """Copy a tenant's menu (items and role rows) to other tenants.

    Paths the target already has are left alone, so running it twice copies
    nothing new. With no explicit targets every other tenant is used.

    Returns:
        Number of items copied per target tenant id.
    """
    if session.get(Tenant, source_tenant_id) is None:
        raise NotFoundError(f"Source tenant {source_tenant_id} not found")

    source_items = session.exec(
        select(MenuItem)
        .where(MenuItem.tenant_id == source_tenant_id)
        .order_by(col(MenuItem.order), col(MenuItem.id))
    ).all()

    if target_tenant_ids is None:
        target_tenant_ids = [t.id for t in get_all_tenants(session) if t.id != source_tenant_id]

    copied: dict[str, int] = {}
    for tenant_id in target_tenant_ids:
        if tenant_id == source_tenant_id:
            continue
        if session.get(Tenant, tenant_id) is None:
            raise NotFoundError(f"Target tenant {tenant_id} not found")

        existing_paths = set(session.exec(
            select(MenuItem.path).where(MenuItem.tenant_id == tenant_id)
        ).all())

        count = 0
        for source in source_items:
            if source.path in existing_paths:
                continue
            item = MenuItem(
                tenant_id=tenant_id,
                path=source.path,
                label=source.label,
                icon=source.icon,
                order=source.order,
                is_active=source.is_active,
            )
            session.add(item)
            session.flush()

            for role_row in session.exec(
                select(RoleMenuItem).where(RoleMenuItem.menu_item_id == source.id)
            ).all():
                session.add(RoleMenuItem(
                    menu_item_id=item.id,
                    role=role_row.role,
                    is_visible=role_row.is_visible,
                    is_enabled=role_row.is_enabled,
                ))
            count += 1

        session.flush()
        copied[tenant_id] = count
        logger.info(f"[Provisioning] Copied {count} menu items from {source_tenant_id} to {tenant_id}")

    return copied


def _parse_role_configurations(configurations: Iterable[Mapping]) -> list[tuple[Role, bool, bool]]:
    """Validate every role before anything is written. A repeated role keeps its last flags."""
    parsed: dict[Role, tuple[Role, bool, bool]] = {}
    for config in configurations:
        role = parse_role(config["role"])
        parsed[role] = (role, config.get("is_visible", True), config.get("is_enabled", True))
    return list(parsed.values())


def _delete_role_rows(session: Session, menu_item_id: str) -> None:
    for row in session.exec(select(RoleMenuItem).where(RoleMenuItem.menu_item_id == menu_item_id)).all():
        session.delete(row)
