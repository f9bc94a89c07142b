from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from core.exceptions import ConflictError
from core.identifiers import DELIMITER, canonical_action, canonical_resource, normalize
from database.models import Permission, Role, RolePermission, parse_role
from database.models.timestamps import utcnow
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GrantRecord:
    """One explicit grant row, as shown in audit listings."""
    role: str
    permission: str
    granted: bool
    updated_at: datetime


class PermissionCatalog:
    """
    Permission definitions and per-role grant flags.

    Works inside the caller's session: the caller owns the transaction, so a
    grant is only visible to others once the caller commits.
    """

    def __init__(self, session: Session):
        self.session = session

    # ---------------------------------------------------------------------
    # Permissions
    # ---------------------------------------------------------------------
    def get_permission(self, resource: str, action: str) -> Optional[Permission]:
        """Look up a permission by its canonical identifier."""
        name = normalize(resource, action)
        return self.session.exec(select(Permission).where(Permission.name == name)).first()

    def list_permissions(self) -> list[Permission]:
        return list(self.session.exec(select(Permission).order_by(Permission.name)).all())

    def upsert_permission(
        self,
        resource: str,
        action: str,
        description: Optional[str] = None,
    ) -> Permission:
        """Return the canonical permission, creating it when absent.

        A row that already carries the canonical name (or the canonical
        resource/action pair) is adopted and its fields are brought back to the
        canonical form instead of inserting a duplicate.
        """
        resource = canonical_resource(resource)
        action = canonical_action(action)
        name = f"{resource}{DELIMITER}{action}"

        by_name = self.session.exec(select(Permission).where(Permission.name == name)).first()
        by_pair = self.session.exec(
            select(Permission).where(Permission.resource == resource, Permission.action == action)
        ).first()

        if by_name and by_pair and by_name.id != by_pair.id:
            raise ConflictError(
                f"Permission {name} is split across rows {by_name.id} and {by_pair.id}; "
                "repair legacy identifiers first"
            )

        permission = by_name or by_pair
        if permission is None:
            permission = Permission(name=name, resource=resource, action=action, description=description)
            self.session.add(permission)
            self.session.flush()
            logger.info(f"[PermissionCatalog] Created permission {name}")
            return permission

        if (permission.name, permission.resource, permission.action) != (name, resource, action):
            logger.info(
                f"[PermissionCatalog] Repairing permission {permission.name} "
                f"({permission.resource}, {permission.action}) -> {name}"
            )
            permission.name = name
            permission.resource = resource
            permission.action = action
        if description and not permission.description:
            permission.description = description

        self.session.add(permission)
        self.session.flush()
        return permission

    # ---------------------------------------------------------------------
    # Grants
    # ---------------------------------------------------------------------
    def grant(
        self,
        role: Role | str,
        resource: str,
        action: str,
        granted: bool = True,
        description: Optional[str] = None,
    ) -> RolePermission:
        """Set the grant flag for (role, resource:action). Idempotent.

        Raises:
            UnknownRole: if the role literal maps to no Role.
            InvalidIdentifier: if resource or action is empty/malformed.
        """
        role = parse_role(role)
        permission = self.upsert_permission(resource, action, description)
        row = self.set_grant(role.value, permission, granted)
        logger.info(
            f"[PermissionCatalog] {'Granted' if granted else 'Revoked'} "
            f"{permission.name} for {role.value}"
        )
        return row

    def set_grant(self, role: str, permission: Permission, granted: bool) -> RolePermission:
        """Upsert the (role, permission) row with the given flag. Last writer wins."""
        row = self.session.get(RolePermission, (role, permission.id))
        if row is None:
            row = RolePermission(role=role, permission_id=permission.id, granted=granted)
        else:
            row.granted = granted
            row.updated_at = utcnow()
        self.session.add(row)
        self.session.flush()
        return row

    def is_granted(self, role: Role, resource: str, action: str) -> bool:
        """Explicit grant lookup. Missing row and granted=False both mean no."""
        name = normalize(resource, action)
        granted = self.session.exec(
            select(RolePermission.granted)
            .join(Permission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role == role.value, Permission.name == name)
        ).first()
        return bool(granted)

    def effective_permissions(self, role: Role) -> set[str]:
        """All permission names granted to a role. For display, not for checks."""
        results = self.session.exec(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role == role.value, RolePermission.granted == True)  # noqa: E712
        ).all()
        return set(results)

    def grants_for_permission(self, permission_id: str) -> list[RolePermission]:
        return list(self.session.exec(
            select(RolePermission).where(RolePermission.permission_id == permission_id)
        ).all())

    def list_grants(self, role: Optional[Role] = None) -> list[GrantRecord]:
        query = (
            select(RolePermission, Permission)
            .join(Permission, RolePermission.permission_id == Permission.id)
            .order_by(RolePermission.role, Permission.name)
        )
        if role is not None:
            query = query.where(RolePermission.role == role.value)

        return [
            GrantRecord(
                role=row.role,
                permission=permission.name,
                granted=row.granted,
                updated_at=row.updated_at,
            )
            for row, permission in self.session.exec(query).all()
        ]
