"""
Atomic catalog migrations.

Renames and repairs permission identifiers at the data level. Each public
entry point runs as one transaction: either the whole migration is committed
or nothing is. Roles keep their access across a rename: grants held on an old
identifier are re-created on its replacement.
"""
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, TypeVar

from sqlalchemy import and_, or_
from sqlmodel import Session, col, select

from core.exceptions import ConflictError, InvalidIdentifier, MigrationFailed, NotFoundError, UnknownRole
from core.identifiers import (
    DELIMITER,
    canonical_action,
    canonical_resource,
    is_canonical,
    normalize,
    split_identifier,
)
from database.connection import Database
from database.models import Permission, RoleMenuItem, RolePermission, User, canonical_role, parse_role
from services.permission_catalog import PermissionCatalog
from utils.logger import get_logger

logger = get_logger(__name__)

MIGRATION_ISOLATION_LEVEL = "SERIALIZABLE"

T = TypeVar("T")


@dataclass(frozen=True)
class PermissionDefinition:
    resource: str
    action: str
    description: Optional[str] = None
    replaces: Optional[tuple[str, str]] = None  # Raw (resource, action) of the old identifier

    @property
    def name(self) -> str:
        return normalize(self.resource, self.action)


@dataclass
class MigrationReport:
    removed: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    carried_grants: list[tuple[str, str, bool]] = field(default_factory=list)  # (role, permission, granted)


@dataclass
class RoleMigrationReport:
    users: dict[str, str] = field(default_factory=dict)  # user id -> new role
    grants_rewritten: int = 0
    menu_rows_rewritten: int = 0
    unknown_literals: list[str] = field(default_factory=list)
    # Legacy rows folded into a row they share a target key with
    merged_grants: list[tuple[str, str, str, bool]] = field(default_factory=list)  # (literal, role, permission, granted)
    merged_menu_rows: list[tuple[str, str, str]] = field(default_factory=list)  # (literal, role, menu item id)


def _coerce_definition(definition) -> PermissionDefinition:
    if isinstance(definition, PermissionDefinition):
        return definition
    replaces = definition.get("replaces")
    return PermissionDefinition(
        resource=definition["resource"],
        action=definition["action"],
        description=definition.get("description"),
        replaces=tuple(replaces) if replaces else None,
    )


def _pair_is_canonical(permission: Permission) -> bool:
    try:
        return (
            permission.resource == canonical_resource(permission.resource)
            and permission.action == canonical_action(permission.action)
        )
    except InvalidIdentifier:
        return False


def _raw_name(resource: str, action: str) -> str:
    if not resource or not action or not str(resource).strip() or not str(action).strip():
        raise InvalidIdentifier(f"Old identifier must have resource and action: ({resource!r}, {action!r})")
    return f"{resource}{DELIMITER}{action}"


class CatalogMigration:
    """Migration steps over one session. The caller owns the transaction."""

    def __init__(self, session: Session):
        self.session = session
        self.catalog = PermissionCatalog(session)

    def rename_permissions(
        self,
        old_identifiers: Iterable[tuple[str, str]],
        new_definitions: Iterable[PermissionDefinition | dict],
    ) -> MigrationReport:
        report = MigrationReport()
        olds = [(resource, action) for resource, action in old_identifiers]
        news = self._unique_definitions([_coerce_definition(d) for d in new_definitions])

        # Validate everything before the first write
        old_names = {_raw_name(resource, action) for resource, action in olds}
        new_names = {definition.name for definition in news}
        overlap = old_names & new_names
        if overlap:
            raise ConflictError(f"Old and new identifier sets overlap: {sorted(overlap)}")

        # (old permission, snapshot of its grants, replacement definition)
        plan: list[tuple[Permission, list[tuple[str, bool]], Optional[PermissionDefinition]]] = []
        seen: set[str] = set()
        for resource, action in olds:
            matches = self._find_stored(resource, action)
            if not matches:
                report.skipped.append(_raw_name(resource, action))
                continue

            target = self._replacement_for(resource, action, news)
            for permission in matches:
                if permission.id in seen:
                    continue
                seen.add(permission.id)

                grants = [(row.role, row.granted) for row in self.catalog.grants_for_permission(permission.id)]
                if target is None and grants:
                    raise ConflictError(
                        f"No replacement for {permission.name}, which still has {len(grants)} grant rows"
                    )
                plan.append((permission, grants, target))

        # Referential order: grants, then permissions, then new definitions
        for permission, _, _ in plan:
            for row in self.catalog.grants_for_permission(permission.id):
                self.session.delete(row)
        self.session.flush()

        for permission, _, _ in plan:
            report.removed.append(permission.name)
            self.session.delete(permission)
        self.session.flush()

        created: dict[str, Permission] = {}
        for definition in news:
            permission = self.catalog.upsert_permission(
                definition.resource, definition.action, definition.description
            )
            created[definition.name] = permission
            report.created.append(permission.name)

        for _, grants, target in plan:
            if target is None:
                continue
            new_permission = created[target.name]
            for role, granted in grants:
                if granted:
                    self.catalog.set_grant(role, new_permission, True)
                elif self.session.get(RolePermission, (role, new_permission.id)) is None:
                    # Revocations are carried for audit, never over an existing row
                    self.catalog.set_grant(role, new_permission, False)
                else:
                    continue
                report.carried_grants.append((role, new_permission.name, granted))

        logger.info(
            f"[CatalogMigration] Renamed {report.removed} -> {report.created}, "
            f"{len(report.carried_grants)} grants carried, skipped {report.skipped}"
        )
        return report

    def repair_legacy_identifiers(self) -> MigrationReport:
        """Rename every non-canonical permission row to its canonical form."""
        olds: list[tuple[str, str]] = []
        news: list[PermissionDefinition] = []
        name_only: list[tuple[str, str]] = []
        unrepairable: list[str] = []

        for permission in self.session.exec(select(Permission)).all():
            if is_canonical(permission.resource, permission.action, permission.name):
                continue
            if _pair_is_canonical(permission):
                # Only the stored name drifted; fixed in place below
                name_only.append((permission.resource, permission.action))
                continue
            try:
                canonical = normalize(permission.resource, permission.action)
            except InvalidIdentifier:
                try:
                    canonical = normalize(*split_identifier(permission.name))
                except InvalidIdentifier:
                    unrepairable.append(permission.name)
                    continue
            resource, action = split_identifier(canonical)
            olds.append((permission.resource, permission.action))
            news.append(PermissionDefinition(
                resource=resource,
                action=action,
                description=permission.description,
                replaces=(permission.resource, permission.action),
            ))

        report = self.rename_permissions(olds, news) if olds else MigrationReport()
        for resource, action in name_only:
            permission = self.catalog.upsert_permission(resource, action)
            if permission.name not in report.created:
                report.created.append(permission.name)
        report.skipped.extend(unrepairable)

        if not olds and not name_only:
            logger.info("[CatalogMigration] Catalog already canonical")
        return report

    def migrate_legacy_roles(self) -> RoleMigrationReport:
        """Rewrite legacy role literals to canonical Role values."""
        report = RoleMigrationReport()
        unknown: set[str] = set()

        for user in self.session.exec(select(User)).all():
            role = self._legacy_target(user.role, unknown)
            if role is None:
                continue
            user.role = role
            self.session.add(user)
            report.users[user.id] = role

        self._merge_legacy_grants(report, unknown)
        self._merge_legacy_menu_rows(report, unknown)

        self.session.flush()
        report.unknown_literals = sorted(unknown)
        logger.info(
            f"[CatalogMigration] Legacy roles: {len(report.users)} users, "
            f"{report.grants_rewritten} grants, {report.menu_rows_rewritten} menu rows; "
            f"unknown {report.unknown_literals}"
        )
        return report

    def _merge_legacy_grants(self, report: RoleMigrationReport, unknown: set[str]) -> None:
        """Fold legacy grant rows into one canonical row per (role, permission).

        Several literals can map to one role. Among rows sharing a target a
        grant beats a revocation, whatever order they are read in. An existing
        canonical row is kept as it is.
        """
        rows = self.session.exec(
            select(RolePermission).order_by(col(RolePermission.permission_id), col(RolePermission.role))
        ).all()
        canonical = {(row.role, row.permission_id) for row in rows if canonical_role(row.role) is not None}

        groups: dict[tuple[str, str], list[RolePermission]] = {}
        for row in rows:
            role = self._legacy_target(row.role, unknown)
            if role is not None:
                groups.setdefault((role, row.permission_id), []).append(row)

        for (role, permission_id), legacy_rows in groups.items():
            if (role, permission_id) not in canonical:
                granted = any(row.granted for row in legacy_rows)
                self.session.add(RolePermission(role=role, permission_id=permission_id, granted=granted))
            if len(legacy_rows) > 1 or (role, permission_id) in canonical:
                permission = self.session.get(Permission, permission_id)
                for row in legacy_rows:
                    report.merged_grants.append((row.role, role, permission.name, row.granted))
            for row in legacy_rows:
                self.session.delete(row)
                report.grants_rewritten += 1

    def _merge_legacy_menu_rows(self, report: RoleMigrationReport, unknown: set[str]) -> None:
        """Fold legacy menu rows into one canonical row per (item, role). Visible and enabled win."""
        rows = self.session.exec(
            select(RoleMenuItem).order_by(col(RoleMenuItem.menu_item_id), col(RoleMenuItem.role))
        ).all()
        canonical = {(row.menu_item_id, row.role) for row in rows if canonical_role(row.role) is not None}

        groups: dict[tuple[str, str], list[RoleMenuItem]] = {}
        for row in rows:
            role = self._legacy_target(row.role, unknown)
            if role is not None:
                groups.setdefault((row.menu_item_id, role), []).append(row)

        for (menu_item_id, role), legacy_rows in groups.items():
            if (menu_item_id, role) not in canonical:
                self.session.add(RoleMenuItem(
                    menu_item_id=menu_item_id,
                    role=role,
                    is_visible=any(row.is_visible for row in legacy_rows),
                    is_enabled=any(row.is_enabled for row in legacy_rows),
                ))
            if len(legacy_rows) > 1 or (menu_item_id, role) in canonical:
                report.merged_menu_rows.extend((row.role, role, menu_item_id) for row in legacy_rows)
            for row in legacy_rows:
                self.session.delete(row)
                report.menu_rows_rewritten += 1

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    def _find_stored(self, resource: str, action: str) -> list[Permission]:
        """Every row matching an old identifier by its raw stored name or its raw pair.

        One row can carry the old name while another carries the old pair;
        both belong to the old identifier.
        """
        return list(self.session.exec(
            select(Permission)
            .where(or_(
                Permission.name == _raw_name(resource, action),
                and_(Permission.resource == resource, Permission.action == action),
            ))
            .order_by(col(Permission.name))
        ).all())

    @staticmethod
    def _unique_definitions(definitions: list[PermissionDefinition]) -> list[PermissionDefinition]:
        unique: dict[str, PermissionDefinition] = {}
        for definition in definitions:
            unique.setdefault(definition.name, definition)
        return list(unique.values())

    @staticmethod
    def _replacement_for(
        resource: str,
        action: str,
        news: list[PermissionDefinition],
    ) -> Optional[PermissionDefinition]:
        for definition in news:
            if definition.replaces and tuple(definition.replaces) == (resource, action):
                return definition

        try:
            canonical = normalize(resource, action)
        except InvalidIdentifier:
            canonical = None
        for definition in news:
            if definition.name == canonical:
                return definition

        try:
            same_action = [d for d in news if canonical_action(d.action) == canonical_action(action)]
        except InvalidIdentifier:
            return None
        return same_action[0] if len(same_action) == 1 else None

    @staticmethod
    def _legacy_target(literal: str, unknown: set[str]) -> Optional[str]:
        if canonical_role(literal) is not None:
            return None
        try:
            return parse_role(literal).value
        except UnknownRole:
            unknown.add(literal)
            return None


# ---------------------------------------------------------------------
# Transactional entry points
# ---------------------------------------------------------------------
def _run_atomically(db: Database, label: str, step: Callable[[CatalogMigration], T]) -> T:
    try:
        with db.transaction(isolation_level=MIGRATION_ISOLATION_LEVEL) as session:
            return step(CatalogMigration(session))
    except (InvalidIdentifier, ConflictError, NotFoundError):
        logger.warning(f"[CatalogMigration] {label} rejected, nothing committed")
        raise
    except Exception as exc:
        logger.error(f"[CatalogMigration] {label} failed, rolled back: {exc}")
        raise MigrationFailed(f"{label} failed and was rolled back: {exc}") from exc


def rename_permissions(
    db: Database,
    old_identifiers: Iterable[tuple[str, str]],
    new_definitions: Iterable[PermissionDefinition | dict],
) -> MigrationReport:
    return _run_atomically(
        db,
        "rename_permissions",
        lambda migration: migration.rename_permissions(old_identifiers, new_definitions),
    )


def repair_legacy_identifiers(db: Database) -> MigrationReport:
    return _run_atomically(db, "repair_legacy_identifiers", CatalogMigration.repair_legacy_identifiers)


def migrate_legacy_roles(db: Database) -> RoleMigrationReport:
    return _run_atomically(db, "migrate_legacy_roles", CatalogMigration.migrate_legacy_roles)
