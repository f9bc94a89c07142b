from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from core.permissions import Permissions
from database.connection import Database
from services.access_control import AccessControl
from utils.logger import get_logger

logger = get_logger(__name__)


def get_database(request: Request) -> Database:
    """Persistence handle created in the app lifespan."""
    return request.app.state.db


def get_access_control(db: Database = Depends(get_database)) -> AccessControl:
    return AccessControl(db)


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Authenticated user id, set by the authentication layer in front of this service."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return x_user_id


class PermissionChecker:
    """Dependency class for checking user permissions."""

    def __init__(self, resource: str, action: str):
        self.resource = resource
        self.action = action

    def __call__(
        self,
        user_id: str = Depends(get_current_user_id),
        access: AccessControl = Depends(get_access_control),
    ) -> str:
        try:
            allowed = access.can_perform(user_id, self.resource, self.action)
        except SQLAlchemyError as exc:
            # Never allow when the decision could not be made
            logger.error(f"[PermissionChecker] Permission check failed for {user_id}: {exc}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Permission check unavailable",
            )

        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {self.resource}:{self.action} required",
            )

        return user_id


def require_permission(permission: Permissions | tuple[str, str]):
    """Factory function to create permission dependency."""
    if isinstance(permission, Permissions):
        return PermissionChecker(permission.resource, permission.action)
    resource, action = permission
    return PermissionChecker(resource, action)
