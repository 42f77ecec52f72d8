from sqlalchemy.orm import Session

from pivotflow.access_control.base import PermissionChecker, PermissionResult
from pivotflow.access_control.rbac import RBACEngine
from pivotflow.platform.logging import get_logger
from pivotflow.storage.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class PermissionService(PermissionChecker):
    """
    Database backed permission checks for one organization.

    Permission names have the form "<resource>.<action>". Users outside the
    organization or deactivated users hold no permissions.
    """

    def __init__(
        self,
        session: Session,
        organization_id: str,
        user_repo: UserRepository | None = None,
        rbac: RBACEngine | None = None,
    ):
        self.session = session
        self.organization_id = organization_id
        self.user_repo = user_repo or UserRepository()
        self.rbac = rbac or RBACEngine()

    def has_permission(self, user_id: str, permission_name: str) -> PermissionResult:
        resource, _, action = permission_name.partition(".")
        if not resource or not action:
            return PermissionResult(False, f"Invalid permission format: {permission_name}")

        user = self.user_repo.get_in_organization(self.session, self.organization_id, user_id)
        if user is None or user.is_active is False:
            return PermissionResult(False, "User is not an active member of the organization")

        if self.rbac.has_permission(user, permission_name):
            return PermissionResult(True)

        logger.info("permission denied", user_id=user_id, permission=permission_name)
        return PermissionResult(False, f"User lacks permission: {permission_name}")
