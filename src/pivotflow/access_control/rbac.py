from typing import Set
from pivotflow.storage.models_access_control import UserModel

class RBACEngine:
    """
    Engine for Role-Based Access Control logic.
    Handles permission resolution from user roles.
    """

    def get_user_effective_permissions(self, user: UserModel) -> Set[str]:
        """
        Collect all permissions from all active roles assigned to the user.
        Returns a set of permission names (e.g., {'allocations.read', 'allocations.create'}).
        """
        permissions = set()

        # Roles and permissions use lazy="selectin", loaded with the user
        if not user.roles:
            return permissions

        for role in user.roles:
            if role.is_active is False:
                continue
            for perm in role.permissions or []:
                permissions.add(perm.name)

        return permissions

    def has_permission(self, user: UserModel, required_permission: str) -> bool:
        """
        Check if user has a specific permission.
        """
        return required_permission in self.get_user_effective_permissions(user)

