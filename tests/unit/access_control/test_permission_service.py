from unittest.mock import Mock

from pivotflow.access_control.service import PermissionService
from pivotflow.storage.models_access_control import UserModel
from pivotflow.storage.repositories.user_repository import UserRepository


def test_granted(db_session, seeded):
    service = PermissionService(db_session, "org-1")

    result = service.has_permission("manager", "allocations.create")

    assert result.granted is True
    assert result.reason is None


def test_missing_permission(db_session, seeded):
    result = PermissionService(db_session, "org-1").has_permission("viewer", "allocations.delete")

    assert result.granted is False
    assert "allocations.delete" in result.reason


def test_user_outside_organization(db_session, seeded):
    result = PermissionService(db_session, "org-1").has_permission("outsider", "allocations.read")
    assert result.granted is False


def test_unknown_user(db_session, seeded):
    assert PermissionService(db_session, "org-1").has_permission("ghost", "allocations.read").granted is False


def test_deactivated_user(db_session, seeded):
    seeded["manager"].is_active = False
    db_session.flush()

    assert PermissionService(db_session, "org-1").has_permission("manager", "allocations.read").granted is False


def test_malformed_permission_name():
    user_repo = Mock(spec=UserRepository)
    service = PermissionService(Mock(), "org-1", user_repo=user_repo)

    result = service.has_permission("manager", "allocations")

    assert result.granted is False
    user_repo.get_in_organization.assert_not_called()


def test_looks_up_user_in_its_organization():
    user_repo = Mock(spec=UserRepository)
    user_repo.get_in_organization.return_value = UserModel(id="u1", is_active=True, roles=[])
    session = Mock()

    result = PermissionService(session, "org-9", user_repo=user_repo).has_permission("u1", "allocations.read")

    assert result.granted is False
    user_repo.get_in_organization.assert_called_once_with(session, "org-9", "u1")
