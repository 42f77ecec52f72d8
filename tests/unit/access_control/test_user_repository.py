from pivotflow.storage.models_access_control import PermissionModel, RoleModel, UserModel
from pivotflow.storage.repositories.user_repository import UserRepository


def test_user_crud(db_session):
    repo = UserRepository()
    user = repo.create(db_session, UserModel(id="u1", organization_id="org-1", email="u1@example.com"))

    assert repo.get(db_session, "u1") is user
    assert repo.update(db_session, "u1", {"display_name": "User One"}).display_name == "User One"
    assert [u.id for u in repo.list(db_session)] == ["u1"]
    assert repo.delete(db_session, "u1") is True
    assert repo.get(db_session, "u1") is None
    assert repo.update(db_session, "u1", {"display_name": "x"}) is None


def test_get_in_organization(db_session, seeded):
    repo = UserRepository()

    assert repo.get_in_organization(db_session, "org-1", "alice").email == "alice@example.com"
    assert repo.get_in_organization(db_session, "org-2", "alice") is None


def test_display_names_fall_back_to_email(db_session, seeded):
    names = UserRepository().display_names(db_session, "org-1", ["alice", "viewer", "outsider", "alice"])

    assert names == {"alice": "Alice", "viewer": "viewer@example.com"}
    assert UserRepository().display_names(db_session, "org-1", []) == {}


def test_role_assignment(db_session):
    repo = UserRepository()
    repo.create(db_session, UserModel(id="u1", organization_id="org-1", email="u1@example.com"))
    role = repo.create_role(db_session, RoleModel(id="r1", name="Planner"))
    permission = repo.create_permission(db_session, PermissionModel(id="p1", name="allocations.create"))
    role.permissions.append(permission)

    assert repo.assign_role(db_session, "u1", "r1") is True
    # Idempotent
    assert repo.assign_role(db_session, "u1", "r1") is True
    assert repo.assign_role(db_session, "u1", "missing") is False

    assert [r.name for r in repo.get(db_session, "u1").roles] == ["Planner"]
    assert repo.get_role_by_name(db_session, "Planner").id == "r1"
    assert repo.get_permission_by_name(db_session, "allocations.create").id == "p1"
