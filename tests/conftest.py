"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from datetime import datetime, timezone
from typing import Dict, List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

sys.path.append(os.path.join(os.getcwd(), "src"))

from pivotflow.allocations.constants import AllocationPermission  # noqa: E402
from pivotflow.allocations import models as allocation_models  # noqa: E402,F401
from pivotflow.storage.models import Base, ProjectModel  # noqa: E402
from pivotflow.storage.models_access_control import PermissionModel, RoleModel, UserModel  # noqa: E402
from pivotflow.storage import models_audit  # noqa: E402,F401

ORG_ID = "org-1"
OTHER_ORG_ID = "org-2"
FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("DEBUG", "true")
    os.environ.setdefault("POSTGRES_DB", "pivotflow_test")


@pytest.fixture
def db_engine():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    Session = sessionmaker(bind=db_engine, expire_on_commit=False)
    session = Session()
    yield session
    session.close()


def seed_organization(session) -> Dict[str, object]:
    """
    Two organizations: org-1 with a manager, two engineers and two projects,
    org-2 with one user and one project. The manager holds every allocation permission,
    the viewer only read access.
    """
    permissions = [PermissionModel(id=f"perm-{p.name.lower()}", name=p.value) for p in AllocationPermission]
    manager_role = RoleModel(id="role-manager", name="Resource Manager")
    manager_role.permissions = list(permissions)
    viewer_role = RoleModel(id="role-viewer", name="Viewer")
    viewer_role.permissions = [p for p in permissions if p.name == AllocationPermission.READ.value]

    manager = UserModel(
        id="manager", organization_id=ORG_ID, email="manager@example.com",
        display_name="Morgan Manager", is_active=True,
    )
    manager.roles = [manager_role]
    viewer = UserModel(id="viewer", organization_id=ORG_ID, email="viewer@example.com", is_active=True)
    viewer.roles = [viewer_role]
    alice = UserModel(id="alice", organization_id=ORG_ID, email="alice@example.com", display_name="Alice", is_active=True)
    bob = UserModel(id="bob", organization_id=ORG_ID, email="bob@example.com", display_name="Bob", is_active=True)
    outsider = UserModel(id="outsider", organization_id=OTHER_ORG_ID, email="outsider@example.com", is_active=True)
    outsider.roles = [manager_role]

    projects: List[ProjectModel] = [
        ProjectModel(id="p1", organization_id=ORG_ID, name="Apollo"),
        ProjectModel(id="p2", organization_id=ORG_ID, name="Borealis"),
        ProjectModel(id="p-other", organization_id=OTHER_ORG_ID, name="Elsewhere"),
    ]

    session.add_all(permissions + [manager_role, viewer_role, manager, viewer, alice, bob, outsider] + projects)
    session.commit()
    return {"manager": manager, "viewer": viewer, "alice": alice, "bob": bob, "outsider": outsider}


@pytest.fixture
def seeded(db_session):
    return seed_organization(db_session)
