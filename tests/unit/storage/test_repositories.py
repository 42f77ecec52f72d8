from datetime import datetime, timezone

from pivotflow.storage.models import ProjectModel
from pivotflow.storage.repositories.project_repository import ProjectRepository


def test_find_project_in_organization(db_session, seeded):
    repo = ProjectRepository()

    assert repo.find_project(db_session, "org-1", "p1").name == "Apollo"
    assert repo.find_project(db_session, "org-2", "p1") is None
    assert repo.find_project(db_session, "org-1", "missing") is None


def test_deleted_projects_are_not_found(db_session):
    repo = ProjectRepository()
    repo.create(
        db_session,
        ProjectModel(id="old", organization_id="org-1", name="Sunset", deleted_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
    )

    assert repo.find_project(db_session, "org-1", "old") is None
