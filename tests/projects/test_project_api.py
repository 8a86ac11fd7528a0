"""Tests for the /v1/projects endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learnhub.auth.permissions import UserRole
from learnhub.employees.service import EmployeeNotFoundError
from learnhub.projects.models import Project, ProjectSubmission
from learnhub.projects.service import (
    AssignmentNotFoundError,
    InvalidAssignmentTransitionError,
)


PROJECT_BODY = {
    "project_name": "Inventory Dashboard",
    "project_description": "Build a stock overview",
    "project_type": "Training",
    "instructions": "Use the sample data",
    "deliverables": "Repository link",
}


@pytest.fixture
def project_service(app) -> Mock:
    service = Mock()
    app.state.project_service = service
    return service


class TestProjectEndpoints:
    """Tests for project CRUD and assignment routes."""

    def test_unavailable_without_service(self, client, auth_headers) -> None:
        response = client.get("/v1/projects", headers=auth_headers(UserRole.HR))
        assert response.status_code == 503

    def test_intern_cannot_create(self, client, auth_headers, project_service) -> None:
        project_service.create_project = AsyncMock()

        response = client.post(
            "/v1/projects", json=PROJECT_BODY, headers=auth_headers(UserRole.INTERN)
        )

        assert response.status_code == 403
        project_service.create_project.assert_not_awaited()

    def test_hr_creates(self, client, auth_headers, project_service) -> None:
        hr_id = uuid4()
        project_service.create_project = AsyncMock(
            return_value=Project(**PROJECT_BODY, created_by=hr_id)
        )

        response = client.post(
            "/v1/projects", json=PROJECT_BODY, headers=auth_headers(UserRole.HR, hr_id)
        )

        assert response.status_code == 201
        assert response.json()["project_name"] == "Inventory Dashboard"
        assert project_service.create_project.call_args.args[1] == hr_id

    def test_intern_sees_only_assigned_project(
        self, client, auth_headers, project_service
    ) -> None:
        project = Project(**PROJECT_BODY)
        project_service.require_project = AsyncMock(return_value=project)
        project_service.require_assignment = AsyncMock(side_effect=AssignmentNotFoundError())

        response = client.get(
            f"/v1/projects/{project.id}", headers=auth_headers(UserRole.INTERN)
        )

        assert response.status_code == 404

    def test_assign_unknown_employee(self, client, auth_headers, project_service) -> None:
        project_service.assign_project = AsyncMock(side_effect=EmployeeNotFoundError())

        response = client.put(
            f"/v1/projects/{uuid4()}/assignments",
            json={"assignee_ids": [str(uuid4())]},
            headers=auth_headers(UserRole.MANAGER),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Employee not found"


class TestSubmissionEndpoints:
    """Tests for submitting and reviewing work."""

    def test_submit_uses_caller_id(self, client, auth_headers, project_service) -> None:
        user_id, project_id = uuid4(), uuid4()
        project_service.submit = AsyncMock(
            return_value=ProjectSubmission(project_id, user_id, submission_content="Done")
        )

        response = client.post(
            f"/v1/projects/{project_id}/submission",
            json={"submission_content": "Done"},
            headers=auth_headers(UserRole.INTERN, user_id),
        )

        assert response.status_code == 201
        assert project_service.submit.call_args.args[:2] == (project_id, user_id)

    def test_submit_not_started_conflicts(
        self, client, auth_headers, project_service
    ) -> None:
        project_service.submit = AsyncMock(
            side_effect=InvalidAssignmentTransitionError("not_started", "submitted")
        )

        response = client.post(
            f"/v1/projects/{uuid4()}/submission",
            json={"submission_content": "Done"},
            headers=auth_headers(UserRole.INTERN),
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Cannot move assignment from not_started to submitted"

    def test_intern_cannot_read_others_submission(
        self, client, auth_headers, project_service
    ) -> None:
        project_service.get_submission = AsyncMock()

        response = client.get(
            f"/v1/projects/{uuid4()}/assignments/{uuid4()}/submission",
            headers=auth_headers(UserRole.INTERN),
        )

        assert response.status_code == 403
        project_service.get_submission.assert_not_awaited()

    def test_cannot_evaluate_own_submission(
        self, client, auth_headers, project_service
    ) -> None:
        manager_id = uuid4()
        project_service.evaluate = AsyncMock()

        response = client.post(
            f"/v1/projects/{uuid4()}/assignments/{manager_id}/evaluation",
            json={"overall_score": 9},
            headers=auth_headers(UserRole.MANAGER, manager_id),
        )

        assert response.status_code == 403
        project_service.evaluate.assert_not_awaited()

    def test_score_out_of_range(self, client, auth_headers, project_service) -> None:
        response = client.post(
            f"/v1/projects/{uuid4()}/assignments/{uuid4()}/evaluation",
            json={"overall_score": 12},
            headers=auth_headers(UserRole.MANAGER),
        )

        assert response.status_code == 422
