"""Project API endpoints.

HR creates and deletes projects, managers assign and evaluate them, and
assignees start and submit their own work.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from learnhub.auth.dependencies import CurrentUser, HRUser, ManagerUser
from learnhub.auth.permissions import (
    UserRole,
    can_view_employee_progress,
    has_permission,
)
from learnhub.auth.schemas import UserResponse
from learnhub.projects.dependencies import (
    ProjectErrors,
    ProjectServiceDep,
    handle_project_error,
)
from learnhub.projects.schemas import (
    AssignmentListResponse,
    AssignmentResponse,
    AssignProjectRequest,
    AssignProjectResponse,
    CreateProjectRequest,
    EvaluateProjectRequest,
    EvaluationResponse,
    EvaluationStatusResponse,
    MyProjectResponse,
    ProjectListResponse,
    ProjectResponse,
    SubmissionResponse,
    SubmitProjectRequest,
)


router = APIRouter(prefix="/v1/projects", tags=["projects"])


def ensure_can_view(user: UserResponse, assignee_id: UUID) -> None:
    if not can_view_employee_progress(user.role, str(user.id), str(assignee_id)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own project work",
        )


# ==============================================================================
# Projects
# ==============================================================================


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
)
async def create_project(
    data: CreateProjectRequest,
    project_service: ProjectServiceDep,
    user: HRUser,
) -> ProjectResponse:
    project = await project_service.create_project(data, user.id)
    return ProjectResponse.from_entity(project)


@router.get("", response_model=ProjectListResponse, summary="List projects")
async def list_projects(
    project_service: ProjectServiceDep,
    _: ManagerUser,
    limit: int = 100,
) -> ProjectListResponse:
    projects = await project_service.list_projects(limit=limit)
    items = [ProjectResponse.from_entity(p) for p in projects]
    return ProjectListResponse(items=items, total=len(items))


@router.get("/my", response_model=list[MyProjectResponse], summary="My projects")
async def my_projects(
    project_service: ProjectServiceDep,
    user: CurrentUser,
) -> list[MyProjectResponse]:
    pairs = await project_service.list_assignee_assignments(user.id)
    return [
        MyProjectResponse(
            project=ProjectResponse.from_entity(project),
            assignment=AssignmentResponse.from_entity(assignment),
        )
        for assignment, project in pairs
    ]


@router.get(
    "/evaluation-status",
    response_model=list[EvaluationStatusResponse],
    summary="Evaluation backlog of all projects",
)
async def evaluation_overview(
    project_service: ProjectServiceDep,
    _: ManagerUser,
    limit: int = 100,
) -> list[EvaluationStatusResponse]:
    return await project_service.evaluation_overview(limit=limit)


@router.get("/{project_id}", response_model=ProjectResponse, summary="Get project")
async def get_project(
    project_id: UUID,
    project_service: ProjectServiceDep,
    user: CurrentUser,
) -> ProjectResponse:
    """Managers and above see any project; others only projects assigned to them."""
    try:
        project = await project_service.require_project(project_id)
        if not has_permission(user.role, UserRole.MANAGER):
            await project_service.require_assignment(project_id, user.id)
    except ProjectErrors as e:
        raise handle_project_error(e) from e
    return ProjectResponse.from_entity(project)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete project",
)
async def delete_project(
    project_id: UUID,
    project_service: ProjectServiceDep,
    _: HRUser,
) -> None:
    try:
        await project_service.delete_project(project_id)
    except ProjectErrors as e:
        raise handle_project_error(e) from e


# ==============================================================================
# Assignments
# ==============================================================================


@router.put(
    "/{project_id}/assignments",
    response_model=AssignProjectResponse,
    summary="Set project assignees",
)
async def assign_project(
    project_id: UUID,
    data: AssignProjectRequest,
    project_service: ProjectServiceDep,
    user: ManagerUser,
) -> AssignProjectResponse:
    try:
        return await project_service.assign_project(project_id, data.assignee_ids, user.id)
    except ProjectErrors as e:
        raise handle_project_error(e) from e


@router.get(
    "/{project_id}/assignments",
    response_model=AssignmentListResponse,
    summary="Project assignees",
)
async def list_assignments(
    project_id: UUID,
    project_service: ProjectServiceDep,
    _: ManagerUser,
) -> AssignmentListResponse:
    try:
        await project_service.require_project(project_id)
    except ProjectErrors as e:
        raise handle_project_error(e) from e
    assignments = await project_service.list_project_assignments(project_id)
    items = [AssignmentResponse.from_entity(a) for a in assignments]
    return AssignmentListResponse(items=items, total=len(items))


@router.post(
    "/{project_id}/start",
    response_model=AssignmentResponse,
    summary="Start my assignment",
)
async def start_assignment(
    project_id: UUID,
    project_service: ProjectServiceDep,
    user: CurrentUser,
) -> AssignmentResponse:
    try:
        assignment = await project_service.start_assignment(project_id, user.id)
    except ProjectErrors as e:
        raise handle_project_error(e) from e
    return AssignmentResponse.from_entity(assignment)


@router.post(
    "/{project_id}/submission",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit my work",
)
async def submit_project(
    project_id: UUID,
    data: SubmitProjectRequest,
    project_service: ProjectServiceDep,
    user: CurrentUser,
) -> SubmissionResponse:
    try:
        submission = await project_service.submit(project_id, user.id, data)
    except ProjectErrors as e:
        raise handle_project_error(e) from e
    return SubmissionResponse.from_entity(submission)


# ==============================================================================
# Review
# ==============================================================================


@router.get(
    "/{project_id}/assignments/{assignee_id}/submission",
    response_model=SubmissionResponse,
    summary="Get submission",
)
async def get_submission(
    project_id: UUID,
    assignee_id: UUID,
    project_service: ProjectServiceDep,
    user: CurrentUser,
) -> SubmissionResponse:
    ensure_can_view(user, assignee_id)
    submission = await project_service.get_submission(project_id, assignee_id)
    if submission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No submission for this assignment",
        )
    return SubmissionResponse.from_entity(submission)


@router.post(
    "/{project_id}/assignments/{assignee_id}/evaluation",
    response_model=EvaluationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Evaluate submission",
)
async def evaluate_submission(
    project_id: UUID,
    assignee_id: UUID,
    data: EvaluateProjectRequest,
    project_service: ProjectServiceDep,
    user: ManagerUser,
) -> EvaluationResponse:
    if user.id == assignee_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot evaluate your own submission",
        )
    try:
        evaluation = await project_service.evaluate(project_id, assignee_id, data, user.id)
    except ProjectErrors as e:
        raise handle_project_error(e) from e
    return EvaluationResponse.from_entity(evaluation)


@router.get(
    "/{project_id}/assignments/{assignee_id}/evaluation",
    response_model=EvaluationResponse,
    summary="Get evaluation",
)
async def get_evaluation(
    project_id: UUID,
    assignee_id: UUID,
    project_service: ProjectServiceDep,
    user: CurrentUser,
) -> EvaluationResponse:
    ensure_can_view(user, assignee_id)
    evaluation = await project_service.get_evaluation(project_id, assignee_id)
    if evaluation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission has not been evaluated yet",
        )
    return EvaluationResponse.from_entity(evaluation)


@router.get(
    "/{project_id}/evaluation-status",
    response_model=EvaluationStatusResponse,
    summary="Evaluation backlog of a project",
)
async def evaluation_status(
    project_id: UUID,
    project_service: ProjectServiceDep,
    _: ManagerUser,
) -> EvaluationStatusResponse:
    try:
        return await project_service.evaluation_status(project_id)
    except ProjectErrors as e:
        raise handle_project_error(e) from e
