"""FastAPI dependencies for projects."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.employees.dependencies import handle_employee_error
from learnhub.employees.service import EmployeeError
from learnhub.projects.service import ProjectError, ProjectService


async def get_project_service(request: Request) -> ProjectService:
    """Get project service from app state."""
    service = getattr(request.app.state, "project_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Project service not available",
        )
    return service


ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]


def handle_project_error(error: ProjectError | EmployeeError) -> HTTPException:
    """Convert project errors (and assignee lookups) to HTTPException."""
    if isinstance(error, EmployeeError):
        return handle_employee_error(error)
    status_map = {
        "project_not_found": status.HTTP_404_NOT_FOUND,
        "assignment_not_found": status.HTTP_404_NOT_FOUND,
        "submission_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_assignment_transition": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


ProjectErrors = (ProjectError, EmployeeError)
