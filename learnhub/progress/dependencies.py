"""FastAPI dependencies for enrollments and progress.

Provides dependency injection for:
- Progress service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.courses.dependencies import handle_course_error
from learnhub.courses.service import CourseError
from learnhub.employees.dependencies import handle_employee_error
from learnhub.employees.service import EmployeeError
from learnhub.progress.service import ProgressError, ProgressService


async def get_progress_service(request: Request) -> ProgressService:
    """Get progress service from app state."""
    service = getattr(request.app.state, "progress_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return service


ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert progress errors to HTTP exceptions."""
    status_map = {
        "not_enrolled": status.HTTP_404_NOT_FOUND,
        "already_enrolled": status.HTTP_409_CONFLICT,
        "invalid_status_transition": status.HTTP_409_CONFLICT,
        "completion_not_allowed": status.HTTP_409_CONFLICT,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )


def handle_domain_error(error: ProgressError | CourseError | EmployeeError) -> HTTPException:
    """Progress operations also surface course and employee lookups."""
    if isinstance(error, CourseError):
        return handle_course_error(error)
    if isinstance(error, EmployeeError):
        return handle_employee_error(error)
    return handle_progress_error(error)


DomainErrors = (ProgressError, CourseError, EmployeeError)
