"""FastAPI dependencies for training sessions."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.employees.dependencies import handle_employee_error
from learnhub.employees.service import EmployeeError
from learnhub.training.service import TrainingError, TrainingService


async def get_training_service(request: Request) -> TrainingService:
    """Get training service from app state."""
    service = getattr(request.app.state, "training_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Training service not available",
        )
    return service


TrainingServiceDep = Annotated[TrainingService, Depends(get_training_service)]


def handle_training_error(error: TrainingError | EmployeeError) -> HTTPException:
    if isinstance(error, EmployeeError):
        return handle_employee_error(error)
    status_map = {
        "session_not_found": status.HTTP_404_NOT_FOUND,
        "session_not_scheduled": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


TrainingErrors = (TrainingError, EmployeeError)
