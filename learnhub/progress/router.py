"""Enrollment and progress API endpoints.

Provides routes for:
- Enrollment (single, bulk, unenroll, listings)
- Module completion and assessment attempts for the current employee
- Progress queries per course and per employee
- The gated mark-complete action
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from learnhub.auth.dependencies import CurrentUser, HRUser, ManagerUser
from learnhub.auth.permissions import can_view_employee_progress
from learnhub.auth.schemas import UserResponse
from learnhub.progress.dependencies import (
    DomainErrors,
    ProgressServiceDep,
    handle_domain_error,
)
from learnhub.progress.schemas import (
    AssessmentResultResponse,
    BulkEnrollRequest,
    BulkEnrollResponse,
    CourseProgressResponse,
    EmployeeProgressOverview,
    EnrollmentResponse,
    EnrollRequest,
    MarkModuleRequest,
    ModuleProgressResponse,
    RecordAssessmentRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


def ensure_can_view(user: UserResponse, employee_id: UUID) -> None:
    """Employees read their own progress; managers and above read anyone's."""
    if not can_view_employee_progress(user.role, str(user.id), str(employee_id)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own progress",
        )


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll employee in course",
)
async def enroll(
    data: EnrollRequest,
    progress_service: ProgressServiceDep,
    user: HRUser,
) -> EnrollmentResponse:
    try:
        enrollment = await progress_service.enroll(
            data.employee_id, data.course_id, assigned_by=user.id, notify=data.notify
        )
    except DomainErrors as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.post(
    "/bulk",
    response_model=BulkEnrollResponse,
    summary="Enroll many employees in one course",
)
async def bulk_enroll(
    data: BulkEnrollRequest,
    progress_service: ProgressServiceDep,
    user: HRUser,
) -> BulkEnrollResponse:
    try:
        return await progress_service.bulk_enroll(
            data.course_id, data.employee_ids, assigned_by=user.id, notify=data.notify
        )
    except DomainErrors as e:
        raise handle_domain_error(e) from e


@enrollments_router.delete(
    "/{employee_id}/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unenroll employee from course",
)
async def unenroll(
    employee_id: UUID,
    course_id: UUID,
    progress_service: ProgressServiceDep,
    _: HRUser,
) -> None:
    try:
        await progress_service.unenroll(employee_id, course_id)
    except DomainErrors as e:
        raise handle_domain_error(e) from e


@enrollments_router.get(
    "/employee/{employee_id}",
    response_model=list[EnrollmentResponse],
    summary="Enrollments of an employee",
)
async def list_employee_enrollments(
    employee_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> list[EnrollmentResponse]:
    ensure_can_view(user, employee_id)
    enrollments = await progress_service.list_employee_enrollments(employee_id)
    return [EnrollmentResponse.from_entity(e) for e in enrollments]


@enrollments_router.get(
    "/course/{course_id}",
    response_model=list[EnrollmentResponse],
    summary="Enrollments of a course",
)
async def list_course_enrollments(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    _: ManagerUser,
) -> list[EnrollmentResponse]:
    enrollments = await progress_service.list_course_enrollments(course_id)
    return [EnrollmentResponse.from_entity(e) for e in enrollments]


# ==============================================================================
# Progress Recording Endpoints
# ==============================================================================


@router.put(
    "/modules/complete",
    response_model=ModuleProgressResponse,
    summary="Mark a module done or not done",
)
async def mark_module(
    data: MarkModuleRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ModuleProgressResponse:
    try:
        progress = await progress_service.mark_module(
            user.id, data.course_id, data.module_id, completed=data.completed
        )
    except DomainErrors as e:
        raise handle_domain_error(e) from e
    return ModuleProgressResponse.from_entity(progress)


@router.post(
    "/assessments",
    response_model=AssessmentResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an assessment attempt",
)
async def record_assessment(
    data: RecordAssessmentRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> AssessmentResultResponse:
    try:
        result, passed = await progress_service.record_assessment_result(user.id, data)
    except DomainErrors as e:
        raise handle_domain_error(e) from e
    return AssessmentResultResponse.from_entity(result, passed)


# ==============================================================================
# Progress Query Endpoints
# ==============================================================================


@router.get(
    "/{employee_id}/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Progress of an employee in a course",
)
async def get_course_progress(
    employee_id: UUID,
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    ensure_can_view(user, employee_id)
    try:
        return await progress_service.get_course_progress(employee_id, course_id)
    except DomainErrors as e:
        raise handle_domain_error(e) from e


@router.get(
    "/{employee_id}/overview",
    response_model=EmployeeProgressOverview,
    summary="Progress of an employee across all courses",
)
async def get_employee_overview(
    employee_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EmployeeProgressOverview:
    ensure_can_view(user, employee_id)
    return await progress_service.get_employee_overview(employee_id)


@router.post(
    "/courses/{course_id}/complete",
    response_model=EnrollmentResponse,
    summary="Mark course complete",
)
async def mark_course_complete(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Complete the current employee's enrollment.

    Returns 409 while assessments (or, for courses without assessments,
    modules) are outstanding. Completing twice returns the stored enrollment.
    """
    try:
        enrollment = await progress_service.mark_course_complete(user.id, course_id)
    except DomainErrors as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)
