"""Course catalogue API endpoints.

Provides routes for:
- Courses: CRUD with completion rule
- Course modules: CRUD and reordering
- Assessment templates: CRUD

Reads are open to any authenticated employee; writes need HR or above.
"""

import asyncio
from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import CurrentUser, HRUser
from learnhub.auth.permissions import UserRole, has_permission
from learnhub.courses.dependencies import CourseServiceDep, handle_course_error
from learnhub.courses.models import CourseStatus
from learnhub.courses.schemas import (
    AssessmentTemplateResponse,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CreateAssessmentTemplateRequest,
    CreateCourseRequest,
    CreateModuleRequest,
    ModuleResponse,
    ReorderModulesRequest,
    UpdateAssessmentTemplateRequest,
    UpdateCourseRequest,
    UpdateModuleRequest,
)
from learnhub.courses.service import CourseError
from learnhub.progress.aggregator import describe_completion_rule


router = APIRouter(prefix="/v1/courses", tags=["courses"])


# ==============================================================================
# Courses
# ==============================================================================


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    user: HRUser,
) -> CourseResponse:
    course = await course_service.create_course(data, user.id)
    return CourseResponse.from_entity(course)


@router.get("", response_model=CourseListResponse, summary="List courses")
async def list_courses(
    course_service: CourseServiceDep,
    user: CurrentUser,
    status_filter: CourseStatus | None = None,
    limit: int = 50,
) -> CourseListResponse:
    """List courses.

    Interns and managers only see published courses; HR and admins see all
    courses and may filter by status.
    """
    if not has_permission(user.role, UserRole.HR):
        status_filter = CourseStatus.PUBLISHED
    courses = await course_service.list_courses(status=status_filter, limit=limit)
    items = [CourseResponse.from_entity(c) for c in courses]
    return CourseListResponse(items=items, total=len(items))


@router.get(
    "/{course_id}",
    response_model=CourseDetailResponse,
    summary="Get course with content counts",
)
async def get_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> CourseDetailResponse:
    try:
        course = await course_service.require_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    modules, templates = await asyncio.gather(
        course_service.get_modules(course_id),
        course_service.get_assessment_templates(course_id),
    )
    return CourseDetailResponse(
        **CourseResponse.from_entity(course).model_dump(),
        module_count=len(modules),
        assessment_count=len(templates),
        completion_rule_text=describe_completion_rule(
            course.completion_rule, course.minimum_passing_percentage
        ),
    )


@router.patch("/{course_id}", response_model=CourseResponse, summary="Update course")
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    course_service: CourseServiceDep,
    user: HRUser,
) -> CourseResponse:
    try:
        course = await course_service.update_course(course_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.from_entity(course)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
)
async def delete_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: HRUser,
) -> None:
    try:
        await course_service.delete_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e


# ==============================================================================
# Modules
# ==============================================================================


@router.get(
    "/{course_id}/modules",
    response_model=list[ModuleResponse],
    summary="List course modules in order",
)
async def list_modules(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> list[ModuleResponse]:
    modules = await course_service.get_modules(course_id)
    return [ModuleResponse.from_entity(m) for m in modules]


@router.post(
    "/{course_id}/modules",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add module to course",
)
async def create_module(
    course_id: UUID,
    data: CreateModuleRequest,
    course_service: CourseServiceDep,
    user: HRUser,
) -> ModuleResponse:
    try:
        module = await course_service.create_module(course_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return ModuleResponse.from_entity(module)


@router.put(
    "/{course_id}/modules/reorder",
    response_model=list[ModuleResponse],
    summary="Reorder course modules",
)
async def reorder_modules(
    course_id: UUID,
    data: ReorderModulesRequest,
    course_service: CourseServiceDep,
    user: HRUser,
) -> list[ModuleResponse]:
    try:
        modules = await course_service.reorder_modules(course_id, data.module_ids)
    except CourseError as e:
        raise handle_course_error(e) from e
    return [ModuleResponse.from_entity(m) for m in modules]


@router.patch(
    "/{course_id}/modules/{module_id}",
    response_model=ModuleResponse,
    summary="Update module",
)
async def update_module(
    course_id: UUID,
    module_id: UUID,
    data: UpdateModuleRequest,
    course_service: CourseServiceDep,
    user: HRUser,
) -> ModuleResponse:
    try:
        module = await course_service.update_module(course_id, module_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return ModuleResponse.from_entity(module)


@router.delete(
    "/{course_id}/modules/{module_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete module",
)
async def delete_module(
    course_id: UUID,
    module_id: UUID,
    course_service: CourseServiceDep,
    user: HRUser,
) -> None:
    try:
        await course_service.delete_module(course_id, module_id)
    except CourseError as e:
        raise handle_course_error(e) from e


# ==============================================================================
# Assessment templates
# ==============================================================================


@router.get(
    "/{course_id}/assessments",
    response_model=list[AssessmentTemplateResponse],
    summary="List assessment templates",
)
async def list_assessment_templates(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> list[AssessmentTemplateResponse]:
    templates = await course_service.get_assessment_templates(course_id)
    return [AssessmentTemplateResponse.from_entity(t) for t in templates]


@router.post(
    "/{course_id}/assessments",
    response_model=AssessmentTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create assessment template",
)
async def create_assessment_template(
    course_id: UUID,
    data: CreateAssessmentTemplateRequest,
    course_service: CourseServiceDep,
    user: HRUser,
) -> AssessmentTemplateResponse:
    try:
        template = await course_service.create_assessment_template(course_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return AssessmentTemplateResponse.from_entity(template)


@router.patch(
    "/{course_id}/assessments/{template_id}",
    response_model=AssessmentTemplateResponse,
    summary="Update assessment template",
)
async def update_assessment_template(
    course_id: UUID,
    template_id: UUID,
    data: UpdateAssessmentTemplateRequest,
    course_service: CourseServiceDep,
    user: HRUser,
) -> AssessmentTemplateResponse:
    try:
        template = await course_service.update_assessment_template(
            course_id, template_id, data
        )
    except CourseError as e:
        raise handle_course_error(e) from e
    return AssessmentTemplateResponse.from_entity(template)


@router.delete(
    "/{course_id}/assessments/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete assessment template",
)
async def delete_assessment_template(
    course_id: UUID,
    template_id: UUID,
    course_service: CourseServiceDep,
    user: HRUser,
) -> None:
    try:
        await course_service.delete_assessment_template(course_id, template_id)
    except CourseError as e:
        raise handle_course_error(e) from e
