"""Project service layer.

Business logic for:
- Project CRUD
- Set-based assignment of employees to a project
- The assignment lifecycle: start, submit, evaluate
- The evaluation backlog per project
"""

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.auth.permissions import UserRole, has_permission
from learnhub.projects.models import (
    AssignmentStatus,
    Project,
    ProjectAssignment,
    ProjectEvaluation,
    ProjectSubmission,
    can_transition,
)
from learnhub.projects.schemas import (
    AssignProjectResponse,
    AssignmentResponse,
    CreateProjectRequest,
    EvaluateProjectRequest,
    EvaluationStatusResponse,
    SubmitProjectRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.email.service import EmailService
    from learnhub.employees.models import Employee
    from learnhub.employees.service import EmployeeService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProjectError(Exception):
    """Base project error."""

    def __init__(self, message: str, code: str = "project_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ProjectNotFoundError(ProjectError):
    def __init__(self, message: str = "Project not found"):
        super().__init__(message, "project_not_found")


class AssignmentNotFoundError(ProjectError):
    def __init__(self, message: str = "Project is not assigned to this employee"):
        super().__init__(message, "assignment_not_found")


class SubmissionNotFoundError(ProjectError):
    def __init__(self, message: str = "No submission for this assignment"):
        super().__init__(message, "submission_not_found")


class InvalidAssignmentTransitionError(ProjectError):
    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move assignment from {current} to {target}",
            "invalid_assignment_transition",
        )


def summarize_evaluation_status(
    project: Project,
    assignments: list[ProjectAssignment],
    now: datetime | None = None,
) -> EvaluationStatusResponse:
    """Count submitted and evaluated work and age the review backlog."""
    now = now or datetime.now(UTC)
    submitted = [
        a
        for a in assignments
        if a.status in (AssignmentStatus.SUBMITTED.value, AssignmentStatus.EVALUATED.value)
    ]
    pending = [a for a in submitted if a.status == AssignmentStatus.SUBMITTED.value]
    pending_dates = [a.submitted_at for a in pending if a.submitted_at]
    oldest_pending_days = (now - min(pending_dates)).days if pending_dates else None
    return EvaluationStatusResponse(
        project_id=project.id,
        project_name=project.project_name,
        total_assignments=len(assignments),
        submitted=len(submitted),
        evaluated=len(submitted) - len(pending),
        pending_evaluations=len(pending),
        oldest_pending_days=oldest_pending_days,
    )


# ==============================================================================
# Project Service
# ==============================================================================


class ProjectService:
    """Service for projects and their assignments."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        employee_service: "EmployeeService | None" = None,
        email_service: "EmailService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.employee_service = employee_service
        self.email_service = email_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Projects
        self._get_project = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.projects WHERE id = ?"
        )
        self._list_projects = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.projects LIMIT ?"
        )
        self._upsert_project = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.projects
            (id, project_name, project_description, project_type, duration_days,
             instructions, deliverables, created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_project = self.session.prepare(
            f"DELETE FROM {self.keyspace}.projects WHERE id = ?"
        )

        # Assignments (dual tables)
        self._get_assignment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.project_assignments
            WHERE project_id = ? AND assignee_id = ?
        """)
        self._get_project_assignments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.project_assignments WHERE project_id = ?"
        )
        self._get_assignee_assignments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.project_assignments_by_assignee
            WHERE assignee_id = ?
        """)
        self._upsert_assignment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.project_assignments
            (project_id, assignee_id, status, assigned_by, assigned_at,
             started_at, submitted_at, evaluated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._upsert_assignment_by_assignee = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.project_assignments_by_assignee
            (assignee_id, project_id, status, assigned_by, assigned_at,
             started_at, submitted_at, evaluated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_assignment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.project_assignments
            WHERE project_id = ? AND assignee_id = ?
        """)
        self._delete_assignment_by_assignee = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.project_assignments_by_assignee
            WHERE assignee_id = ? AND project_id = ?
        """)
        self._delete_project_assignments = self.session.prepare(
            f"DELETE FROM {self.keyspace}.project_assignments WHERE project_id = ?"
        )

        # Submissions and evaluations
        self._get_submission = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.project_submissions
            WHERE project_id = ? AND assignee_id = ?
        """)
        self._insert_submission = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.project_submissions
            (project_id, assignee_id, id, submission_content, file_url, submitted_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._get_evaluation = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.project_evaluations
            WHERE project_id = ? AND assignee_id = ?
        """)
        self._insert_evaluation = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.project_evaluations
            (project_id, assignee_id, id, submission_id, evaluator_id, overall_score,
             technical_score, quality_score, timeline_score, communication_score,
             innovation_score, strengths, areas_for_improvement, evaluated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_project_submissions = self.session.prepare(
            f"DELETE FROM {self.keyspace}.project_submissions WHERE project_id = ?"
        )
        self._delete_project_evaluations = self.session.prepare(
            f"DELETE FROM {self.keyspace}.project_evaluations WHERE project_id = ?"
        )

    # ==========================================================================
    # Projects
    # ==========================================================================

    async def _save_project(self, project: Project) -> None:
        await self.session.aexecute(
            self._upsert_project,
            [
                project.id,
                project.project_name,
                project.project_description,
                project.project_type,
                project.duration_days,
                project.instructions,
                project.deliverables,
                project.created_by,
                project.created_at,
                project.updated_at,
            ],
        )

    async def create_project(self, data: CreateProjectRequest, created_by: UUID) -> Project:
        project = Project(
            project_name=data.project_name,
            project_description=data.project_description,
            project_type=data.project_type.value,
            duration_days=data.duration_days,
            instructions=data.instructions,
            deliverables=data.deliverables,
            created_by=created_by,
        )
        await self._save_project(project)
        logger.info(
            "project_created",
            project_id=str(project.id),
            project_type=project.project_type,
            created_by=str(created_by),
        )
        return project

    async def get_project(self, project_id: UUID) -> Project | None:
        result = await self.session.aexecute(self._get_project, [project_id])
        row = result.one()
        return Project.from_row(row) if row else None

    async def require_project(self, project_id: UUID) -> Project:
        project = await self.get_project(project_id)
        if not project:
            raise ProjectNotFoundError
        return project

    async def list_projects(self, limit: int = 100) -> list[Project]:
        """Projects, newest first."""
        rows = await self.session.aexecute(self._list_projects, [limit])
        projects = [Project.from_row(row) for row in rows]
        projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects

    async def delete_project(self, project_id: UUID) -> None:
        """Delete a project together with its assignments and their work."""
        await self.require_project(project_id)
        assignments = await self.list_project_assignments(project_id)
        await asyncio.gather(
            *(
                self.session.aexecute(
                    self._delete_assignment_by_assignee, [a.assignee_id, project_id]
                )
                for a in assignments
            )
        )
        for stmt in (
            self._delete_project_assignments,
            self._delete_project_submissions,
            self._delete_project_evaluations,
            self._delete_project,
        ):
            await self.session.aexecute(stmt, [project_id])
        logger.info(
            "project_deleted",
            project_id=str(project_id),
            assignments_removed=len(assignments),
        )

    # ==========================================================================
    # Assignments
    # ==========================================================================

    async def _save_assignment(self, assignment: ProjectAssignment) -> None:
        values = [
            assignment.status,
            assignment.assigned_by,
            assignment.assigned_at,
            assignment.started_at,
            assignment.submitted_at,
            assignment.evaluated_at,
        ]
        await self.session.aexecute(
            self._upsert_assignment,
            [assignment.project_id, assignment.assignee_id, *values],
        )
        await self.session.aexecute(
            self._upsert_assignment_by_assignee,
            [assignment.assignee_id, assignment.project_id, *values],
        )

    async def _remove_assignment(self, project_id: UUID, assignee_id: UUID) -> None:
        await self.session.aexecute(self._delete_assignment, [project_id, assignee_id])
        await self.session.aexecute(
            self._delete_assignment_by_assignee, [assignee_id, project_id]
        )

    async def get_assignment(
        self, project_id: UUID, assignee_id: UUID
    ) -> ProjectAssignment | None:
        result = await self.session.aexecute(
            self._get_assignment, [project_id, assignee_id]
        )
        row = result.one()
        return ProjectAssignment.from_row(row) if row else None

    async def require_assignment(
        self, project_id: UUID, assignee_id: UUID
    ) -> ProjectAssignment:
        assignment = await self.get_assignment(project_id, assignee_id)
        if not assignment:
            raise AssignmentNotFoundError
        return assignment

    async def list_project_assignments(self, project_id: UUID) -> list[ProjectAssignment]:
        rows = await self.session.aexecute(self._get_project_assignments, [project_id])
        return [ProjectAssignment.from_row(row) for row in rows]

    async def list_assignee_assignments(
        self, assignee_id: UUID
    ) -> list[tuple[ProjectAssignment, Project]]:
        """An employee's assignments with their projects, newest first.

        Assignments whose project no longer exists are skipped.
        """
        rows = await self.session.aexecute(self._get_assignee_assignments, [assignee_id])
        assignments = [ProjectAssignment.from_row(row) for row in rows]
        projects = await asyncio.gather(
            *(self.get_project(a.project_id) for a in assignments)
        )
        pairs = [(a, p) for a, p in zip(assignments, projects, strict=True) if p]
        pairs.sort(key=lambda pair: pair[0].assigned_at, reverse=True)
        return pairs

    async def assign_project(
        self,
        project_id: UUID,
        assignee_ids: list[UUID],
        assigned_by: UUID,
    ) -> AssignProjectResponse:
        """Make ``assignee_ids`` the set of employees holding the project.

        New ids are assigned, missing ones are unassigned. Employees who have
        already submitted keep their assignment and are reported in
        ``kept_locked``.
        """
        await self.require_project(project_id)
        selected = list(dict.fromkeys(assignee_ids))
        current = {a.assignee_id: a for a in await self.list_project_assignments(project_id)}

        added = [i for i in selected if i not in current]
        if self.employee_service is not None:
            for assignee_id in added:
                await self.employee_service.require_employee(assignee_id)

        for assignee_id in added:
            assignment = ProjectAssignment(
                project_id=project_id,
                assignee_id=assignee_id,
                assigned_by=assigned_by,
            )
            await self._save_assignment(assignment)
            current[assignee_id] = assignment

        removed: list[UUID] = []
        kept_locked: list[UUID] = []
        for assignee_id, assignment in list(current.items()):
            if assignee_id in selected:
                continue
            if assignment.is_locked:
                kept_locked.append(assignee_id)
                continue
            await self._remove_assignment(project_id, assignee_id)
            del current[assignee_id]
            removed.append(assignee_id)

        logger.info(
            "project_assignments_updated",
            project_id=str(project_id),
            added=len(added),
            removed=len(removed),
            kept_locked=len(kept_locked),
            assigned_by=str(assigned_by),
        )
        return AssignProjectResponse(
            added=added,
            removed=removed,
            kept_locked=kept_locked,
            assignments=[AssignmentResponse.from_entity(a) for a in current.values()],
        )

    def _transition(
        self, assignment: ProjectAssignment, target: AssignmentStatus
    ) -> None:
        if not can_transition(assignment.status, target):
            raise InvalidAssignmentTransitionError(assignment.status, target.value)
        now = datetime.now(UTC)
        assignment.status = target.value
        if target is AssignmentStatus.STARTED:
            assignment.started_at = now
        elif target is AssignmentStatus.SUBMITTED:
            assignment.submitted_at = now
        elif target is AssignmentStatus.EVALUATED:
            assignment.evaluated_at = now

    async def start_assignment(
        self, project_id: UUID, assignee_id: UUID
    ) -> ProjectAssignment:
        assignment = await self.require_assignment(project_id, assignee_id)
        self._transition(assignment, AssignmentStatus.STARTED)
        await self._save_assignment(assignment)
        logger.info(
            "project_started", project_id=str(project_id), assignee_id=str(assignee_id)
        )
        return assignment

    # ==========================================================================
    # Submissions and evaluations
    # ==========================================================================

    async def submit(
        self, project_id: UUID, assignee_id: UUID, data: SubmitProjectRequest
    ) -> ProjectSubmission:
        """Hand in work for a started assignment and notify reviewers."""
        project, assignment = await asyncio.gather(
            self.require_project(project_id),
            self.require_assignment(project_id, assignee_id),
        )
        self._transition(assignment, AssignmentStatus.SUBMITTED)

        submission = ProjectSubmission(
            project_id=project_id,
            assignee_id=assignee_id,
            submission_content=data.submission_content,
            file_url=data.file_url,
            submitted_at=assignment.submitted_at,
        )
        await self.session.aexecute(
            self._insert_submission,
            [
                submission.project_id,
                submission.assignee_id,
                submission.id,
                submission.submission_content,
                submission.file_url,
                submission.submitted_at,
            ],
        )
        await self._save_assignment(assignment)
        logger.info(
            "project_submitted",
            project_id=str(project_id),
            assignee_id=str(assignee_id),
            submission_id=str(submission.id),
        )

        await self._notify_submission(project, assignee_id)
        return submission

    async def get_submission(
        self, project_id: UUID, assignee_id: UUID
    ) -> ProjectSubmission | None:
        result = await self.session.aexecute(
            self._get_submission, [project_id, assignee_id]
        )
        row = result.one()
        return ProjectSubmission.from_row(row) if row else None

    async def evaluate(
        self,
        project_id: UUID,
        assignee_id: UUID,
        data: EvaluateProjectRequest,
        evaluator_id: UUID,
    ) -> ProjectEvaluation:
        assignment = await self.require_assignment(project_id, assignee_id)
        self._transition(assignment, AssignmentStatus.EVALUATED)
        submission = await self.get_submission(project_id, assignee_id)
        if submission is None:
            raise SubmissionNotFoundError

        evaluation = ProjectEvaluation(
            project_id=project_id,
            assignee_id=assignee_id,
            submission_id=submission.id,
            evaluator_id=evaluator_id,
            evaluated_at=assignment.evaluated_at,
            **data.model_dump(),
        )
        await self.session.aexecute(
            self._insert_evaluation,
            [
                evaluation.project_id,
                evaluation.assignee_id,
                evaluation.id,
                evaluation.submission_id,
                evaluation.evaluator_id,
                evaluation.overall_score,
                evaluation.technical_score,
                evaluation.quality_score,
                evaluation.timeline_score,
                evaluation.communication_score,
                evaluation.innovation_score,
                evaluation.strengths,
                evaluation.areas_for_improvement,
                evaluation.evaluated_at,
            ],
        )
        await self._save_assignment(assignment)
        logger.info(
            "project_evaluated",
            project_id=str(project_id),
            assignee_id=str(assignee_id),
            evaluator_id=str(evaluator_id),
            overall_score=evaluation.overall_score,
        )
        return evaluation

    async def get_evaluation(
        self, project_id: UUID, assignee_id: UUID
    ) -> ProjectEvaluation | None:
        result = await self.session.aexecute(
            self._get_evaluation, [project_id, assignee_id]
        )
        row = result.one()
        return ProjectEvaluation.from_row(row) if row else None

    async def evaluation_status(self, project_id: UUID) -> EvaluationStatusResponse:
        project = await self.require_project(project_id)
        assignments = await self.list_project_assignments(project_id)
        return summarize_evaluation_status(project, assignments)

    async def evaluation_overview(self, limit: int = 100) -> list[EvaluationStatusResponse]:
        """Backlog of every project, most pending reviews first."""
        projects = await self.list_projects(limit=limit)
        all_assignments = await asyncio.gather(
            *(self.list_project_assignments(p.id) for p in projects)
        )
        statuses = [
            summarize_evaluation_status(project, assignments)
            for project, assignments in zip(projects, all_assignments, strict=True)
        ]
        statuses.sort(key=lambda s: (-s.pending_evaluations, -(s.oldest_pending_days or 0)))
        return statuses

    # ==========================================================================
    # Notifications
    # ==========================================================================

    @staticmethod
    async def _reviewers_for(
        employee_service: "EmployeeService", trainee: "Employee"
    ) -> list["Employee"]:
        """HR staff plus the trainee's manager, one entry per address."""
        employees = await employee_service.list_employees(limit=1000)
        reviewers = [e for e in employees if has_permission(e.role, UserRole.HR)]
        if trainee.manager_id:
            manager = await employee_service.get_employee(trainee.manager_id)
            if manager is not None:
                reviewers.append(manager)
        unique: dict[str, "Employee"] = {}
        for reviewer in reviewers:
            if reviewer.id != trainee.id:
                unique.setdefault(reviewer.email, reviewer)
        return list(unique.values())

    async def _notify_submission(self, project: Project, assignee_id: UUID) -> None:
        if self.email_service is None or self.employee_service is None:
            return
        trainee = await self.employee_service.get_employee(assignee_id)
        if trainee is None:
            return
        for reviewer in await self._reviewers_for(self.employee_service, trainee):
            result = await self.email_service.send_project_submitted(
                to=reviewer.email,
                reviewer_name=reviewer.full_name,
                trainee_name=trainee.full_name,
                project_id=str(project.id),
                project_name=project.project_name,
            )
            if not result.success:
                logger.warning(
                    "project_submitted_email_failed",
                    project_id=str(project.id),
                    reviewer_id=str(reviewer.id),
                    error=result.error,
                )
