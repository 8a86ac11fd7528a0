"""Course progress aggregation.

Pure functions that turn module-progress records and assessment results
into per-category counts, an overall percentage and the mark-complete
decision. Nothing here performs I/O or raises on bad numeric input: missing
scores count as 0 and missing passing scores as the default of 70.

Inputs are duck-typed. Anything exposing the attributes used below works,
which lets the service pass entities straight from Cassandra rows and lets
tests pass ``SimpleNamespace`` objects.

- modules: ``id``, ``course_id``
- module progress records: ``course_id``, ``module_id``, ``completed``
- assessment templates: ``id``, ``course_id``
- assessment results: ``course_id``, ``assessment_template_id``,
  ``status``, ``percentage``, ``passing_score``
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from learnhub.courses.models import (
    DEFAULT_MINIMUM_PASSING_PERCENTAGE,
    DEFAULT_PASSING_SCORE,
    CompletionRule,
)


PASSING_STATUSES = frozenset({"completed", "passed"})


class ProgressFormula(str, Enum):
    """How module and assessment progress combine into one number.

    ITEM_COUNT weights each category by its number of items. CATEGORY_AVERAGE
    is the plain mean of the two category percentages, as shown on course
    cards.
    """

    ITEM_COUNT = "item_count"
    CATEGORY_AVERAGE = "category_average"


@dataclass(frozen=True)
class ProgressCounts:
    completed: int
    total: int
    percentage: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


EMPTY_COUNTS = ProgressCounts(completed=0, total=0, percentage=0)


@dataclass(frozen=True)
class CourseProgress:
    """Everything the progress views need for one employee and one course."""

    course_id: UUID
    modules: ProgressCounts
    assessments: ProgressCounts
    overall: int
    can_mark_complete: bool
    completion_rule: str
    completion_rule_text: str


def clamp_percentage(value: int) -> int:
    return max(0, min(100, value))


def round_percentage(numerator: float | Decimal, denominator: float | Decimal) -> int:
    """``numerator / denominator * 100`` rounded half up and clamped to [0, 100].

    Half-up rounding keeps 66.5 -> 67 instead of banker's rounding to 66.
    A zero (or negative) denominator yields 0.
    """
    if not denominator or denominator <= 0:
        return 0
    try:
        ratio = Decimal(str(numerator)) * 100 / Decimal(str(denominator))
    except (InvalidOperation, ValueError):
        return 0
    return clamp_percentage(int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP)))


def _to_number(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _same_id(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def is_passing_result(
    result: Any, default_passing_score: int = DEFAULT_PASSING_SCORE
) -> bool:
    """True when an attempt both finished and met its own passing score."""
    status = str(getattr(result, "status", "") or "").strip().lower()
    if status not in PASSING_STATUSES:
        return False
    score = _to_number(getattr(result, "percentage", None), 0)
    threshold = _to_number(getattr(result, "passing_score", None), default_passing_score)
    return score >= threshold


def module_progress(
    course_id: UUID | str,
    modules: Iterable[Any],
    records: Iterable[Any],
) -> ProgressCounts:
    """Completed modules of a course.

    Each module counts once however many progress records exist for it.
    Records pointing at modules that no longer belong to the course are
    ignored.
    """
    module_ids = {
        str(m.id) for m in modules if _same_id(getattr(m, "course_id", None), course_id)
    }
    completed_ids = {
        str(r.module_id)
        for r in records
        if _same_id(getattr(r, "course_id", None), course_id)
        and getattr(r, "completed", False)
        and str(getattr(r, "module_id", None)) in module_ids
    }
    total = len(module_ids)
    completed = len(completed_ids)
    return ProgressCounts(completed, total, round_percentage(completed, total))


def assessment_progress(
    course_id: UUID | str,
    templates: Iterable[Any],
    results: Iterable[Any],
    default_passing_score: int = DEFAULT_PASSING_SCORE,
) -> ProgressCounts:
    """Passed assessment templates of a course.

    A template is passed when at least one of its attempts passes; attempts
    are never averaged and extra passing attempts add nothing.
    """
    template_ids = {
        str(t.id)
        for t in templates
        if _same_id(getattr(t, "course_id", None), course_id)
    }
    passed_ids: set[str] = set()
    for result in results:
        template_id = getattr(result, "assessment_template_id", None)
        if template_id is None or str(template_id) not in template_ids:
            continue
        if not _same_id(getattr(result, "course_id", None), course_id):
            continue
        if is_passing_result(result, default_passing_score):
            passed_ids.add(str(template_id))

    total = len(template_ids)
    completed = len(passed_ids)
    return ProgressCounts(completed, total, round_percentage(completed, total))


def overall_progress(
    modules: ProgressCounts,
    assessments: ProgressCounts,
    formula: ProgressFormula | str = ProgressFormula.ITEM_COUNT,
) -> int:
    """Combine both categories into a single course percentage."""
    if ProgressFormula(formula) is ProgressFormula.CATEGORY_AVERAGE:
        # An empty category still counts as 0%, halving the other one.
        return round_percentage(modules.percentage + assessments.percentage, 200)

    return round_percentage(
        modules.completed + assessments.completed,
        modules.total + assessments.total,
    )


def can_mark_complete(modules: ProgressCounts, assessments: ProgressCounts) -> bool:
    """Whether the employee may mark the course complete.

    With assessment templates, every template must be passed. The course's
    CompletionRule does not change this. Without templates, every module
    must be done: a course with no templates and 2 of 3 modules completed
    cannot be marked complete, even though it has no assessments to pass.
    A course with no content at all is trivially completable.
    """
    if assessments.total > 0:
        return assessments.completed >= assessments.total
    return modules.completed >= modules.total


def describe_completion_rule(
    rule: CompletionRule | str | None,
    minimum_passing_percentage: int | None = None,
) -> str:
    """Learner-facing text for a completion rule."""
    try:
        parsed = CompletionRule(rule) if rule else None
    except ValueError:
        parsed = None

    if parsed is CompletionRule.PASS_ALL_ASSESSMENTS:
        return "Pass all assessments to complete"
    if parsed is CompletionRule.PASS_MINIMUM_PERCENTAGE:
        threshold = minimum_passing_percentage or DEFAULT_MINIMUM_PASSING_PERCENTAGE
        return f"Pass {threshold}% of assessments"
    if parsed is CompletionRule.PASS_MANDATORY_ONLY:
        return "Pass all mandatory assessments"
    return "Complete all requirements"


def aggregate_course_progress(
    course: Any,
    modules: Iterable[Any],
    records: Iterable[Any],
    templates: Iterable[Any],
    results: Iterable[Any],
    formula: ProgressFormula | str = ProgressFormula.ITEM_COUNT,
    default_passing_score: int = DEFAULT_PASSING_SCORE,
    progress_floor: int | None = None,
) -> CourseProgress:
    """Aggregate progress for one course.

    Args:
        course: Object with ``id``, ``completion_rule`` and
            ``minimum_passing_percentage``
        progress_floor: Lowest overall value to report. Completed enrollments
            pass their stored snapshot so that content added after completion
            does not make a finished course look unfinished.
    """
    course_id = course.id
    module_counts = module_progress(course_id, modules, records)
    assessment_counts = assessment_progress(
        course_id, templates, results, default_passing_score
    )
    overall = overall_progress(module_counts, assessment_counts, formula)
    if progress_floor is not None:
        overall = max(overall, clamp_percentage(int(progress_floor)))

    rule = getattr(course, "completion_rule", None)
    return CourseProgress(
        course_id=course_id,
        modules=module_counts,
        assessments=assessment_counts,
        overall=overall,
        can_mark_complete=can_mark_complete(module_counts, assessment_counts),
        completion_rule=rule or CompletionRule.PASS_ALL_ASSESSMENTS.value,
        completion_rule_text=describe_completion_rule(
            rule, getattr(course, "minimum_passing_percentage", None)
        ),
    )
