"""Tests for course progress aggregation."""

from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from learnhub.courses.models import CompletionRule
from learnhub.progress.aggregator import (
    ProgressCounts,
    ProgressFormula,
    aggregate_course_progress,
    assessment_progress,
    can_mark_complete,
    describe_completion_rule,
    is_passing_result,
    module_progress,
    overall_progress,
    round_percentage,
)


COURSE_ID = uuid4()


def _modules(count: int, course_id=COURSE_ID) -> list[SimpleNamespace]:
    return [SimpleNamespace(id=uuid4(), course_id=course_id) for _ in range(count)]


def _templates(count: int, course_id=COURSE_ID) -> list[SimpleNamespace]:
    return [SimpleNamespace(id=uuid4(), course_id=course_id) for _ in range(count)]


def _done(module, completed: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        course_id=module.course_id, module_id=module.id, completed=completed
    )


def _result(template, percentage=None, passing_score=None, status="completed"):
    return SimpleNamespace(
        course_id=template.course_id,
        assessment_template_id=template.id,
        percentage=percentage,
        passing_score=passing_score,
        status=status,
    )


def _course(rule: str = CompletionRule.PASS_ALL_ASSESSMENTS.value, minimum=70):
    return SimpleNamespace(
        id=COURSE_ID, completion_rule=rule, minimum_passing_percentage=minimum
    )


class TestRoundPercentage:
    """Tests for round_percentage."""

    def test_zero_denominator(self) -> None:
        """An empty category is 0%."""
        assert round_percentage(0, 0) == 0
        assert round_percentage(3, 0) == 0

    def test_rounds_half_up(self) -> None:
        """66.666 rounds to 67; 0.5 rounds up."""
        assert round_percentage(4, 6) == 67
        assert round_percentage(1, 200) == 1

    def test_clamped(self) -> None:
        """Percentages never leave [0, 100]."""
        assert round_percentage(5, 4) == 100
        assert round_percentage(-1, 4) == 0


class TestModuleProgress:
    """Tests for module_progress."""

    def test_counts_completed_modules(self) -> None:
        modules = _modules(4)
        records = [_done(m) for m in modules[:3]]
        assert module_progress(COURSE_ID, modules, records) == ProgressCounts(3, 4, 75)

    def test_duplicate_records_count_once(self) -> None:
        """Two records for the same module still count one module."""
        modules = _modules(2)
        records = [_done(modules[0]), _done(modules[0])]
        assert module_progress(COURSE_ID, modules, records).completed == 1

    def test_incomplete_records_ignored(self) -> None:
        modules = _modules(2)
        records = [_done(modules[0], completed=False)]
        assert module_progress(COURSE_ID, modules, records).completed == 0

    def test_other_course_ignored(self) -> None:
        """Modules and records of other courses do not count."""
        other = _modules(3, course_id=uuid4())
        modules = _modules(1)
        records = [_done(m) for m in other]
        counts = module_progress(COURSE_ID, modules + other, records)
        assert counts == ProgressCounts(0, 1, 0)

    def test_records_for_removed_modules_ignored(self) -> None:
        """Progress on a module no longer in the course cannot exceed 100%."""
        modules = _modules(1)
        removed = SimpleNamespace(id=uuid4(), course_id=COURSE_ID)
        records = [_done(modules[0]), _done(removed)]
        assert module_progress(COURSE_ID, modules, records) == ProgressCounts(1, 1, 100)


class TestAssessmentProgress:
    """Tests for assessment_progress."""

    def test_distinct_passed_templates(self) -> None:
        """Two failures then a pass on one template contribute exactly 1."""
        templates = _templates(2)
        results = [
            _result(templates[0], percentage=40),
            _result(templates[0], percentage=55),
            _result(templates[0], percentage=90),
        ]
        assert assessment_progress(COURSE_ID, templates, results) == ProgressCounts(
            1, 2, 50
        )

    def test_extra_passing_attempts_add_nothing(self) -> None:
        templates = _templates(1)
        results = [_result(templates[0], percentage=95) for _ in range(3)]
        assert assessment_progress(COURSE_ID, templates, results).completed == 1

    def test_missing_scores_fail(self) -> None:
        """Undefined percentage and passing score is 0 < 70: failing."""
        templates = _templates(1)
        results = [_result(templates[0])]
        assert assessment_progress(COURSE_ID, templates, results).completed == 0

    def test_result_uses_its_own_passing_score(self) -> None:
        templates = _templates(2)
        results = [
            _result(templates[0], percentage=60, passing_score=50),
            _result(templates[1], percentage=75, passing_score=80),
        ]
        assert assessment_progress(COURSE_ID, templates, results).completed == 1

    def test_status_must_be_finished(self) -> None:
        """In-progress and failed attempts never count, even with a high score."""
        templates = _templates(1)
        results = [
            _result(templates[0], percentage=100, status="in_progress"),
            _result(templates[0], percentage=100, status="failed"),
        ]
        assert assessment_progress(COURSE_ID, templates, results).completed == 0

    def test_results_without_template_ignored(self) -> None:
        templates = _templates(1)
        orphan = SimpleNamespace(
            course_id=COURSE_ID,
            assessment_template_id=None,
            percentage=100,
            passing_score=70,
            status="passed",
        )
        assert assessment_progress(COURSE_ID, templates, [orphan]).completed == 0


class TestIsPassingResult:
    """Tests for is_passing_result."""

    @pytest.mark.parametrize(
        "status,percentage,passing_score,expected",
        [
            ("completed", 70, None, True),
            ("passed", Decimal("69.99"), None, False),
            ("PASSED", 80, 80, True),
            ("completed", "not-a-number", 10, False),
            (None, 100, 10, False),
        ],
    )
    def test_cases(self, status, percentage, passing_score, expected) -> None:
        result = SimpleNamespace(
            status=status, percentage=percentage, passing_score=passing_score
        )
        assert is_passing_result(result) is expected


class TestOverallProgress:
    """Tests for overall_progress."""

    def test_empty_course_is_zero(self) -> None:
        empty = ProgressCounts(0, 0, 0)
        assert overall_progress(empty, empty) == 0
        assert overall_progress(empty, empty, ProgressFormula.CATEGORY_AVERAGE) == 0

    def test_item_count_scenario(self) -> None:
        """(3 + 1) / (4 + 2) = 66.67, rounded to 67."""
        assert overall_progress(ProgressCounts(3, 4, 75), ProgressCounts(1, 2, 50)) == 67

    def test_category_average(self) -> None:
        """The card-level variant averages the two category percentages."""
        modules = ProgressCounts(3, 4, 75)
        assessments = ProgressCounts(1, 2, 50)
        assert overall_progress(modules, assessments, "category_average") == 63

    def test_everything_done_is_100(self) -> None:
        assert overall_progress(ProgressCounts(5, 5, 100), ProgressCounts(2, 2, 100)) == 100


class TestCanMarkComplete:
    """Tests for the completion gate."""

    def test_all_templates_passed(self) -> None:
        assert can_mark_complete(ProgressCounts(0, 3, 0), ProgressCounts(2, 2, 100)) is True

    def test_template_outstanding(self) -> None:
        assert can_mark_complete(ProgressCounts(3, 3, 100), ProgressCounts(1, 2, 50)) is False

    def test_no_templates_all_modules_done(self) -> None:
        assert can_mark_complete(ProgressCounts(2, 2, 100), ProgressCounts(0, 0, 0)) is True

    def test_no_templates_module_outstanding(self) -> None:
        assert can_mark_complete(ProgressCounts(1, 2, 50), ProgressCounts(0, 0, 0)) is False

    def test_no_templates_two_of_three_modules(self) -> None:
        """No assessments to pass does not make an unfinished course completable."""
        assert can_mark_complete(ProgressCounts(2, 3, 67), ProgressCounts(0, 0, 0)) is False

    def test_empty_course(self) -> None:
        empty = ProgressCounts(0, 0, 0)
        assert can_mark_complete(empty, empty) is True


class TestDescribeCompletionRule:
    """Tests for completion rule display text."""

    def test_texts(self) -> None:
        assert describe_completion_rule("pass_all_assessments") == (
            "Pass all assessments to complete"
        )
        assert describe_completion_rule("pass_minimum_percentage", 80) == (
            "Pass 80% of assessments"
        )
        assert describe_completion_rule(CompletionRule.PASS_MANDATORY_ONLY) == (
            "Pass all mandatory assessments"
        )

    def test_unknown_rule(self) -> None:
        assert describe_completion_rule("something_else") == "Complete all requirements"
        assert describe_completion_rule(None) == "Complete all requirements"


class TestAggregateCourseProgress:
    """Tests for aggregate_course_progress."""

    def test_scenario(self) -> None:
        """4 modules (3 done) and 2 templates (1 passed)."""
        modules = _modules(4)
        templates = _templates(2)
        progress = aggregate_course_progress(
            _course(),
            modules,
            [_done(m) for m in modules[:3]],
            templates,
            [_result(templates[0], percentage=88)],
        )
        assert progress.modules == ProgressCounts(3, 4, 75)
        assert progress.assessments == ProgressCounts(1, 2, 50)
        assert progress.overall == 67
        assert progress.can_mark_complete is False
        assert progress.completion_rule == "pass_all_assessments"

    def test_everything_complete(self) -> None:
        modules = _modules(2)
        templates = _templates(2)
        progress = aggregate_course_progress(
            _course(),
            modules,
            [_done(m) for m in modules],
            templates,
            [_result(t, percentage=100) for t in templates],
        )
        assert progress.overall == 100
        assert progress.can_mark_complete is True

    def test_gate_ignores_minimum_percentage_rule(self) -> None:
        """The percentage rule only changes the text, not the gate."""
        templates = _templates(4)
        progress = aggregate_course_progress(
            _course(CompletionRule.PASS_MINIMUM_PERCENTAGE.value, minimum=50),
            [],
            [],
            templates,
            [_result(t, percentage=100) for t in templates[:3]],
        )
        assert progress.assessments.percentage == 75
        assert progress.can_mark_complete is False
        assert progress.completion_rule_text == "Pass 50% of assessments"

    def test_progress_floor(self) -> None:
        """A completed snapshot keeps the displayed value from dropping."""
        modules = _modules(4)
        progress = aggregate_course_progress(
            _course(), modules, [_done(modules[0])], [], [], progress_floor=100
        )
        assert progress.modules.percentage == 25
        assert progress.overall == 100

    def test_never_raises_on_garbage(self) -> None:
        templates = _templates(1)
        garbage = SimpleNamespace(
            course_id=COURSE_ID,
            assessment_template_id=templates[0].id,
            percentage=object(),
            passing_score="abc",
            status=42,
        )
        progress = aggregate_course_progress(_course(), [], [], templates, [garbage])
        assert 0 <= progress.overall <= 100
        assert progress.assessments.completed == 0
