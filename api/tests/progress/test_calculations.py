"""Tests for pure progress calculations."""

from uuid import uuid4

import pytest

from src.progress.certificates import evaluate_certificate_eligibility
from src.progress.evaluator import (
    calculate_course_progress,
    required_resources_completed,
)
from src.progress.models import Enrollment, ResourceProgress


class TestCalculateCourseProgress:
    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [
            (0, 3, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 2, 50),
            (1, 8, 13),
            (3, 3, 100),
        ],
    )
    def test_rounds_half_up(self, completed: int, total: int, expected: int) -> None:
        assert calculate_course_progress(completed, total) == expected

    def test_no_modules_is_undefined(self) -> None:
        assert calculate_course_progress(0, 0) is None


class TestRequiredResourcesCompleted:
    def _progress(self, resource_id, is_completed: bool) -> ResourceProgress:
        return ResourceProgress(
            user_id=uuid4(),
            module_id=uuid4(),
            resource_id=resource_id,
            is_completed=is_completed,
        )

    def test_all_completed(self) -> None:
        a, b = uuid4(), uuid4()
        progress = [self._progress(a, True), self._progress(b, True)]
        assert required_resources_completed([a, b], progress) is True

    def test_one_incomplete(self) -> None:
        a, b = uuid4(), uuid4()
        progress = [self._progress(a, True), self._progress(b, False)]
        assert required_resources_completed([a, b], progress) is False

    def test_missing_row_counts_as_incomplete(self) -> None:
        a, b = uuid4(), uuid4()
        assert required_resources_completed([a, b], [self._progress(a, True)]) is False

    def test_empty_requirements_are_vacuously_met(self) -> None:
        assert required_resources_completed([], []) is True

    def test_optional_progress_is_ignored(self) -> None:
        required = uuid4()
        progress = [self._progress(required, True), self._progress(uuid4(), False)]
        assert required_resources_completed([required], progress) is True


class TestCertificateEligibility:
    def test_full_progress_without_assignments(self) -> None:
        result = evaluate_certificate_eligibility(100, 0, 0)
        assert result.eligible is True
        assert result.requirements.assignments.met is True

    def test_progress_just_below_threshold(self) -> None:
        result = evaluate_certificate_eligibility(99, 0, 0)
        assert result.eligible is False
        assert result.requirements.progress.current == 99
        assert result.requirements.progress.required == 100
        assert result.requirements.progress.met is False

    def test_missing_assignment_submission(self) -> None:
        result = evaluate_certificate_eligibility(100, 2, 1)
        assert result.eligible is False
        assert result.requirements.progress.met is True
        assert result.requirements.assignments.met is False

    def test_all_assignments_submitted(self) -> None:
        assert evaluate_certificate_eligibility(100, 2, 2).eligible is True

    def test_custom_threshold_is_inclusive(self) -> None:
        assert evaluate_certificate_eligibility(80, 0, 0, min_progress=80).eligible


class TestEnrollmentEntity:
    def test_completed_at_hundred(self) -> None:
        enrollment = Enrollment(course_id=uuid4(), user_id=uuid4(), progress=100)
        assert enrollment.is_completed is True

    def test_not_completed_below_hundred(self) -> None:
        enrollment = Enrollment(course_id=uuid4(), user_id=uuid4(), progress=99)
        assert enrollment.is_completed is False
