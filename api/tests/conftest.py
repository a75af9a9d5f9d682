"""Shared fixtures: in-memory stores standing in for Cassandra."""

import copy
from collections.abc import Iterator
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from src.courses.models import Course, CourseModule, ModuleResource
from src.progress.models import (
    Certificate,
    Enrollment,
    ModuleProgress,
    ResourceProgress,
)
from src.progress.service import ProgressService
from src.quizzes.models import Quiz, QuizAnswer, QuizQuestion, QuizSubmission
from src.quizzes.service import QuizService


# ==============================================================================
# In-memory Catalog
# ==============================================================================


class InMemoryCatalog:
    """Course catalog with helpers to build fixtures."""

    def __init__(self):
        self.courses: dict[UUID, Course] = {}
        self.modules: dict[UUID, CourseModule] = {}
        self.resources: dict[UUID, ModuleResource] = {}
        self.assignments: dict[UUID, int] = {}
        self.submissions: dict[tuple[UUID, UUID], int] = {}

    def add_course(
        self, title: str = "Pharmacology 101", instructor_id: UUID | None = None
    ) -> Course:
        course = Course(
            course_id=uuid4(), title=title, instructor_id=instructor_id or uuid4()
        )
        self.courses[course.course_id] = course
        return course

    def add_module(
        self,
        course: Course,
        title: str = "Module",
        position: int = 0,
        is_published: bool = True,
    ) -> CourseModule:
        module = CourseModule(
            module_id=uuid4(),
            course_id=course.course_id,
            title=title,
            position=position,
            is_published=is_published,
        )
        self.modules[module.module_id] = module
        return module

    def add_resource(
        self,
        module: CourseModule,
        title: str = "Reading",
        is_required: bool = True,
        position: int = 0,
    ) -> ModuleResource:
        resource = ModuleResource(
            resource_id=uuid4(),
            module_id=module.module_id,
            title=title,
            is_required=is_required,
            position=position,
        )
        self.resources[resource.resource_id] = resource
        return resource

    async def get_course(self, course_id: UUID) -> Course | None:
        return self.courses.get(course_id)

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        return self.modules.get(module_id)

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        modules = [m for m in self.modules.values() if m.course_id == course_id]
        return sorted(modules, key=lambda m: m.position)

    async def list_published_modules(self, course_id: UUID) -> list[CourseModule]:
        return [m for m in await self.list_modules(course_id) if m.is_published]

    async def get_resource(self, resource_id: UUID) -> ModuleResource | None:
        return self.resources.get(resource_id)

    async def list_resources(self, module_id: UUID) -> list[ModuleResource]:
        resources = [r for r in self.resources.values() if r.module_id == module_id]
        return sorted(resources, key=lambda r: r.position)

    async def list_required_resources(self, module_id: UUID) -> list[ModuleResource]:
        return [r for r in await self.list_resources(module_id) if r.is_required]

    async def count_assignments(self, course_id: UUID) -> int:
        return self.assignments.get(course_id, 0)

    async def count_user_submissions(self, user_id: UUID, course_id: UUID) -> int:
        return self.submissions.get((user_id, course_id), 0)


# ==============================================================================
# In-memory Progress Stores
# ==============================================================================


class InMemoryProgressStore:
    def __init__(self):
        self.enrollments: dict[tuple[UUID, UUID], Enrollment] = {}
        self.resource_progress: dict[tuple[UUID, UUID, UUID], ResourceProgress] = {}
        self.module_progress: dict[tuple[UUID, UUID, UUID], ModuleProgress] = {}
        self.certificates: dict[tuple[UUID, UUID], Certificate] = {}

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        return copy.copy(self.enrollments.get((user_id, course_id)))

    async def list_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        return [
            copy.copy(e) for (uid, _), e in self.enrollments.items() if uid == user_id
        ]

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        return [
            copy.copy(e) for (_, cid), e in self.enrollments.items() if cid == course_id
        ]

    async def create_enrollment(self, enrollment: Enrollment) -> bool:
        key = (enrollment.user_id, enrollment.course_id)
        if key in self.enrollments:
            return False
        self.enrollments[key] = copy.copy(enrollment)
        return True

    async def delete_enrollment(self, user_id: UUID, course_id: UUID) -> None:
        self.enrollments.pop((user_id, course_id), None)

    async def get_resource_progress(
        self, user_id: UUID, module_id: UUID, resource_id: UUID
    ) -> ResourceProgress | None:
        return copy.copy(self.resource_progress.get((user_id, module_id, resource_id)))

    async def list_resource_progress(
        self, user_id: UUID, module_id: UUID
    ) -> list[ResourceProgress]:
        return [
            copy.copy(p)
            for (uid, mid, _), p in self.resource_progress.items()
            if uid == user_id and mid == module_id
        ]

    async def save_resource_progress(self, progress: ResourceProgress) -> None:
        key = (progress.user_id, progress.module_id, progress.resource_id)
        self.resource_progress[key] = copy.copy(progress)

    async def get_module_progress(
        self, user_id: UUID, course_id: UUID, module_id: UUID
    ) -> ModuleProgress | None:
        return copy.copy(self.module_progress.get((user_id, course_id, module_id)))

    async def list_module_progress(
        self, user_id: UUID, course_id: UUID
    ) -> list[ModuleProgress]:
        return [
            copy.copy(p)
            for (uid, cid, _), p in self.module_progress.items()
            if uid == user_id and cid == course_id
        ]

    async def get_certificate(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None:
        return self.certificates.get((user_id, course_id))


class InMemoryDerivedStore:
    """Conditional writes over the shared progress state."""

    def __init__(self, store: InMemoryProgressStore):
        self.store = store
        self.claims: set[tuple[UUID, str]] = set()

    async def claim_module_completion(
        self, user_id: UUID, course_id: UUID, module_id: UUID, now: datetime
    ) -> bool:
        key = (user_id, course_id, module_id)
        existing = self.store.module_progress.get(key)
        if existing is not None and existing.is_completed:
            return False
        self.store.module_progress[key] = ModuleProgress(
            user_id=user_id,
            course_id=course_id,
            module_id=module_id,
            is_completed=True,
            completed_at=now,
            last_accessed_at=now,
        )
        return True

    async def touch_module(
        self, user_id: UUID, course_id: UUID, module_id: UUID, now: datetime
    ) -> None:
        key = (user_id, course_id, module_id)
        existing = self.store.module_progress.get(key)
        if existing is None:
            self.store.module_progress[key] = ModuleProgress(
                user_id=user_id,
                course_id=course_id,
                module_id=module_id,
                last_accessed_at=now,
            )
        else:
            existing.last_accessed_at = now

    async def set_enrollment_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        progress: int,
        completed_at: datetime | None,
    ) -> bool:
        enrollment = self.store.enrollments.get((user_id, course_id))
        if enrollment is None:
            return False
        enrollment.progress = progress
        enrollment.completed_at = completed_at
        return True

    async def claim_achievement(
        self, user_id: UUID, achievement_key: str, now: datetime
    ) -> bool:
        if (user_id, achievement_key) in self.claims:
            return False
        self.claims.add((user_id, achievement_key))
        return True


# ==============================================================================
# In-memory Quiz Store
# ==============================================================================


class InMemoryQuizStore:
    def __init__(self):
        self.quizzes: dict[UUID, Quiz] = {}
        self.questions: dict[UUID, list[QuizQuestion]] = {}
        self.submissions: dict[UUID, QuizSubmission] = {}
        self.answers: dict[tuple[UUID, UUID], QuizAnswer] = {}

    def add_quiz(self, course_id: UUID, **kwargs) -> Quiz:
        kwargs.setdefault("title", "Dosage Quiz")
        kwargs.setdefault("is_published", True)
        quiz = Quiz(quiz_id=uuid4(), course_id=course_id, **kwargs)
        self.quizzes[quiz.quiz_id] = quiz
        self.questions[quiz.quiz_id] = []
        return quiz

    def add_question(
        self,
        quiz: Quiz,
        question_type: str = "multiple_choice",
        points: Decimal = Decimal(1),
        correct_answer: str | None = "A",
        **kwargs,
    ) -> QuizQuestion:
        questions = self.questions[quiz.quiz_id]
        question = QuizQuestion(
            question_id=uuid4(),
            quiz_id=quiz.quiz_id,
            question_type=question_type,
            question_text=kwargs.pop("question_text", "Which one?"),
            points=points,
            correct_answer=correct_answer,
            position=len(questions),
            **kwargs,
        )
        questions.append(question)
        return question

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        return self.quizzes.get(quiz_id)

    async def list_questions(self, quiz_id: UUID) -> list[QuizQuestion]:
        return list(self.questions.get(quiz_id, []))

    async def get_submission(self, submission_id: UUID) -> QuizSubmission | None:
        return copy.copy(self.submissions.get(submission_id))

    async def list_attempts(self, user_id: UUID, quiz_id: UUID) -> list[QuizSubmission]:
        attempts = [
            copy.copy(s)
            for s in self.submissions.values()
            if s.user_id == user_id and s.quiz_id == quiz_id
        ]
        return sorted(attempts, key=lambda s: s.attempt_number, reverse=True)

    async def list_quiz_submissions(self, quiz_id: UUID) -> list[QuizSubmission]:
        return [copy.copy(s) for s in self.submissions.values() if s.quiz_id == quiz_id]

    async def create_submission(self, submission: QuizSubmission) -> bool:
        for existing in self.submissions.values():
            if (
                existing.user_id == submission.user_id
                and existing.quiz_id == submission.quiz_id
                and existing.attempt_number == submission.attempt_number
            ):
                return False
        self.submissions[submission.submission_id] = copy.copy(submission)
        return True

    async def finalize_submission(self, submission: QuizSubmission) -> bool:
        stored = self.submissions[submission.submission_id]
        if stored.submitted_at is not None:
            return False
        self.submissions[submission.submission_id] = copy.copy(submission)
        return True

    async def update_score(self, submission: QuizSubmission) -> None:
        stored = self.submissions[submission.submission_id]
        stored.score = submission.score
        stored.is_passed = submission.is_passed

    async def list_answers(self, submission_id: UUID) -> list[QuizAnswer]:
        return [
            copy.copy(a)
            for (sid, _), a in self.answers.items()
            if sid == submission_id
        ]

    async def get_answer(
        self, submission_id: UUID, question_id: UUID
    ) -> QuizAnswer | None:
        return copy.copy(self.answers.get((submission_id, question_id)))

    async def save_answer(self, answer: QuizAnswer) -> None:
        self.answers[(answer.submission_id, answer.question_id)] = copy.copy(answer)


class RecordingNotifier:
    """Collects dispatched achievement events."""

    def __init__(self):
        self.events: list = []

    async def dispatch(self, events: list) -> None:
        self.events.extend(events)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog()


@pytest.fixture
def progress_store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def derived_store(progress_store: InMemoryProgressStore) -> InMemoryDerivedStore:
    return InMemoryDerivedStore(progress_store)


@pytest.fixture
def quiz_store() -> InMemoryQuizStore:
    return InMemoryQuizStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def progress_service(catalog, progress_store, derived_store, notifier) -> ProgressService:
    return ProgressService(
        catalog=catalog,
        store=progress_store,
        derived=derived_store,
        notifier=notifier,
    )


@pytest.fixture
def quiz_service(catalog, progress_store, quiz_store, notifier) -> QuizService:
    return QuizService(
        catalog=catalog,
        progress_store=progress_store,
        quiz_store=quiz_store,
        notifier=notifier,
    )


@pytest.fixture
def enroll(progress_store: InMemoryProgressStore):
    """Enroll a user directly in the store."""

    def _enroll(user_id: UUID, course: Course) -> Enrollment:
        enrollment = Enrollment(course_id=course.course_id, user_id=user_id)
        progress_store.enrollments[(user_id, course.course_id)] = enrollment
        return enrollment

    return _enroll


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client without lifespan; no Cassandra or Redis is contacted."""
    from src.main import app

    yield TestClient(app)
    app.dependency_overrides.clear()
