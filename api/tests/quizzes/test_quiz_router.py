"""HTTP tests for quiz routes."""

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.auth.dependencies import get_current_user
from src.auth.schemas import CurrentUserResponse


@pytest.fixture
def caller():
    """Mutable identity used by the overridden auth dependency."""
    return {"id": uuid4()}


@pytest.fixture
def api(client: TestClient, quiz_service, caller):
    app = client.app
    app.state.quiz_service = quiz_service
    app.dependency_overrides[get_current_user] = lambda: CurrentUserResponse(
        id=caller["id"]
    )
    yield client
    del app.state.quiz_service


@pytest.fixture
def setup(catalog, quiz_store, enroll, caller):
    course = catalog.add_course(title="Pharmacology 101")
    enroll(caller["id"], course)
    quiz = quiz_store.add_quiz(course.course_id, title="Dosage Quiz")
    questions = [
        quiz_store.add_question(quiz, points=Decimal(10)),
        quiz_store.add_question(quiz, points=Decimal(20)),
        quiz_store.add_question(quiz, points=Decimal(30)),
    ]
    return course, quiz, questions


def test_full_attempt(api: TestClient, setup) -> None:
    _, quiz, questions = setup

    started = api.post(f"/v1/quizzes/{quiz.quiz_id}/attempts")
    assert started.status_code == 201
    body = started.json()
    assert body["attempt_number"] == 1
    assert all(q["correct_answer"] is None for q in body["questions"])
    submission_id = body["submission_id"]

    for question, key in zip(questions, ["A", "B", "A"], strict=True):
        response = api.put(
            f"/v1/quizzes/submissions/{submission_id}/answers",
            json={"question_id": str(question.question_id), "answer": key},
        )
        assert response.status_code == 200

    submitted = api.post(f"/v1/quizzes/submissions/{submission_id}/submit")
    assert submitted.status_code == 200
    result = submitted.json()
    assert Decimal(str(result["score"])) == Decimal("66.67")
    assert result["is_passed"] is False
    assert result["achievements"] == [{"type": "quiz_completed", "title": "Dosage Quiz"}]

    again = api.post(f"/v1/quizzes/submissions/{submission_id}/submit")
    assert again.status_code == 400
    assert again.json()["code"] == "already_submitted"


def test_attempt_limit(api: TestClient, setup) -> None:
    _, quiz, _ = setup
    quiz.max_attempts = 1

    assert api.post(f"/v1/quizzes/{quiz.quiz_id}/attempts").status_code == 201
    response = api.post(f"/v1/quizzes/{quiz.quiz_id}/attempts")

    assert response.status_code == 400
    assert response.json()["code"] == "max_attempts_reached"


def test_unknown_quiz(api: TestClient) -> None:
    response = api.get(f"/v1/quizzes/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["code"] == "quiz_not_found"


def test_list_attempts(api: TestClient, setup) -> None:
    _, quiz, _ = setup
    api.post(f"/v1/quizzes/{quiz.quiz_id}/attempts")
    api.post(f"/v1/quizzes/{quiz.quiz_id}/attempts")

    data = api.get(f"/v1/quizzes/{quiz.quiz_id}/attempts").json()

    assert data["total"] == 2
    assert [a["attempt_number"] for a in data["items"]] == [2, 1]


def test_grading_requires_instructor(api: TestClient, setup) -> None:
    _, quiz, questions = setup
    submission_id = api.post(f"/v1/quizzes/{quiz.quiz_id}/attempts").json()[
        "submission_id"
    ]
    answer = api.put(
        f"/v1/quizzes/submissions/{submission_id}/answers",
        json={"question_id": str(questions[0].question_id), "answer": "A"},
    ).json()

    response = api.put(
        f"/v1/quizzes/submissions/{submission_id}/answers/{answer['answer_id']}/grade",
        json={"points_earned": "5"},
    )

    assert response.status_code == 403
    assert response.json()["code"] == "not_instructor"


def test_instructor_grades_answer(api: TestClient, setup, caller) -> None:
    course, quiz, questions = setup
    submission_id = api.post(f"/v1/quizzes/{quiz.quiz_id}/attempts").json()[
        "submission_id"
    ]
    answer = api.put(
        f"/v1/quizzes/submissions/{submission_id}/answers",
        json={"question_id": str(questions[0].question_id), "answer": "B"},
    ).json()
    api.post(f"/v1/quizzes/submissions/{submission_id}/submit")

    caller["id"] = course.instructor_id
    response = api.put(
        f"/v1/quizzes/submissions/{submission_id}/answers/{answer['answer_id']}/grade",
        json={"points_earned": "10", "feedback": "Accepted alternative"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["answer"]["feedback"] == "Accepted alternative"
    assert Decimal(str(data["submission"]["score"])) == Decimal("16.67")
