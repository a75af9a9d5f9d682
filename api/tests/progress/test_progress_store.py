"""Tests for the Cassandra progress stores with a mocked session."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from src.achievements import course_completed_key
from src.progress.models import Enrollment
from src.progress.store import DerivedProgressStore, ProgressStore


def lwt_result(applied: bool) -> Mock:
    result = Mock()
    result.was_applied = applied
    return result


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock()
    session.prepare = Mock(side_effect=lambda cql: Mock(query_string=cql))
    session.aexecute = AsyncMock()
    return session


@pytest.fixture
def store(mock_session):
    return ProgressStore(session=mock_session, keyspace="test_keyspace")


@pytest.fixture
def derived(mock_session):
    return DerivedProgressStore(session=mock_session, keyspace="test_keyspace")


@pytest.fixture
def now():
    return datetime.now(UTC)


@pytest.mark.asyncio
class TestProgressStore:
    async def test_statements_use_keyspace(self, mock_session, store):
        queries = [call.args[0] for call in mock_session.prepare.call_args_list]
        assert queries
        assert all("test_keyspace." in q for q in queries)

    async def test_get_enrollment_missing(self, mock_session, store):
        result = Mock()
        result.one.return_value = None
        mock_session.aexecute.return_value = result

        assert await store.get_enrollment(uuid4(), uuid4()) is None

    async def test_create_enrollment_writes_lookup(self, mock_session, store):
        mock_session.aexecute.side_effect = [lwt_result(True), Mock()]
        enrollment = Enrollment(course_id=uuid4(), user_id=uuid4())

        assert await store.create_enrollment(enrollment) is True
        assert mock_session.aexecute.await_count == 2

    async def test_create_enrollment_existing(self, mock_session, store):
        mock_session.aexecute.return_value = lwt_result(False)
        enrollment = Enrollment(course_id=uuid4(), user_id=uuid4())

        assert await store.create_enrollment(enrollment) is False
        assert mock_session.aexecute.await_count == 1


@pytest.mark.asyncio
class TestDerivedProgressStore:
    async def test_claim_new_module_row(self, mock_session, derived, now):
        mock_session.aexecute.return_value = lwt_result(True)

        won = await derived.claim_module_completion(uuid4(), uuid4(), uuid4(), now)

        assert won is True
        assert mock_session.aexecute.await_count == 1

    async def test_claim_open_module_row(self, mock_session, derived, now):
        mock_session.aexecute.side_effect = [lwt_result(False), lwt_result(True)]

        won = await derived.claim_module_completion(uuid4(), uuid4(), uuid4(), now)

        assert won is True
        assert mock_session.aexecute.await_count == 2

    async def test_claim_already_completed(self, mock_session, derived, now):
        mock_session.aexecute.side_effect = [lwt_result(False), lwt_result(False)]

        won = await derived.claim_module_completion(uuid4(), uuid4(), uuid4(), now)

        assert won is False

    async def test_conditional_update_guards_on_incomplete(self, mock_session, derived):
        queries = [call.args[0] for call in mock_session.prepare.call_args_list]
        assert any("IF is_completed = false" in q for q in queries)

    async def test_touch_existing_row(self, mock_session, derived, now):
        mock_session.aexecute.side_effect = [lwt_result(False), lwt_result(True)]

        await derived.touch_module(uuid4(), uuid4(), uuid4(), now)

        assert mock_session.aexecute.await_count == 2

    async def test_touch_first_access(self, mock_session, derived, now):
        mock_session.aexecute.return_value = lwt_result(True)

        await derived.touch_module(uuid4(), uuid4(), uuid4(), now)

        assert mock_session.aexecute.await_count == 1

    async def test_enrollment_progress_skipped_when_gone(self, mock_session, derived):
        mock_session.aexecute.return_value = lwt_result(False)

        applied = await derived.set_enrollment_progress(uuid4(), uuid4(), 50, None)

        assert applied is False
        assert mock_session.aexecute.await_count == 1

    async def test_enrollment_progress_updates_lookup(self, mock_session, derived, now):
        mock_session.aexecute.side_effect = [lwt_result(True), Mock()]
        user_id, course_id = uuid4(), uuid4()

        applied = await derived.set_enrollment_progress(user_id, course_id, 100, now)

        assert applied is True
        lookup_args = mock_session.aexecute.await_args_list[1].args[1]
        assert lookup_args == [100, now, user_id, course_id]

    async def test_claim_achievement(self, mock_session, derived, now):
        mock_session.aexecute.return_value = lwt_result(True)
        user_id, course_id = uuid4(), uuid4()

        assert await derived.claim_achievement(
            user_id, course_completed_key(course_id), now
        )
        args = mock_session.aexecute.await_args.args[1]
        assert args == [user_id, f"course_completed:{course_id}", now]
