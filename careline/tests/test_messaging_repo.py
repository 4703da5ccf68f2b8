from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import ProgrammingError

from careline.features.messaging import repo as messaging_repo


class _FakeResult:
    def __init__(self, *, scalar=None, rows=None, rowcount=0):
        self._scalar = scalar
        self._rows = rows or []
        self.rowcount = rowcount

    def scalar_one(self):
        return self._scalar

    def scalar_one_or_none(self):
        return self._scalar

    def scalars(self):
        return self

    def all(self):
        return list(self._rows)


class _FakeSavepoint:
    def __init__(self, session):
        self._session = session

    async def __aenter__(self):
        self._session.savepoints += 1
        return self

    async def __aexit__(self, exc_type, _exc, _tb):
        if exc_type is not None:
            self._session.rolled_back_savepoints += 1
        return False


class _FakeSession:
    def __init__(self, result=None, *, error=None):
        self.result = result or _FakeResult()
        self.error = error
        self.statements = []
        self.savepoints = 0
        self.rolled_back_savepoints = 0
        self.committed = False
        self.added = []
        self.flushed = False

    def add(self, obj):
        self.added.append(obj)

    async def flush(self):
        self.flushed = True

    def begin_nested(self):
        return _FakeSavepoint(self)

    async def execute(self, stmt):
        self.statements.append(stmt)
        if self.error is not None:
            raise self.error
        return self.result

    async def commit(self):
        self.committed = True


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_call_total_unread_count_runs_inside_savepoint():
    session = _FakeSession(_FakeResult(scalar=12))
    user_id = uuid4()

    total = asyncio.run(
        messaging_repo.call_total_unread_count(
            session,
            user_id=user_id,
            function_name="get_total_unread_count",
        )
    )

    assert total == 12
    assert session.savepoints == 1
    assert "get_total_unread_count(" in _sql(session.statements[0])


def test_call_total_unread_count_passes_null_through():
    session = _FakeSession(_FakeResult(scalar=None))

    total = asyncio.run(
        messaging_repo.call_total_unread_count(
            session,
            user_id=uuid4(),
            function_name="get_total_unread_count",
        )
    )

    assert total is None


def test_call_total_unread_count_rolls_back_savepoint_on_error():
    error = ProgrammingError("SELECT", {}, Exception("undefined function"))
    session = _FakeSession(error=error)

    with pytest.raises(ProgrammingError):
        asyncio.run(
            messaging_repo.call_total_unread_count(
                session,
                user_id=uuid4(),
                function_name="get_total_unread_count",
            )
        )

    assert session.rolled_back_savepoints == 1


def test_list_active_participations_filters_departed_members():
    conversation_id = uuid4()
    read_at = datetime(2026, 10, 1, tzinfo=timezone.utc)
    session = _FakeSession(_FakeResult(rows=[(conversation_id, read_at), (uuid4(), None)]))

    rows = asyncio.run(messaging_repo.list_active_participations(session, user_id=uuid4()))

    assert rows[0].conversation_id == conversation_id
    assert rows[0].last_read_at == read_at
    assert rows[1].last_read_at is None
    sql = _sql(session.statements[0])
    assert "conversation_participants.left_at IS NULL" in sql
    assert "conversation_participants.user_id =" in sql


def test_count_unread_messages_applies_all_unread_predicates():
    session = _FakeSession(_FakeResult(scalar=3))

    count = asyncio.run(
        messaging_repo.count_unread_messages(
            session,
            conversation_id=uuid4(),
            user_id=uuid4(),
            since=messaging_repo.UNREAD_EPOCH,
        )
    )

    assert count == 3
    sql = _sql(session.statements[0])
    assert "count(messages.id)" in sql
    assert "messages.created_at >" in sql
    assert "messages.sender_id IS NOT NULL" in sql
    assert "messages.sender_id !=" in sql
    assert "messages.is_deleted IS false" in sql


def test_count_unread_by_conversation_groups_active_participations():
    first, second = uuid4(), uuid4()
    session = _FakeSession(_FakeResult(rows=[(first, 2), (second, 0)]))

    counts = asyncio.run(
        messaging_repo.count_unread_by_conversation(
            session,
            user_id=uuid4(),
            conversation_ids=[first, second],
        )
    )

    assert [(item.conversation_id, item.unread_count) for item in counts] == [(first, 2), (second, 0)]
    sql = _sql(session.statements[0])
    assert "LEFT OUTER JOIN messages" in sql
    assert "coalesce(conversation_participants.last_read_at" in sql
    assert "GROUP BY conversation_participants.conversation_id" in sql
    assert "conversation_participants.conversation_id IN" in sql


def test_set_last_read_at_reports_whether_a_row_changed():
    session = _FakeSession(_FakeResult(rowcount=0))

    updated = asyncio.run(
        messaging_repo.set_last_read_at(
            session,
            conversation_id=uuid4(),
            user_id=uuid4(),
            read_at=datetime.now(timezone.utc),
        )
    )

    assert updated is False
    assert session.committed is True
    assert "UPDATE conversation_participants SET last_read_at" in _sql(session.statements[0])


def test_is_active_participant_ignores_departed_members():
    session = _FakeSession(_FakeResult(scalar=None))

    active = asyncio.run(
        messaging_repo.is_active_participant(session, conversation_id=uuid4(), user_id=uuid4())
    )

    assert active is False
    assert "conversation_participants.left_at IS NULL" in _sql(session.statements[0])


def test_list_messages_before_hides_deleted_and_fetches_one_extra_row():
    cursor = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
    session = _FakeSession(_FakeResult(rows=["newest", "older"]))

    rows = asyncio.run(
        messaging_repo.list_messages_before(
            session,
            conversation_id=uuid4(),
            before=cursor,
            limit=25,
        )
    )

    assert rows == ["newest", "older"]
    sql = _sql(session.statements[0])
    assert "messages.is_deleted IS false" in sql
    assert "messages.created_at <" in sql
    assert "ORDER BY messages.created_at DESC, messages.id DESC" in sql
    assert session.statements[0]._limit == 26


def test_list_messages_before_without_cursor_starts_at_newest():
    session = _FakeSession(_FakeResult(rows=[]))

    asyncio.run(
        messaging_repo.list_messages_before(
            session,
            conversation_id=uuid4(),
            before=None,
            limit=50,
        )
    )

    assert "messages.created_at <" not in _sql(session.statements[0])


def test_add_message_bumps_conversation_activity_without_committing():
    conversation_id, sender_id = uuid4(), uuid4()
    sent_at = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
    session = _FakeSession()

    message = asyncio.run(
        messaging_repo.add_message(
            session,
            conversation_id=conversation_id,
            sender_id=sender_id,
            content="Family arriving at 3pm",
            message_type="text",
            created_at=sent_at,
        )
    )

    assert session.added == [message]
    assert message.sender_id == sender_id
    assert message.created_at == sent_at
    assert session.flushed is True
    assert session.committed is False
    assert "UPDATE conversations SET last_message_at" in _sql(session.statements[0])


def test_list_active_member_ids_excludes_sender():
    member = uuid4()
    session = _FakeSession(_FakeResult(rows=[member]))

    ids = asyncio.run(
        messaging_repo.list_active_member_ids(
            session,
            conversation_id=uuid4(),
            exclude_user_id=uuid4(),
        )
    )

    assert ids == [member]
    sql = _sql(session.statements[0])
    assert "conversation_participants.left_at IS NULL" in sql
    assert "conversation_participants.user_id !=" in sql


def test_set_left_at_only_touches_active_participation():
    session = _FakeSession(_FakeResult(rowcount=1))

    updated = asyncio.run(
        messaging_repo.set_left_at(
            session,
            conversation_id=uuid4(),
            user_id=uuid4(),
            left_at=datetime.now(timezone.utc),
        )
    )

    assert updated is True
    assert session.committed is True
    sql = _sql(session.statements[0])
    assert "UPDATE conversation_participants SET left_at" in sql
    assert "conversation_participants.left_at IS NULL" in sql
