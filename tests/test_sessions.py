import asyncio
import logging
from datetime import timedelta

import pytest

from auth.exceptions import StorageError
from auth.models import SessionMetadata


def test_generate_token_is_long_hex_and_unique(sessions):
    tokens = {sessions.generate_token() for _ in range(100)}

    assert len(tokens) == 100
    for token in tokens:
        assert len(token) == 64
        int(token, 16)


def test_expiry_defaults_to_seven_days(sessions, clock):
    assert sessions.expiry_from(clock()) == clock() + timedelta(days=7)


def test_is_expired_at_and_after_expiry(store, sessions, clock):
    user = store.add_user("user@example.com")
    session = store.add_session(user.id, "tok", clock() + timedelta(minutes=1))

    assert not sessions.is_expired(session)
    clock.advance(minutes=1)
    assert sessions.is_expired(session)
    clock.advance(days=1)
    assert sessions.is_expired(session)


@pytest.mark.asyncio
async def test_create_and_find_session(store, sessions, clock):
    user = store.add_user("user@example.com")
    token = sessions.generate_token()
    metadata = SessionMetadata(user_agent="pytest", ip_address="10.0.0.1")

    created = await sessions.create_session(user.id, token, sessions.expiry_from(clock()), metadata)
    found = await sessions.find_session_by_token(token)

    assert found == created
    assert found.user_agent == "pytest"
    assert found.ip_address == "10.0.0.1"
    assert found.last_used_at is None


@pytest.mark.asyncio
async def test_unknown_token_is_not_found(sessions):
    assert await sessions.find_session_by_token("never-issued") is None


@pytest.mark.asyncio
async def test_create_session_surfaces_storage_errors(store, sessions, clock):
    store.fail_on.add("create_session")

    with pytest.raises(StorageError):
        await sessions.create_session("user-1", "tok", clock())


@pytest.mark.asyncio
async def test_touch_last_used_runs_in_background(store, sessions, clock):
    user = store.add_user("user@example.com")
    session = store.add_session(user.id, "tok", clock() + timedelta(days=1))

    task = sessions.touch_last_used(session.id)
    assert isinstance(task, asyncio.Task)

    await sessions.wait_for_pending()

    assert store.touched == [session.id]
    assert store.sessions[session.id].last_used_at is not None


@pytest.mark.asyncio
async def test_touch_last_used_failure_is_logged_not_raised(store, sessions, caplog):
    store.fail_on.add("update_session_last_used")

    with caplog.at_level(logging.WARNING, logger="auth.sessions"):
        task = sessions.touch_last_used("session-1")
        await sessions.wait_for_pending()

    assert task.exception() is None
    assert "session-1" in caplog.text


@pytest.mark.asyncio
async def test_wait_for_pending_with_nothing_pending(sessions):
    await sessions.wait_for_pending()
