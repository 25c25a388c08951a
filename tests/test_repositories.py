import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from openmd.access import Visibility
from openmd.repositories import NoteRepository, ShareRepository, UserRepository
from openmd.repositories.users import UsernameTaken

from conftest import NOW


async def make_note(db, **overrides):
    fields = dict(title="Hello", content="# Hi", metadata={"source": "agent"}, visibility=Visibility.PUBLIC)
    fields.update(overrides)
    return await NoteRepository(db).create(**fields)


async def test_create_and_fetch_note(db_session):
    created = await make_note(db_session, author_token="tok-A", expires_at=NOW + timedelta(hours=1))

    fetched = await NoteRepository(db_session).get_by_id(created.id)
    assert fetched.title == "Hello"
    assert fetched.metadata == {"source": "agent"}
    assert fetched.visibility == Visibility.PUBLIC
    assert fetched.author_token == "tok-A"
    assert fetched.owner_user_id is None
    assert fetched.created_at is not None


async def test_missing_note(db_session):
    assert await NoteRepository(db_session).get_by_id(999) is None


async def test_update_only_touches_given_fields(db_session):
    notes = NoteRepository(db_session)
    created = await make_note(db_session)

    assert await notes.update(created.id, {"content": "changed", "metadata": {"v": 2}})
    fetched = await notes.get_by_id(created.id)
    assert fetched.content == "changed"
    assert fetched.metadata == {"v": 2}
    assert fetched.title == "Hello"


async def test_update_rejects_protected_fields(db_session):
    created = await make_note(db_session, author_token="tok-A")
    with pytest.raises(ValueError):
        await NoteRepository(db_session).update(created.id, {"author_token": "tok-B"})


async def test_update_missing_note(db_session):
    assert not await NoteRepository(db_session).update(999, {"title": "x"})


async def test_increment_views_counts_every_call(db_session):
    note = await make_note(db_session)
    shares = ShareRepository(db_session)
    share = await shares.create(note_id=note.id, share_code="code-1")
    assert share.views == 0

    for _ in range(3):
        await shares.increment_views(share.id)

    assert (await shares.get_by_code("code-1")).views == 3


async def test_concurrent_view_increments_are_not_lost(db_session):
    note = await make_note(db_session)
    share = await ShareRepository(db_session).create(note_id=note.id, share_code="code-1")

    # Separate sessions, as concurrent requests would have
    factory = async_sessionmaker(db_session.bind, class_=AsyncSession, expire_on_commit=False)

    async def view():
        async with factory() as session:
            await ShareRepository(session).increment_views(share.id)

    await asyncio.gather(*(view() for _ in range(5)))
    assert (await ShareRepository(db_session).get_by_id(share.id)).views == 5


async def test_deleting_note_cascades_to_shares(db_session):
    note = await make_note(db_session)
    shares = ShareRepository(db_session)
    share = await shares.create(note_id=note.id, share_code="code-1", password_hash="h")

    assert await NoteRepository(db_session).delete(note.id)
    assert await shares.get_by_id(share.id) is None
    assert not await shares.code_exists("code-1")


async def test_list_visible_and_owned(db_session):
    users = UserRepository(db_session)
    alice = await users.create(username="alice", email="alice@example.com", hashed_password="x")

    public = await make_note(db_session, title="public")
    private = await make_note(db_session, title="mine", visibility=Visibility.PRIVATE, user_id=alice.id)
    await make_note(db_session, title="locked", visibility=Visibility.PASSWORD, password_hash="h")

    notes = NoteRepository(db_session)
    assert [n.id for n in await notes.list_visible()] == [public.id]
    assert [n.id for n in await notes.list_visible(user_id=alice.id)] == [public.id]
    assert {n.id for n in await notes.list_visible(user_id=alice.id, include_own=True)} == {public.id, private.id}
    assert [n.id for n in await notes.list_owned(alice.id)] == [private.id]


async def test_duplicate_username(db_session):
    users = UserRepository(db_session)
    await users.create(username="alice", email="alice@example.com", hashed_password="x")
    with pytest.raises(UsernameTaken):
        await users.create(username="alice", email="other@example.com", hashed_password="x")


async def test_get_by_login_accepts_email(db_session):
    users = UserRepository(db_session)
    created = await users.create(username="alice", email="alice@example.com", hashed_password="x")

    assert (await users.get_by_login("alice@example.com")).id == created.id
    assert (await users.get_by_login("alice")).id == created.id
    assert await users.get_by_login("bob") is None


async def test_listings_skip_expired_notes(db_session):
    users = UserRepository(db_session)
    alice = await users.create(username="alice", email="alice@example.com", hashed_password="x")

    live = await make_note(db_session, title="live", user_id=alice.id)
    edge = await make_note(db_session, title="edge", user_id=alice.id, expires_at=NOW)
    await make_note(db_session, title="gone", user_id=alice.id, expires_at=NOW - timedelta(minutes=1))

    notes = NoteRepository(db_session)
    assert {n.id for n in await notes.list_visible(now=NOW)} == {live.id, edge.id}
    assert {n.id for n in await notes.list_owned(alice.id, now=NOW)} == {live.id, edge.id}
    # Without a reference time nothing is filtered
    assert len(await notes.list_owned(alice.id)) == 3
