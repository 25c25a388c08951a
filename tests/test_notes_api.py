from datetime import timedelta

from conftest import API, create_note, fresh_session, register_and_login


def test_anonymous_public_note_roundtrip(client):
    note = create_note(client, metadata={"agent": "bot"})
    assert note["visibility"] == "public"
    assert note["user_id"] is None
    assert note["author_token"] is None

    resp = client.get(f"{API}/notes/{note['id']}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["content"] == "# Hello world"
    assert body["metadata"] == {"agent": "bot"}
    assert "password_hash" not in body


def test_missing_title_defaults_to_untitled(client):
    note = create_note(client, title=None)
    assert note["title"] == "Untitled"


def test_content_is_required(client):
    resp = client.post(f"{API}/notes", json={"title": "x"})
    assert resp.status_code == 422


def test_unknown_note_is_404(client):
    assert client.get(f"{API}/notes/999").status_code == 404


def test_private_note_requires_login_to_create(client):
    resp = client.post(f"{API}/notes", json={"content": "x", "visibility": "private"})
    assert resp.status_code == 401


def test_private_note_visible_only_to_owner(client):
    register_and_login(client)
    note = create_note(client, visibility="private")
    assert client.get(f"{API}/notes/{note['id']}").status_code == 200

    # A fresh session is a different actor
    with fresh_session(client) as stranger:
        assert stranger.get(f"{API}/notes/{note['id']}").status_code == 403


def test_password_note_requires_password_then_unlocks(client):
    resp = client.post(f"{API}/notes", json={"title": "Diary", "content": "secret", "visibility": "password"})
    assert resp.status_code == 422

    note = create_note(client, title="Diary", content="secret", visibility="password", password="abc")
    assert note["has_password"] is True

    locked = client.get(f"{API}/notes/{note['id']}").json()
    assert locked == {
        "id": note["id"],
        "title": "Diary",
        "requires_password": True,
        "message": "This note requires a password",
    }

    assert client.post(f"{API}/notes/{note['id']}/unlock", json={"password": "wrong"}).status_code == 401
    assert client.post(f"{API}/notes/{note['id']}/unlock", json={"password": "abc"}).status_code == 200
    assert client.post(f"{API}/notes/{note['id']}/unlock", json={"password": "abc"}).status_code == 200

    body = client.get(f"{API}/notes/{note['id']}").json()
    assert body["content"] == "secret"
    assert "requires_password" not in body


def test_unlock_is_per_session(client):
    note = create_note(client, visibility="password", password="abc")
    client.post(f"{API}/notes/{note['id']}/unlock", json={"password": "abc"})

    client.cookies.clear()
    assert client.get(f"{API}/notes/{note['id']}").json()["requires_password"] is True


def test_unlock_unknown_note(client):
    assert client.post(f"{API}/notes/999/unlock", json={"password": "abc"}).status_code == 404


def test_expired_note_is_gone(client, clock):
    note = create_note(client, expires_in=1)
    assert client.get(f"{API}/notes/{note['id']}").status_code == 200

    clock.advance(timedelta(hours=2))
    assert client.get(f"{API}/notes/{note['id']}").status_code == 410


def test_update_with_author_token(client):
    note = create_note(client, author_token="tok-A-0123456789")
    assert note["author_token"] == "tok-A-01..."

    resp = client.put(f"{API}/notes/{note['id']}", json={"content": "hijacked", "author_token": "tok-B"})
    assert resp.status_code == 403
    resp = client.put(f"{API}/notes/{note['id']}", json={"content": "hijacked"})
    assert resp.status_code == 403

    resp = client.put(f"{API}/notes/{note['id']}", json={"content": "edited", "author_token": "tok-A-0123456789"})
    assert resp.status_code == 200
    assert client.get(f"{API}/notes/{note['id']}").json()["content"] == "edited"

    resp = client.put(
        f"{API}/notes/{note['id']}",
        json={"title": "via header"},
        headers={"X-Author-Token": "tok-A-0123456789"},
    )
    assert resp.status_code == 200
    assert client.get(f"{API}/notes/{note['id']}").json()["title"] == "via header"


def test_token_supersedes_owner_session(client):
    register_and_login(client)
    note = create_note(client, author_token="tok-A")

    assert client.put(f"{API}/notes/{note['id']}", json={"content": "x"}).status_code == 403
    assert client.delete(f"{API}/notes/{note['id']}").status_code == 403
    assert client.delete(f"{API}/notes/{note['id']}", headers={"X-Author-Token": "tok-A"}).status_code == 200
    assert client.get(f"{API}/notes/{note['id']}").status_code == 404


def test_owned_note_requires_owner_session(client):
    register_and_login(client)
    note = create_note(client)

    with fresh_session(client) as stranger:
        assert stranger.put(f"{API}/notes/{note['id']}", json={"content": "x"}).status_code == 403
        assert stranger.delete(f"{API}/notes/{note['id']}").status_code == 403

    assert client.put(f"{API}/notes/{note['id']}", json={"content": "mine"}).status_code == 200


def test_ownerless_note_is_editable_by_anyone(client):
    note = create_note(client)

    client.cookies.clear()
    assert client.put(f"{API}/notes/{note['id']}", json={"title": "renamed"}).status_code == 200
    assert client.delete(f"{API}/notes/{note['id']}").status_code == 200


def test_update_or_delete_unknown_note(client):
    assert client.put(f"{API}/notes/999", json={"title": "x"}).status_code == 404
    assert client.delete(f"{API}/notes/999").status_code == 404


def test_list_notes(client):
    public = create_note(client, title="public")
    create_note(client, title="locked", visibility="password", password="abc")

    listed = client.get(f"{API}/notes").json()
    assert [n["id"] for n in listed] == [public["id"]]

    register_and_login(client)
    mine = create_note(client, title="mine", visibility="private")

    assert {n["id"] for n in client.get(f"{API}/notes").json()} == {public["id"]}
    with_private = client.get(f"{API}/notes", params={"include_private": "true"}).json()
    assert {n["id"] for n in with_private} == {public["id"], mine["id"]}

    private = client.get(f"{API}/notes/private").json()
    assert [n["id"] for n in private] == [mine["id"]]


def test_private_listing_requires_login(client):
    assert client.get(f"{API}/notes/private").status_code == 401


def test_same_token_comparison(client):
    first = create_note(client, author_token="shared-token-1")
    second = create_note(client, author_token="shared-token-1")
    third = create_note(client)

    body = client.get(f"{API}/notes/{first['id']}/same-token/{second['id']}").json()
    assert body["same_token"] is True
    assert body["note1"] == {"id": first["id"], "has_token": True, "token_prefix": "shared-t..."}

    body = client.get(f"{API}/notes/{first['id']}/same-token/{third['id']}").json()
    assert body["same_token"] is False
    assert body["note2"]["has_token"] is False

    assert client.get(f"{API}/notes/{first['id']}/same-token/999").status_code == 404


def test_expired_notes_drop_out_of_listings(client, clock):
    register_and_login(client)
    lasting = create_note(client, title="lasting")
    create_note(client, title="temporary", content="temporary secret", expires_in=1)
    create_note(client, title="private temporary", visibility="private", expires_in=1)

    clock.advance(timedelta(hours=2))

    listed = client.get(f"{API}/notes", params={"include_private": "true"}).json()
    assert [n["id"] for n in listed] == [lasting["id"]]
    assert "temporary secret" not in {n["content"] for n in listed}

    private = client.get(f"{API}/notes/private").json()
    assert [n["id"] for n in private] == [lasting["id"]]


def test_owner_listing_includes_password_notes(client):
    register_and_login(client)
    note = create_note(client, content="locked body", visibility="password", password="abc")

    private = client.get(f"{API}/notes/private").json()
    assert [(n["id"], n["content"]) for n in private] == [(note["id"], "locked body")]
