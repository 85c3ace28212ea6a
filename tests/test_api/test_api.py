# tests/test_api/test_api.py
import pytest
from io import BytesIO
from unittest.mock import Mock

from fastapi.testclient import TestClient
from PIL import Image

from api.dependencies import get_image_store, get_isbndb_client
from api.main import app
from core.errors import RequestTimeoutError
from core.sa.database import get_db
from core.utils.http import IsbnDbClient
from core.utils.image import ImageStore
from core.visibility import Visibility

PROVIDER_RECORD = {
    "title": "Pride and Prejudice",
    "authors": ["Jane Austen"],
    "isbn": "0141439513",
    "isbn13": "9780141439518",
    "publisher": "Penguin Classics",
    "pages": 480,
}

@pytest.fixture
def isbndb():
    client = Mock(spec=IsbnDbClient)
    client.fetch_book.return_value = dict(PROVIDER_RECORD)
    return client

@pytest.fixture
def client(db_session, isbndb, tmp_path):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_isbndb_client] = lambda: isbndb
    app.dependency_overrides[get_image_store] = lambda: ImageStore(str(tmp_path), "/images")
    yield TestClient(app)
    app.dependency_overrides.clear()

def as_user(subject):
    return {"X-Subject-Id": subject}

ALICE = as_user("alice")
BOB = as_user("bob")

def test_root(client):
    assert client.get("/").status_code == 200

def test_sign_in_and_me(client):
    response = client.post("/users/sign-in", json={"name": "Carol", "email": "carol@example.com"}, headers=as_user("carol"))
    assert response.status_code == 200
    assert response.json()["subject_id"] == "carol"

    me = client.get("/users/me", headers=as_user("carol"))
    assert me.json()["name"] == "Carol"
    assert client.get("/users/me").status_code == 403

def test_error_body_shape(client):
    response = client.get("/books/999999")
    assert response.status_code == 404
    error = response.json()["error"]
    assert error["category"] == "not_found"
    assert error["retryable"] is False

def test_lookup(client, owner, isbndb):
    response = client.get("/books/lookup/978-0-14-143951-8", headers=ALICE)
    assert response.status_code == 200
    body = response.json()
    assert body["isbn13"] == "9780141439518"
    assert body["is_incomplete"] is True
    assert body["is_duplicate"] is False
    isbndb.fetch_book.assert_called_once_with("9780141439518")

def test_lookup_errors(client, isbndb):
    assert client.get("/books/lookup/12345").status_code == 400
    isbndb.fetch_book.assert_not_called()

    isbndb.fetch_book.side_effect = RequestTimeoutError("Metadata lookup timed out")
    response = client.get("/books/lookup/9780141439518")
    assert response.status_code == 504
    assert response.json()["error"]["retryable"] is True

def test_import_counts(client, owner, book_factory):
    book_factory(owner, 1, isbn13="9780141439518")
    rows = [
        {"title": "Pride and Prejudice", "authors": ["Jane Austen"], "isbn13": "9780141439518"},
        {"title": "Emma", "authors": ["Jane Austen"], "isbn13": "9780141439587"},
    ]
    response = client.post("/books/import", json={"books": rows}, headers=ALICE)
    assert response.status_code == 200
    body = response.json()
    assert (body["total"], body["created"], body["duplicates"], body["failed"]) == (2, 1, 1, 0)

    assert client.post("/books/import", json={"books": rows}).status_code == 403

def test_book_crud_and_visibility(client, owner, other_user):
    created = client.post("/books", json={
        "title": "Emma", "authors": ["Jane Austen"], "isbn13": "9780141439587", "visibility": "private",
    }, headers=ALICE)
    assert created.status_code == 201
    book_id = created.json()["id"]

    assert client.get(f"/books/{book_id}", headers=BOB).status_code == 404
    assert client.patch(f"/books/{book_id}", json={"title": "Mine"}, headers=BOB).status_code == 404

    duplicate = client.post("/books", json={"title": "Emma", "authors": ["Jane Austen"], "isbn13": "9780141439587"}, headers=ALICE)
    assert duplicate.status_code == 409

    assert client.put(f"/books/{book_id}/visibility", json={"visibility": "public"}, headers=ALICE).status_code == 200
    assert client.patch(f"/books/{book_id}", json={"title": "Mine"}, headers=BOB).status_code == 403
    assert client.patch(f"/books/{book_id}", json={"pages": 474}, headers=ALICE).json()["pages"] == 474

    listing = client.get("/books", params={"owner_id": owner.id}).json()
    assert listing["total"] == 1

    assert client.delete(f"/books/{book_id}", headers=ALICE).status_code == 204
    assert client.get(f"/books/{book_id}", headers=ALICE).status_code == 404

def test_manual_entry_validation(client, owner):
    response = client.post("/books", json={"title": "Emma", "authors": ["Jane Austen"], "isbn13": "9780141439588"}, headers=ALICE)
    assert response.status_code == 400
    assert "checksum" in response.json()["error"]["message"]

def test_reading_list_flow(client, owner, other_user, sample_books, book_factory):
    hidden = book_factory(owner, 9, Visibility.PRIVATE)
    created = client.post("/reading-lists", json={"title": "Classics", "visibility": "public"}, headers=ALICE)
    assert created.status_code == 201
    list_id = created.json()["id"]

    for book in sample_books[:3] + [hidden]:
        response = client.post(f"/reading-lists/{list_id}/entries", json={"book_id": book.id}, headers=ALICE)
        assert response.status_code == 200
    body = response.json()
    assert [e["position"] for e in body["entries"]] == [0, 1, 2, 3]
    version = body["version"]

    seen_by_bob = client.get(f"/reading-lists/{list_id}", headers=BOB).json()
    assert [e["book_id"] for e in seen_by_bob["entries"]] == [b.id for b in sample_books[:3]]
    assert seen_by_bob["permissions"]["can_edit"] is False

    order = [hidden.id] + [b.id for b in sample_books[:3]]
    reordered = client.put(f"/reading-lists/{list_id}/order", json={"book_ids": order, "expected_version": version}, headers=ALICE)
    assert reordered.status_code == 200
    assert [e["book_id"] for e in reordered.json()["entries"]] == order

    stale = client.put(f"/reading-lists/{list_id}/order", json={"book_ids": order[::-1], "expected_version": version}, headers=ALICE)
    assert stale.status_code == 409

    partial = client.put(f"/reading-lists/{list_id}/order", json={"book_ids": order[:2]}, headers=ALICE)
    assert partial.status_code == 400

    noted = client.put(f"/reading-lists/{list_id}/entries/{hidden.id}/note", json={"notes": "Reread"}, headers=ALICE)
    assert noted.json()["entries"][0]["notes"] == "Reread"

    removed = client.delete(f"/reading-lists/{list_id}/entries/{hidden.id}", headers=ALICE)
    assert [e["position"] for e in removed.json()["entries"]] == [0, 1, 2]

    assert client.post(f"/reading-lists/{list_id}/entries", json={"book_id": hidden.id}, headers=BOB).status_code == 403
    assert client.delete(f"/reading-lists/{list_id}", headers=ALICE).status_code == 204
    assert client.get(f"/reading-lists/{list_id}", headers=ALICE).status_code == 404

def test_private_list_hidden_from_others(client, owner, other_user):
    list_id = client.post("/reading-lists", json={"title": "Secret"}, headers=ALICE).json()["id"]
    assert client.get(f"/reading-lists/{list_id}", headers=BOB).status_code == 404
    assert client.get(f"/reading-lists/{list_id}").status_code == 404
    assert client.get(f"/users/{owner.id}/reading-lists", headers=BOB).json() == []
    assert len(client.get(f"/users/{owner.id}/reading-lists", headers=ALICE).json()) == 1

def test_home_and_admin_settings(client, owner, monkeypatch):
    assert client.get("/home").json()["status"] == "not_configured"

    assert client.put("/admin/settings", json={"default_user_subject_id": "alice"}, headers=ALICE).status_code == 403
    monkeypatch.setenv("ADMIN_SUBJECT_ID", "admin")
    response = client.put("/admin/settings", json={"default_user_subject_id": "alice"}, headers=as_user("admin"))
    assert response.status_code == 200
    assert response.json()["effective_subject_id"] == "alice"

    home = client.get("/home").json()
    assert home["status"] == "success"
    assert home["user"]["id"] == owner.id
    assert home["is_own_profile"] is False

    assert client.get("/home", headers=ALICE).json()["is_own_profile"] is True

def test_profile_image_upload(client, owner):
    buffer = BytesIO()
    Image.new("RGB", (4, 4), (10, 20, 30)).save(buffer, format="PNG")
    response = client.post("/users/me/image", files={"image": ("me.png", buffer.getvalue(), "image/png")}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["profile_image_url"].startswith(f"/images/profile-images/{owner.id}/")

    bad = client.post("/users/me/image", files={"image": ("me.txt", b"hello", "text/plain")}, headers=ALICE)
    assert bad.status_code == 400

def test_home_for_subject_without_user_record(client, owner, monkeypatch):
    monkeypatch.setenv("DEFAULT_USER_ID", "alice")
    assert client.get("/home").json()["status"] == "success"
    home = client.get("/home", headers=as_user("stranger")).json()
    assert home["status"] == "user_not_found"
    assert home["user"] is None

def test_bio(client, owner):
    response = client.put("/users/me/bio", json={"bio": " Mostly poetry. "}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["bio"] == "Mostly poetry."
    assert client.get(f"/users/{owner.id}").json()["bio"] == "Mostly poetry."

    too_long = client.put("/users/me/bio", json={"bio": "x" * 501}, headers=ALICE)
    assert too_long.status_code == 400
    assert too_long.json()["error"]["message"] == "Bio too long (501 characters). Maximum length is 500 characters"
    assert client.put("/users/me/bio", json={"bio": "hi"}).status_code == 403

def test_favorites_endpoints(client, owner, other_user, sample_books):
    assert client.get("/reading-lists/favorites", headers=ALICE).json() is None

    first, second = sample_books[0].id, sample_books[1].id
    response = client.put(f"/reading-lists/favorites/{first}", json={"position": 1}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["type"] == "FAVORITES_ALL"
    assert response.json()["visibility"] == "PRIVATE"
    client.put(f"/reading-lists/favorites/{second}", json={"position": 1}, headers=ALICE)

    favorites = client.get("/reading-lists/favorites", headers=ALICE).json()
    assert [e["book_id"] for e in favorites["entries"]] == [second, first]
    assert [e["position"] for e in favorites["entries"]] == [0, 1]

    assert client.put(f"/reading-lists/favorites/{first}", json={"position": 9}, headers=ALICE).status_code == 400
    assert client.put(f"/reading-lists/favorites/{first}", json={"position": 1}, headers=BOB).status_code == 403

    client.put(f"/reading-lists/favorites/{first}", json={"position": 1, "year": "2023"}, headers=ALICE)
    assert client.get("/reading-lists/favorites/years", headers=ALICE).json() == [2023]
    yearly = client.get("/reading-lists/favorites", params={"year": "2023"}, headers=ALICE).json()
    assert [e["book_id"] for e in yearly["entries"]] == [first]

    removed = client.delete(f"/reading-lists/favorites/{second}", headers=ALICE)
    assert [e["book_id"] for e in removed.json()["entries"]] == [first]
    assert client.delete(f"/reading-lists/favorites/{second}", headers=ALICE).status_code == 404

def test_filters_and_suggestions_hide_private_books(client, owner, book_factory):
    book_factory(owner, 90, title="Open Book", authors=["Pat Public"], subjects=["Essays"])
    book_factory(owner, 91, Visibility.PRIVATE, title="Private Papers", authors=["Pat Private"], subjects=["Letters"])

    public = client.get("/books/filters").json()
    assert public == {"authors": ["Pat Public"], "subjects": ["Essays"]}
    assert sorted(client.get("/books/filters", headers=ALICE).json()["authors"]) == ["Pat Private", "Pat Public"]

    suggestions = client.get("/books/suggestions", params={"q": "pat"})
    assert suggestions.headers["cache-control"] == "no-store"
    assert suggestions.json()["authors"] == ["Pat Public"]
    assert client.get("/books/suggestions", params={"q": "papers"}).json()["titles"] == []

    listed = client.get("/books", params=[("authors", "Pat Private"), ("authors", "Pat Public")]).json()
    assert [b["title"] for b in listed["items"]] == ["Open Book"]
    mine = client.get("/books", params={"subjects": "Letters"}, headers=ALICE).json()
    assert [b["title"] for b in mine["items"]] == ["Private Papers"]
