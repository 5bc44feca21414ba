"""Удаление учётной записи и изменение профиля."""

import io
import os
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

import routes.profile as profile_routes
from extensions import db
from models import Artwork, AuthIdentity, Comment, Contact, Like, User
from utils.storage import get_storage


@pytest.fixture
def populated(app, make_user, make_artwork, png_bytes):
    """Пользователь, чья работа получила реакции, и второй пользователь с собственной работой."""
    leaving_id = make_user("leaving@example.com")
    staying_id = make_user("staying@example.com")

    with app.app_context():
        get_storage().upload("artworks", f"{leaving_id}/work.png", png_bytes(), content_type="image/png")

    leaving_artwork = make_artwork(leaving_id, title="去る作品", storage_path=f"{leaving_id}/work.png")
    staying_artwork = make_artwork(staying_id, title="残る作品")

    with app.app_context():
        db.session.add_all(
            [
                Like(user_id=staying_id, artwork_id=leaving_artwork),
                Comment(user_id=staying_id, artwork_id=leaving_artwork, content="良い"),
                Like(user_id=leaving_id, artwork_id=staying_artwork),
                Comment(user_id=leaving_id, artwork_id=staying_artwork, content="素敵"),
                Contact(name="去る人", email="leaving@example.com", inquiry_type="account", message="質問", user_id=leaving_id),
            ]
        )
        db.session.commit()

    return {
        "leaving_id": leaving_id,
        "staying_id": staying_id,
        "leaving_artwork": leaving_artwork,
        "staying_artwork": staying_artwork,
    }


class FailingCommitSession:
    def __init__(self, real):
        self._real = real

    def commit(self):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    def rollback(self):
        self._real.rollback()


def _post_avatar(client, data, username="書家"):
    return client.post(
        "/profile/edit",
        data={"username": username, "avatar": (io.BytesIO(data), "me.png", "image/png")},
        content_type="multipart/form-data",
    )


def _avatar_url(app, client, user_id, data):
    assert _post_avatar(client, data).status_code == 302
    with app.app_context():
        return db.session.get(User, user_id).avatar_url


def _stored_files(directory):
    return sum(
        1
        for _dirpath, _dirnames, filenames in os.walk(directory)
        for name in filenames
        if not name.endswith(".meta.json")
    )


class TestDeleteAccount:
    def test_delete_removes_all_user_data(self, app, client, login, populated, storage_dir):
        login("leaving@example.com")
        response = client.post("/profile/settings", data={"confirmation": "DELETE"})
        assert response.status_code == 302
        assert response.headers["Location"] == "/"

        with app.app_context():
            assert db.session.get(User, populated["leaving_id"]) is None
            assert db.session.get(AuthIdentity, populated["leaving_id"]) is None
            assert db.session.get(Artwork, populated["leaving_artwork"]) is None
            assert db.session.get(Artwork, populated["staying_artwork"]) is not None
            assert Like.query.count() == 0
            assert Comment.query.count() == 0
            assert Contact.query.one().user_id is None

        assert not os.path.exists(os.path.join(storage_dir, str(populated["leaving_id"]), "work.png"))
        assert client.get("/profile").status_code == 302

    def test_wrong_confirmation_keeps_account(self, app, client, login, populated):
        login("leaving@example.com")
        response = client.post("/profile/settings", data={"confirmation": "delete"})
        assert response.status_code == 400
        with app.app_context():
            assert db.session.get(User, populated["leaving_id"]) is not None

    def test_missing_service_key_blocks_deletion(self, app, client, login, populated):
        app.config["SERVICE_ROLE_KEY"] = ""
        login("leaving@example.com")
        response = client.post("/profile/settings", data={"confirmation": "DELETE"})
        assert response.status_code == 503
        with app.app_context():
            assert db.session.get(User, populated["leaving_id"]) is not None


class TestProfileEdit:
    def test_rename_and_upload_avatar(self, app, client, make_user, login, png_bytes):
        user_id = make_user()
        login()
        response = client.post(
            "/profile/edit",
            data={"username": "新しい名前", "avatar": (io.BytesIO(png_bytes()), "me.png", "image/png")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 302

        with app.app_context():
            user = db.session.get(User, user_id)
            assert user.username == "新しい名前"
            assert user.avatar_url.startswith(f"/storage/avatars/{user_id}/")
            avatar_url = user.avatar_url

        assert client.get(avatar_url).status_code == 200

    def test_invalid_username(self, client, make_user, login):
        make_user()
        login()
        response = client.post("/profile/edit", data={"username": "名" * 81})
        assert response.status_code == 400

    def test_single_character_username(self, app, client, make_user, login):
        user_id = make_user()
        login()
        response = client.post("/profile/edit", data={"username": "鏡"})
        assert response.status_code == 302
        with app.app_context():
            assert db.session.get(User, user_id).username == "鏡"

    def test_replacing_avatar_removes_previous_file(self, app, client, make_user, login, png_bytes):
        user_id = make_user()
        login()
        first = _avatar_url(app, client, user_id, png_bytes())
        second = _avatar_url(app, client, user_id, png_bytes(color=(255, 0, 0)))

        assert first != second
        assert client.get(first).status_code == 404
        assert client.get(second).status_code == 200

    def test_failed_commit_keeps_previous_avatar(self, app, client, make_user, login, png_bytes, monkeypatch):
        user_id = make_user()
        login()
        first = _avatar_url(app, client, user_id, png_bytes())

        monkeypatch.setattr(profile_routes, "db", SimpleNamespace(session=FailingCommitSession(db.session)))
        response = _post_avatar(client, png_bytes(color=(255, 0, 0)))
        assert response.status_code == 500

        with app.app_context():
            assert db.session.get(User, user_id).avatar_url == first
        assert client.get(first).status_code == 200
        assert _stored_files(os.path.join(app.config["STORAGE_ROOT"], app.config["AVATAR_BUCKET"])) == 1

    def test_profile_lists_own_artworks(self, client, make_user, login, make_artwork):
        user_id = make_user()
        other_id = make_user("other@example.com")
        make_artwork(user_id, title="自分の作品")
        make_artwork(other_id, title="他人の作品")
        login()

        body = client.get("/profile").get_data(as_text=True)
        assert "自分の作品" in body
        assert "他人の作品" not in body
