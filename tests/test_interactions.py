"""Лайки и комментарии через JSON API."""

import pytest
from sqlalchemy.exc import IntegrityError

from extensions import change_feed, db
from models import Artwork, Comment, Like


@pytest.fixture
def artwork_id(make_user, make_artwork):
    owner_id = make_user("owner@example.com")
    return make_artwork(owner_id, title="山")


class TestLikes:
    def test_toggle_twice_restores_count(self, client, make_user, login, artwork_id):
        make_user()
        login()

        first = client.post(f"/api/artworks/{artwork_id}/like").get_json()
        assert first == {"success": True, "liked": True, "likes_count": 1}

        second = client.post(f"/api/artworks/{artwork_id}/like").get_json()
        assert second == {"success": True, "liked": False, "likes_count": 0}

    def test_count_reflects_all_users(self, client, make_user, login, artwork_id):
        make_user("a@example.com")
        make_user("b@example.com")
        login("a@example.com")
        client.post(f"/api/artworks/{artwork_id}/like")
        client.post("/auth/signout")
        login("b@example.com")

        payload = client.post(f"/api/artworks/{artwork_id}/like").get_json()
        assert payload["likes_count"] == 2

        state = client.get(f"/api/artworks/{artwork_id}/like").get_json()
        assert state == {"success": True, "liked": True, "likes_count": 2}

    def test_anonymous_like_is_refused(self, client, artwork_id):
        response = client.post(f"/api/artworks/{artwork_id}/like")
        assert response.status_code == 401
        assert response.get_json()["error"] == "いいねするにはログインが必要です。"

    def test_missing_artwork_returns_404(self, client, make_user, login):
        make_user()
        login()
        assert client.post("/api/artworks/999/like").status_code == 404

    def test_duplicate_like_row_is_rejected(self, app, make_user, artwork_id):
        user_id = make_user()
        with app.app_context():
            db.session.add(Like(user_id=user_id, artwork_id=artwork_id))
            db.session.commit()
            db.session.add(Like(user_id=user_id, artwork_id=artwork_id))
            with pytest.raises(IntegrityError):
                db.session.commit()
            db.session.rollback()


class TestComments:
    def test_whitespace_comment_is_rejected(self, app, client, make_user, login, artwork_id):
        make_user()
        login()
        response = client.post(f"/api/artworks/{artwork_id}/comments", json={"content": "   \n "})
        assert response.status_code == 400
        assert response.get_json()["error"] == "コメントを入力してください。"
        with app.app_context():
            assert Comment.query.count() == 0

    def test_comments_listed_newest_first(self, client, make_user, login, artwork_id):
        make_user()
        login()
        for text in ("一番目", "二番目", "三番目"):
            assert client.post(f"/api/artworks/{artwork_id}/comments", json={"content": text}).status_code == 201

        payload = client.get(f"/api/artworks/{artwork_id}/comments").get_json()
        assert [item["content"] for item in payload["comments"]] == ["三番目", "二番目", "一番目"]
        assert payload["comments"][0]["user"]["username"] == "user"

    def test_comment_is_trimmed_and_announced(self, client, make_user, login, artwork_id):
        make_user()
        login()
        channel = change_feed.subscribe(artwork_id)

        response = client.post(f"/api/artworks/{artwork_id}/comments", data={"content": "  見事です  "})
        assert response.status_code == 201
        assert response.get_json()["comment"]["content"] == "見事です"

        event = channel.get_nowait()
        assert event["type"] == "INSERT"
        assert event["artwork_id"] == artwork_id
        assert event["record"]["content"] == "見事です"

    def test_anonymous_comment_is_refused(self, client, artwork_id):
        response = client.post(f"/api/artworks/{artwork_id}/comments", json={"content": "こんにちは"})
        assert response.status_code == 401

    def test_too_long_comment_is_rejected(self, client, make_user, login, artwork_id):
        make_user()
        login()
        response = client.post(f"/api/artworks/{artwork_id}/comments", json={"content": "字" * 1001})
        assert response.status_code == 400


class TestDetailPage:
    def test_detail_shows_counts_and_comments(self, client, make_user, login, artwork_id):
        make_user()
        login()
        client.post(f"/api/artworks/{artwork_id}/like")
        client.post(f"/api/artworks/{artwork_id}/comments", json={"content": "素晴らしい"})

        body = client.get(f"/artworks/{artwork_id}").get_data(as_text=True)
        assert '<span id="like-count">1</span>' in body
        assert 'data-liked="true"' in body
        assert "素晴らしい" in body

    def test_unknown_artwork_is_404(self, client):
        assert client.get("/artworks/12345").status_code == 404

    def test_owner_can_delete_artwork(self, app, client, login, make_user, make_artwork):
        owner_id = make_user()
        artwork_id = make_artwork(owner_id)
        login()
        response = client.post(f"/artworks/{artwork_id}/delete")
        assert response.status_code == 302
        with app.app_context():
            assert db.session.get(Artwork, artwork_id) is None

    def test_other_user_cannot_delete_artwork(self, client, make_user, login, artwork_id):
        make_user()
        login()
        assert client.post(f"/artworks/{artwork_id}/delete").status_code == 403
