"""Проверка доступа к защищённым разделам."""

import pytest

import utils.route_guard as route_guard
from models.user import ROLE_ADMIN


class TestAnonymousRedirects:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/admin", "/auth/signin?redirect=%2Fadmin"),
            ("/admin/users", "/auth/signin?redirect=%2Fadmin%2Fusers"),
            ("/profile", "/auth/signin?redirect=%2Fprofile"),
            ("/profile/edit", "/auth/signin?redirect=%2Fprofile%2Fedit"),
            ("/artworks/upload", "/auth/signin?redirect=%2Fartworks%2Fupload"),
        ],
    )
    def test_protected_path_redirects_to_signin(self, client, path, expected):
        response = client.get(path)
        assert response.status_code == 302
        assert response.headers["Location"] == expected

    @pytest.mark.parametrize("path", ["/", "/artworks", "/themes", "/about", "/auth/signin"])
    def test_public_paths_are_open(self, client, path):
        assert client.get(path).status_code == 200

    def test_session_error_fails_closed(self, client, make_user, login, monkeypatch):
        make_user()
        login()

        def broken_session():
            raise RuntimeError("session backend unavailable")

        monkeypatch.setattr(route_guard, "_resolve_user", broken_session)
        response = client.get("/profile")
        assert response.status_code == 302
        assert response.headers["Location"] == "/auth/signin?redirect=%2Fprofile"


class TestAuthenticatedAccess:
    def test_signin_returns_to_original_page(self, client, make_user):
        make_user()
        response = client.post(
            "/auth/signin?redirect=/artworks/upload",
            data={"email": "user@example.com", "password": "password123"},
        )
        assert response.status_code == 302
        assert response.headers["Location"] == "/artworks/upload"

    def test_signin_ignores_external_redirect(self, client, make_user):
        make_user()
        response = client.post(
            "/auth/signin",
            data={"email": "user@example.com", "password": "password123", "redirect": "//evil.example"},
        )
        assert response.headers["Location"] == "/"

    def test_non_admin_is_sent_home_from_admin(self, client, make_user, login):
        make_user()
        login()
        response = client.get("/admin/categories")
        assert response.status_code == 302
        assert response.headers["Location"] == "/"

    def test_user_pages_open_after_signin(self, client, make_user, login):
        make_user()
        login()
        assert client.get("/profile").status_code == 200
        assert client.get("/artworks/upload").status_code == 200

    def test_admin_reaches_dashboard(self, client, make_user, login):
        make_user("admin@example.com", role=ROLE_ADMIN)
        login("admin@example.com")
        response = client.get("/admin")
        assert response.status_code == 200
        assert "管理画面" in response.get_data(as_text=True)


class TestPathHelpers:
    def test_prefix_matches_whole_segments(self):
        assert route_guard.is_protected("/profile")
        assert route_guard.is_protected("/profile/settings")
        assert not route_guard.is_protected("/profiles")
        assert not route_guard.is_protected("/artworks/12")

    def test_safe_redirect_target(self):
        assert route_guard.safe_redirect_target("/themes") == "/themes"
        assert route_guard.safe_redirect_target("https://evil.example") == "/"
        assert route_guard.safe_redirect_target(None) == "/"
