"""
Общая конфигурация pytest для «Shodo».

- Каждое приложение получает собственную in-memory SQLite и временный каталог хранилища.
- CSRF, rate limiting и подтверждение email отключены, чтобы тесты работали через форму входа.
"""

import io
import os
import tempfile

import pytest

# Переменные окружения должны быть заданы до импорта app: модуль создаёт приложение при импорте
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="shodo-storage-")

from PIL import Image

from app import create_app
from extensions import change_feed, db
from models import Artwork, Category, Theme
from utils.session import sign_up

DEFAULT_PASSWORD = "password123"


# ============================================================================
# APPLICATION FIXTURES
# ============================================================================

@pytest.fixture
def app(tmp_path):
    application = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "STORAGE_ROOT": str(tmp_path / "storage"),
            "CSRF_ENABLED": False,
            "RATE_LIMIT_ENABLED": False,
            "REQUIRE_EMAIL_CONFIRMATION": False,
            "SERVICE_ROLE_KEY": "test-service-role-key",
        }
    )
    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage_dir(app):
    return os.path.join(app.config["STORAGE_ROOT"], app.config["ARTWORK_BUCKET"])


# ============================================================================
# DATA FIXTURES
# ============================================================================

@pytest.fixture
def make_user(app):
    """Фабрика пользователей: возвращает id созданного профиля."""

    def _make_user(email="user@example.com", username=None, password=DEFAULT_PASSWORD, role=None):
        with app.test_request_context():
            user, _token = sign_up(email, password, username or email.split("@")[0])
            if role is not None:
                user.role = role
                db.session.commit()
            return user.id

    return _make_user


@pytest.fixture
def login(client):
    def _login(email="user@example.com", password=DEFAULT_PASSWORD):
        return client.post("/auth/signin", data={"email": email, "password": password})

    return _login


@pytest.fixture
def category(app):
    with app.app_context():
        item = Category(name="楷書", description="基本の書体")
        db.session.add(item)
        db.session.commit()
        return item.id


@pytest.fixture
def make_artwork(app, category):
    """Создаёт запись работы напрямую в базе (без файла в хранилище)."""

    def _make_artwork(user_id, title="作品", theme_id=None, category_id=None, created_at=None, storage_path=None):
        with app.app_context():
            artwork = Artwork(
                user_id=user_id,
                title=title,
                image_url=f"/storage/artworks/{storage_path or 'x.png'}",
                storage_path=storage_path,
                category_id=category_id or category,
                theme_id=theme_id,
            )
            if created_at is not None:
                artwork.created_at = created_at
            db.session.add(artwork)
            db.session.commit()
            return artwork.id

    return _make_artwork


@pytest.fixture
def make_theme(app):
    def _make_theme(title, year, month, description="説明"):
        with app.app_context():
            theme = Theme(title=title, description=description, year=year, month=month)
            db.session.add(theme)
            db.session.commit()
            return theme.id

    return _make_theme


@pytest.fixture
def png_bytes():
    def _png_bytes(size=(32, 32), color=(0, 0, 0)):
        buffer = io.BytesIO()
        Image.new("RGB", size, color).save(buffer, format="PNG")
        return buffer.getvalue()

    return _png_bytes


@pytest.fixture(autouse=True)
def isolated_change_feed():
    yield change_feed
    change_feed._subscribers.clear()

