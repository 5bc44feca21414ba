"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: config.py – конфигурация приложения.

Назначение модуля:
- Определение базовых параметров приложения Flask (секретный ключ, строка подключения к БД, ключи бэкенда).
- Настройка хранилища объектов (корневая папка, публичный URL, имена бакетов, Cache-Control).
- Ограничения загрузки работ: размер, MIME-типы, дневной лимит и часовой пояс границы суток.
"""

import os
import warnings

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env(name: str, default: str = "") -> str:
    """Строковое значение переменной окружения без пробелов по краям."""
    return os.environ.get(name, default).strip()


def _env_flag(name: str, default: bool = False) -> bool:
    if name not in os.environ:
        return default
    return _env(name).lower() in TRUE_VALUES


def _env_number(name: str, default: int, minimum: int | None = None) -> int:
    """Целое из окружения; при ошибке разбора или выходе за минимум берётся default."""
    try:
        value = int(_env(name, str(default)))
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _env_csv(name: str, default: tuple[str, ...] = ()) -> list[str]:
    raw = os.environ.get(name)
    if raw is None:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def _running_in_production() -> bool:
    return _env("FLASK_ENV").lower() == "production"


def _secret_key(production: bool) -> str:
    key = _env("SECRET_KEY")
    if key:
        return key
    if production:
        raise RuntimeError("SECRET_KEY must be set when FLASK_ENV=production.")
    warnings.warn("SECRET_KEY is not set; falling back to a development key.", RuntimeWarning, stacklevel=2)
    return "shodo-dev-only-secret"


class Config:
    """Базовая конфигурация приложения."""

    _PRODUCTION = _running_in_production()

    SECRET_KEY = _secret_key(_PRODUCTION)
    LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper() or "INFO"

    # Бэкенд: база данных и ключи доступа
    SQLALCHEMY_DATABASE_URI = _env("DATABASE_URL") or "sqlite:///shodo.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BACKEND_URL = _env("BACKEND_URL")
    ANON_KEY = _env("ANON_KEY")
    # Привилегированный ключ используется только на сервере (удаление учётной записи)
    SERVICE_ROLE_KEY = _env("SERVICE_ROLE_KEY")

    # Cookies сессии и «запомнить меня» настраиваются одинаково
    SESSION_COOKIE_SECURE = REMEMBER_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", _PRODUCTION)
    SESSION_COOKIE_HTTPONLY = REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = REMEMBER_COOKIE_SAMESITE = _env("SESSION_COOKIE_SAMESITE", "Lax")

    CSRF_ENABLED = _env_flag("CSRF_ENABLED", True)
    RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", True)

    CORS_ENABLED = _env_flag("CORS_ENABLED")
    CORS_ORIGINS = _env_csv("CORS_ORIGINS", ("http://127.0.0.1:5000", "http://localhost:5000"))

    # Хранилище объектов
    STORAGE_ROOT = _env("STORAGE_ROOT") or "storage"
    STORAGE_PUBLIC_URL = _env("STORAGE_PUBLIC_URL", "/storage").rstrip("/")
    STORAGE_CACHE_CONTROL = _env("STORAGE_CACHE_CONTROL") or "3600"
    STORAGE_AUTO_CREATE_BUCKETS = _env_flag("STORAGE_AUTO_CREATE_BUCKETS", True)
    ARTWORK_BUCKET = _env("ARTWORK_BUCKET") or "artworks"
    AVATAR_BUCKET = _env("AVATAR_BUCKET") or "avatars"
    ORPHAN_GRACE_HOURS = _env_number("ORPHAN_GRACE_HOURS", 24, minimum=1)

    # Загрузка работ
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
    MAX_ARTWORK_BYTES = _env_number("MAX_ARTWORK_BYTES", 5 * 1024 * 1024, minimum=1)
    MAX_AVATAR_BYTES = _env_number("MAX_AVATAR_BYTES", 2 * 1024 * 1024, minimum=1)
    ALLOWED_IMAGE_MIME_TYPES = {
        "image/jpeg": "jpg",
        "image/png": "png",
        "image/gif": "gif",
    }
    DAILY_UPLOAD_LIMIT = _env_number("DAILY_UPLOAD_LIMIT", 3, minimum=1)
    UPLOAD_DAY_TIMEZONE = _env("UPLOAD_DAY_TIMEZONE") or "UTC"

    # Списки и пагинация
    ARTWORKS_PER_PAGE = _env_number("ARTWORKS_PER_PAGE", 12, minimum=1)
    HOME_LATEST_ARTWORKS = _env_number("HOME_LATEST_ARTWORKS", 6, minimum=1)
    ADMIN_USERS_PER_PAGE = _env_number("ADMIN_USERS_PER_PAGE", 10, minimum=1)

    # Поток комментариев закрывается по истечении срока, EventSource переподключается сам
    COMMENT_STREAM_MAX_SECONDS = _env_number("COMMENT_STREAM_MAX_SECONDS", 300, minimum=1)

    # Аутентификация
    MIN_PASSWORD_LENGTH = _env_number("MIN_PASSWORD_LENGTH", 6, minimum=1)
    AUTH_TOKEN_TTL_MINUTES = _env_number("AUTH_TOKEN_TTL_MINUTES", 60, minimum=5)
    REQUIRE_EMAIL_CONFIRMATION = _env_flag("REQUIRE_EMAIL_CONFIRMATION", True)

    SMTP_HOST = _env("SMTP_HOST")
    SMTP_PORT = _env_number("SMTP_PORT", 587)
    SMTP_USER = _env("SMTP_USER")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD", "")
    SMTP_FROM = _env("SMTP_FROM")
    SMTP_USE_TLS = _env_flag("SMTP_USE_TLS", True)
    SMTP_USE_SSL = _env_flag("SMTP_USE_SSL")

    SUPPORTED_LANGUAGES = ("ja", "en")
    DEFAULT_LANGUAGE = _env("DEFAULT_LANGUAGE", "ja").lower() or "ja"
    LANG_COOKIE_NAME = _env("LANG_COOKIE_NAME") or "site_lang"
    LANG_COOKIE_MAX_AGE = _env_number("LANG_COOKIE_MAX_AGE", 365 * 24 * 60 * 60)
