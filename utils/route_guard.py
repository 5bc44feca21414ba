"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: utils/route_guard.py – проверка доступа к защищённым разделам до обработки запроса.

Назначение модуля:
- Определение защищённых префиксов путей (загрузка, профиль, администрирование).
- Перенаправление анонимного посетителя на вход с параметром redirect.
- Проверка роли администратора по профилю в таблице users.
- При любой ошибке определения сессии доступ запрещается (перенаправление на вход).
"""

from urllib.parse import urlencode

from flask import current_app, redirect, request
from flask_login import current_user

PROTECTED_PREFIXES = ("/artworks/upload", "/profile", "/admin")
ADMIN_PREFIX = "/admin"
SIGNIN_PATH = "/auth/signin"
HOME_PATH = "/"


def matches_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_protected(path: str) -> bool:
    return any(matches_prefix(path, prefix) for prefix in PROTECTED_PREFIXES)


def is_admin_path(path: str) -> bool:
    return matches_prefix(path, ADMIN_PREFIX)


def signin_url(target: str) -> str:
    return f"{SIGNIN_PATH}?{urlencode({'redirect': target})}"


def safe_redirect_target(target: str | None, default: str = HOME_PATH) -> str:
    """Разрешает переход только на локальные пути этого сайта."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return default
    return target


def _resolve_user():
    if not current_user or not current_user.is_authenticated:
        return None
    return current_user


def guard_request():
    """Хук before_request: None – пропустить запрос, иначе ответ-перенаправление."""
    path = request.path
    if not is_protected(path):
        return None

    try:
        user = _resolve_user()
        if user is None:
            return redirect(signin_url(path))
        if is_admin_path(path) and not user.is_admin:
            return redirect(HOME_PATH)
    except Exception:
        current_app.logger.exception("Ошибка проверки сессии для %s", path)
        return redirect(signin_url(path))

    return None


def register_route_guard(app) -> None:
    app.before_request(guard_request)
