"""
Название: «Shodo»
Дата и номер версии: 2026-10-19 v1.0
Язык: Python (Flask)
Краткое описание: веб-приложение для публикации работ японской каллиграфии, тем месяца, лайков и комментариев
"""

import hmac
import logging
import os
import secrets

import click
from flask import Flask, flash, g, jsonify, redirect, render_template, request, session
from flask_babel import gettext as _

from config import Config
from extensions import babel, cors, db, login_manager
import models  # noqa: F401 - модели должны быть импортированы до db.create_all()
from routes.admin import register_routes as register_admin_routes
from routes.api import register_routes as register_api_routes
from routes.artworks import register_routes as register_artwork_routes
from routes.auth import register_routes as register_auth_routes
from routes.pages import register_routes as register_page_routes
from routes.profile import register_routes as register_profile_routes
from utils.cleanup import cleanup_orphaned_objects
from utils.i18n import resolve_request_language
from utils.rate_limit import InMemoryRateLimiter
from utils.route_guard import register_route_guard, signin_url
from utils.storage import ObjectStorage

CSRF_SESSION_KEY = "csrf_token"
CSRF_SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


def _is_api_request() -> bool:
    return request.path.startswith("/api/")


def _json_error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def _init_extensions(app: Flask) -> None:
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = "auth_signin"
    babel.init_app(app, locale_selector=lambda: getattr(g, "lang", app.config["DEFAULT_LANGUAGE"]))

    if app.config["CORS_ENABLED"]:
        cors.init_app(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    app.extensions["rate_limiter"] = InMemoryRateLimiter()
    app.extensions["object_storage"] = ObjectStorage(
        root=app.config["STORAGE_ROOT"],
        public_url=app.config["STORAGE_PUBLIC_URL"],
        auto_create_buckets=app.config["STORAGE_AUTO_CREATE_BUCKETS"],
    )


def _prepare_directories(app: Flask) -> None:
    os.makedirs(app.instance_path, exist_ok=True)
    if not app.config["STORAGE_AUTO_CREATE_BUCKETS"]:
        return
    for bucket in (app.config["ARTWORK_BUCKET"], app.config["AVATAR_BUCKET"]):
        os.makedirs(os.path.join(app.config["STORAGE_ROOT"], bucket), exist_ok=True)


def _csrf_token() -> str:
    token = session.get(CSRF_SESSION_KEY)
    if token is None:
        token = session[CSRF_SESSION_KEY] = secrets.token_urlsafe(32)
    return token


def _csrf_matches() -> bool:
    expected = session.get(CSRF_SESSION_KEY) or ""
    submitted = request.headers.get("X-CSRF-Token") or request.form.get(CSRF_SESSION_KEY) or ""
    return bool(expected and submitted) and hmac.compare_digest(expected, submitted)


def _install_request_hooks(app: Flask) -> None:
    @app.before_request
    def choose_language():
        g.lang = resolve_request_language(
            request,
            supported_languages=app.config["SUPPORTED_LANGUAGES"],
            cookie_name=app.config["LANG_COOKIE_NAME"],
            default_language=app.config["DEFAULT_LANGUAGE"],
        )

    @app.before_request
    def check_csrf():
        if not app.config.get("CSRF_ENABLED", True) or request.method in CSRF_SAFE_METHODS:
            return None
        if _csrf_matches():
            return None

        app.logger.warning("Отклонён запрос без корректного CSRF-токена: %s %s", request.method, request.path)
        if _is_api_request():
            return _json_error("CSRFトークンが無効です。ページを再読み込みしてからもう一度お試しください。", 400)
        flash("フォームの有効期限が切れました。ページを再読み込みしてください。", "error")
        return redirect(request.referrer or "/")

    @app.context_processor
    def template_globals():
        return {
            "csrf_token": _csrf_token(),
            "current_lang": getattr(g, "lang", app.config["DEFAULT_LANGUAGE"]),
            "supported_langs": app.config["SUPPORTED_LANGUAGES"],
            "js_i18n": {
                "login_required_like": _("いいねするにはログインが必要です。"),
                "generic_error": _("エラーが発生しました。"),
                "comment_failed": _("コメントの投稿に失敗しました。"),
                "no_comments": _("まだコメントはありません。"),
            },
        }

    @app.after_request
    def add_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


def _install_error_handlers(app: Flask) -> None:
    @login_manager.unauthorized_handler
    def unauthorized():
        if _is_api_request():
            return _json_error("ログインが必要です。", 401)
        flash("このページを表示するにはログインしてください。", "error")
        return redirect(signin_url(request.path))

    @app.errorhandler(404)
    def not_found(_error):
        if _is_api_request():
            return _json_error("見つかりません。", 404)
        return render_template("not_found.html"), 404

    @app.errorhandler(403)
    def forbidden(_error):
        if _is_api_request():
            return _json_error("権限がありません。", 403)
        return render_template("admin/access_denied.html"), 403


def _register_cli_commands(app: Flask) -> None:
    @app.cli.command("cleanup-storage")
    @click.option("--grace-hours", type=int, default=None, help="Минимальный возраст объекта в часах.")
    def cleanup_storage_command(grace_hours):
        """Удаляет файлы работ, на которые не ссылается ни одна запись."""
        removed = cleanup_orphaned_objects(grace_hours=grace_hours)
        click.echo(f"Removed {len(removed)} orphaned object(s)")

    @app.cli.command("create-admin")
    @click.argument("email")
    def create_admin_command(email):
        """Назначает роль admin существующему пользователю."""
        user = models.User.query.filter_by(email=email.strip().lower()).first()
        if user is None:
            raise click.ClickException(f"User not found: {email}")
        user.role = models.user.ROLE_ADMIN
        db.session.commit()
        click.echo(f"{email} is now an admin")


def create_app(overrides: dict | None = None) -> Flask:
    """Фабрика приложения; overrides перекрывает значения Config (используется в тестах)."""
    app = Flask(__name__)
    app.config.from_object(Config)
    app.config.update(overrides or {})
    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    _init_extensions(app)
    _prepare_directories(app)

    # Проверка доступа регистрируется первой, раньше остальных before_request-хуков
    register_route_guard(app)
    for register in (
        register_page_routes,
        register_auth_routes,
        register_artwork_routes,
        register_profile_routes,
        register_admin_routes,
        register_api_routes,
    ):
        register(app)

    _install_request_hooks(app)
    _install_error_handlers(app)
    _register_cli_commands(app)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    with app.app_context():
        # create_all не меняет существующие таблицы, только добавляет недостающие
        db.create_all()

    return app


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        # Файлы, оставшиеся после прерванных загрузок
        cleanup_orphaned_objects()
    app.run(debug=not Config._PRODUCTION)
