"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: routes/admin.py – панель администратора.

Назначение модуля:
- Сводная статистика по пользователям, работам, комментариям и лайкам.
- Управление категориями (удаление запрещено, пока на категорию ссылаются работы).
- Управление темами месяца.
- Поиск пользователей и смена их роли.
"""

from functools import wraps

from flask import current_app, flash, redirect, render_template, request, url_for
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Artwork, Category, Comment, Like, Theme, User
from models.user import ROLES
from utils.catalog import CategoryInUseError, delete_category, paginate, themes_newest_first
from utils.session import current_identity
from utils.validators import validate_username

MIN_THEME_YEAR = 2000
MAX_THEME_YEAR = 2100


def admin_required(view):
    """Показывает панель «доступ запрещён», если роль профиля не admin."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user = current_identity()
        if user is None or not user.is_admin:
            return render_template("admin/access_denied.html"), 403
        return view(*args, **kwargs)

    return wrapper


def _parse_theme_form(form) -> tuple[dict | None, str | None]:
    title = (form.get("title") or "").strip()
    description = (form.get("description") or "").strip()
    month = form.get("month", type=int)
    year = form.get("year", type=int)

    if not title or not description:
        return None, "タイトルと説明を入力してください。"
    if month is None or not 1 <= month <= 12:
        return None, "月は1〜12の範囲で指定してください。"
    if year is None or not MIN_THEME_YEAR <= year <= MAX_THEME_YEAR:
        return None, f"年は{MIN_THEME_YEAR}〜{MAX_THEME_YEAR}の範囲で指定してください。"
    return {"title": title, "description": description, "month": month, "year": year}, None


def register_routes(app):
    @app.get("/admin")
    @admin_required
    def admin_dashboard():
        stats = {
            "users": User.query.count(),
            "artworks": Artwork.query.count(),
            "comments": Comment.query.count(),
            "likes": Like.query.count(),
        }
        return render_template("admin/dashboard.html", stats=stats)

    @app.route("/admin/categories", methods=["GET", "POST"])
    @admin_required
    def admin_categories():
        if request.method == "POST":
            name = (request.form.get("name") or "").strip()
            description = (request.form.get("description") or "").strip()
            if not name:
                flash("カテゴリー名を入力してください。", "error")
                return redirect(url_for("admin_categories"))

            try:
                db.session.add(Category(name=name, description=description or None))
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Ошибка создания категории %s", name)
                flash("カテゴリーの作成に失敗しました。", "error")
                return redirect(url_for("admin_categories"))

            current_app.logger.info("Создана категория %s", name)
            flash("カテゴリーを作成しました。", "success")
            return redirect(url_for("admin_categories"))

        categories = Category.query.order_by(Category.name).all()
        return render_template("admin/categories.html", categories=categories)

    @app.post("/admin/categories/<int:category_id>/update")
    @admin_required
    def admin_category_update(category_id: int):
        category = db.get_or_404(Category, category_id)
        name = (request.form.get("name") or "").strip()
        if not name:
            flash("カテゴリー名を入力してください。", "error")
            return redirect(url_for("admin_categories"))

        category.name = name
        category.description = (request.form.get("description") or "").strip() or None
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Ошибка обновления категории id=%s", category_id)
            flash("カテゴリーの更新に失敗しました。", "error")
            return redirect(url_for("admin_categories"))

        flash("カテゴリーを更新しました。", "success")
        return redirect(url_for("admin_categories"))

    @app.post("/admin/categories/<int:category_id>/delete")
    @admin_required
    def admin_category_delete(category_id: int):
        category = db.get_or_404(Category, category_id)
        try:
            delete_category(category)
        except CategoryInUseError as e:
            flash(str(e), "error")
            return redirect(url_for("admin_categories"))
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Ошибка удаления категории id=%s", category_id)
            flash("カテゴリーの削除に失敗しました。", "error")
            return redirect(url_for("admin_categories"))

        current_app.logger.info("Удалена категория id=%s", category_id)
        flash("カテゴリーを削除しました。", "success")
        return redirect(url_for("admin_categories"))

    @app.route("/admin/themes", methods=["GET", "POST"])
    @admin_required
    def admin_themes():
        if request.method == "POST":
            fields, error = _parse_theme_form(request.form)
            if error:
                flash(error, "error")
                return render_template("admin/themes.html", themes=themes_newest_first(), form=request.form), 400

            try:
                db.session.add(Theme(**fields))
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Ошибка создания темы")
                flash("お題の作成に失敗しました。", "error")
                return redirect(url_for("admin_themes"))

            flash("お題を作成しました。", "success")
            return redirect(url_for("admin_themes"))

        return render_template("admin/themes.html", themes=themes_newest_first(), form={})

    @app.route("/admin/themes/<int:theme_id>/edit", methods=["GET", "POST"])
    @admin_required
    def admin_theme_edit(theme_id: int):
        theme = db.get_or_404(Theme, theme_id)
        if request.method == "POST":
            fields, error = _parse_theme_form(request.form)
            if error:
                flash(error, "error")
                return render_template("admin/theme_edit.html", theme=theme), 400

            for key, value in fields.items():
                setattr(theme, key, value)
            try:
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Ошибка обновления темы id=%s", theme_id)
                flash("お題の更新に失敗しました。", "error")
                return render_template("admin/theme_edit.html", theme=theme), 500

            flash("お題を更新しました。", "success")
            return redirect(url_for("admin_themes"))

        return render_template("admin/theme_edit.html", theme=theme)

    @app.post("/admin/themes/<int:theme_id>/delete")
    @admin_required
    def admin_theme_delete(theme_id: int):
        theme = db.get_or_404(Theme, theme_id)
        try:
            # Работы остаются, теряя ссылку на тему
            Artwork.query.filter_by(theme_id=theme.id).update({Artwork.theme_id: None}, synchronize_session=False)
            db.session.delete(theme)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Ошибка удаления темы id=%s", theme_id)
            flash("お題の削除に失敗しました。", "error")
            return redirect(url_for("admin_themes"))

        flash("お題を削除しました。", "success")
        return redirect(url_for("admin_themes"))

    @app.get("/admin/users")
    @admin_required
    def admin_users():
        search = (request.args.get("q") or "").strip()
        page = request.args.get("page", 1, type=int)
        per_page = app.config["ADMIN_USERS_PER_PAGE"]

        query = User.query
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.username.ilike(pattern), User.email.ilike(pattern)))

        page_info = paginate(query.count(), page, per_page)
        users = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset(page_info.offset)
            .limit(per_page)
            .all()
        )
        return render_template(
            "admin/users.html",
            users=users,
            page_info=page_info,
            search=search,
            roles=ROLES,
        )

    @app.post("/admin/users/<int:user_id>/update")
    @admin_required
    def admin_user_update(user_id: int):
        user = db.get_or_404(User, user_id)
        role = (request.form.get("role") or "").strip()
        username = (request.form.get("username") or user.username).strip()

        username_error = validate_username(username)
        if username_error:
            flash(username_error, "error")
            return redirect(url_for("admin_users"))

        if role not in ROLES:
            flash("不正なロールです。", "error")
            return redirect(url_for("admin_users"))

        if user.id == current_identity().id and role != "admin":
            flash("自分自身の管理者権限は解除できません。", "error")
            return redirect(url_for("admin_users"))

        user.username = username
        user.role = role
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Ошибка смены роли пользователя id=%s", user_id)
            flash("ユーザー情報の更新に失敗しました。", "error")
            return redirect(url_for("admin_users"))

        current_app.logger.info("Роль пользователя id=%s изменена на %s", user_id, role)
        flash("ユーザー情報を更新しました。", "success")
        return redirect(url_for("admin_users"))
