"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: routes/pages.py – публичные страницы.

Назначение модуля:
- Главная страница, список работ с фильтром по категории и пагинацией, страница работы.
- Список тем месяца и страница темы.
- Статические страницы (о проекте, FAQ, условия, конфиденциальность) и форма обратной связи.
- Выдача объектов хранилища по публичному URL.
"""

import os

from flask import abort, current_app, flash, redirect, render_template, request, send_file, url_for
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Artwork, Contact, Theme
from models.contact import INQUIRY_TYPES
from utils.catalog import (
    artwork_page,
    artworks_with_counts,
    latest_theme,
    sorted_categories,
    split_themes,
    themes_newest_first,
)
from utils.i18n import normalize_language
from utils.interactions import has_liked, likes_count, list_comments
from utils.session import current_identity
from utils.storage import get_storage
from utils.upload_flow import delete_artwork
from utils.validators import normalize_email


def register_routes(app):
    @app.get("/")
    def index():
        return render_template(
            "index.html",
            theme=latest_theme(),
            latest_artworks=artworks_with_counts(limit=app.config["HOME_LATEST_ARTWORKS"]),
            categories=sorted_categories(),
        )

    @app.get("/artworks")
    def artworks_list():
        category_id = request.args.get("category", type=int)
        page = request.args.get("page", 1, type=int)
        items, page_info = artwork_page(category_id, page, app.config["ARTWORKS_PER_PAGE"])
        return render_template(
            "artworks/list.html",
            artworks=items,
            page_info=page_info,
            categories=sorted_categories(),
            selected_category=category_id,
        )

    @app.get("/artworks/<int:artwork_id>")
    def artwork_detail(artwork_id: int):
        artwork = db.session.get(Artwork, artwork_id)
        if artwork is None:
            abort(404)

        user = current_identity()
        return render_template(
            "artworks/detail.html",
            artwork=artwork,
            likes_count=likes_count(artwork_id),
            user_has_liked=has_liked(user.id if user else None, artwork_id),
            comments=list_comments(artwork_id),
            is_owner=bool(user and user.id == artwork.user_id),
        )

    @app.post("/artworks/<int:artwork_id>/delete")
    @login_required
    def artwork_delete(artwork_id: int):
        artwork = db.session.get(Artwork, artwork_id)
        if artwork is None:
            abort(404)

        user = current_identity()
        if artwork.user_id != user.id and not user.is_admin:
            abort(403)

        try:
            delete_artwork(artwork)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Ошибка удаления работы id=%s", artwork_id)
            flash("作品の削除に失敗しました。", "error")
            return redirect(url_for("artwork_detail", artwork_id=artwork_id))

        flash("作品を削除しました。", "success")
        return redirect(url_for("profile"))

    @app.get("/themes")
    def themes_list():
        current_theme, past_themes = split_themes(themes_newest_first())
        return render_template("themes/list.html", current_theme=current_theme, past_themes=past_themes)

    @app.get("/themes/<int:theme_id>")
    def theme_detail(theme_id: int):
        theme = db.session.get(Theme, theme_id)
        if theme is None:
            abort(404)
        return render_template(
            "themes/detail.html",
            theme=theme,
            artworks=artworks_with_counts(theme_id=theme_id),
        )

    @app.get("/about")
    def about():
        return render_template("pages/about.html")

    @app.get("/faq")
    def faq():
        return render_template("pages/faq.html")

    @app.get("/terms")
    def terms():
        return render_template("pages/terms.html")

    @app.get("/privacy")
    def privacy():
        return render_template("pages/privacy.html")

    @app.route("/contact", methods=["GET", "POST"])
    def contact():
        user = current_identity()
        if request.method == "POST":
            name = (request.form.get("name") or "").strip()
            raw_email = (request.form.get("email") or "").strip()
            inquiry_type = (request.form.get("inquiry_type") or "general").strip()
            message = (request.form.get("message") or "").strip()

            if not name or not raw_email or not message:
                flash("すべての必須項目を入力してください。", "error")
                return render_template("pages/contact.html", inquiry_types=INQUIRY_TYPES), 400

            email = normalize_email(raw_email)
            if not email:
                flash("正しいメールアドレスを入力してください。", "error")
                return render_template("pages/contact.html", inquiry_types=INQUIRY_TYPES), 400

            if inquiry_type not in INQUIRY_TYPES:
                inquiry_type = "other"

            try:
                db.session.add(
                    Contact(
                        name=name,
                        email=email,
                        inquiry_type=inquiry_type,
                        message=message,
                        user_id=user.id if user else None,
                        status="new",
                    )
                )
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Ошибка сохранения обращения")
                flash("お問い合わせの送信に失敗しました。しばらくしてからもう一度お試しください。", "error")
                return render_template("pages/contact.html", inquiry_types=INQUIRY_TYPES), 500

            flash("お問い合わせを受け付けました。ありがとうございます。", "success")
            return redirect(url_for("contact"))

        return render_template("pages/contact.html", inquiry_types=INQUIRY_TYPES)

    @app.get("/storage/<bucket>/<path:object_path>")
    def storage_object(bucket: str, object_path: str):
        storage = get_storage()
        full_path = storage.locate(bucket, object_path)
        if full_path is None:
            abort(404)

        meta = storage.metadata(bucket, object_path)
        try:
            max_age = int(meta.get("cache_control") or app.config["STORAGE_CACHE_CONTROL"])
        except ValueError:
            max_age = 0
        return send_file(
            full_path,
            mimetype=meta.get("content_type"),
            max_age=max_age,
            download_name=os.path.basename(full_path),
        )

    @app.get("/lang/<code>")
    def set_language(code: str):
        response = redirect(request.referrer or url_for("index"))
        lang = normalize_language(code, app.config["SUPPORTED_LANGUAGES"])
        if lang:
            response.set_cookie(
                app.config["LANG_COOKIE_NAME"],
                lang,
                max_age=app.config["LANG_COOKIE_MAX_AGE"],
                secure=app.config["SESSION_COOKIE_SECURE"],
                httponly=False,
                samesite="Lax",
                path="/",
            )
        return response
