"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: routes/artworks.py – страница публикации новой работы.

Назначение модуля:
- Отображение формы с категориями, текущей темой месяца и счётчиком работ за сутки.
- Приём формы и файла, публикация работы и переход на её страницу.
"""

from flask import current_app, flash, redirect, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils.catalog import sorted_categories, theme_for_month
from utils.session import current_identity
from utils.storage import StorageError
from utils.upload_flow import UploadError, create_artwork, describe_upload_error, local_today, upload_form_state


def _render_upload_form(user_id: int, status: int = 200):
    today = local_today()
    current_theme = theme_for_month(today.year, today.month)
    selected_theme = request.values.get("theme", type=int) or request.values.get("theme_id", type=int)
    return (
        render_template(
            "artworks/upload.html",
            categories=sorted_categories(),
            current_theme=current_theme,
            selected_theme=selected_theme,
            form=request.form,
            **upload_form_state(user_id),
        ),
        status,
    )


def register_routes(app):
    @app.get("/artworks/upload")
    def artwork_upload():
        return _render_upload_form(current_identity().id)

    @app.post("/artworks/upload")
    def artwork_upload_submit():
        user = current_identity()
        try:
            artwork = create_artwork(user.id, request.files.get("image"), request.form)
        except UploadError as e:
            flash(str(e), "error")
            return _render_upload_form(user.id, status=400)
        except (StorageError, SQLAlchemyError) as e:
            db.session.rollback()
            current_app.logger.exception("Ошибка публикации работы пользователем id=%s", user.id)
            flash(describe_upload_error(e), "error")
            return _render_upload_form(user.id, status=500)

        flash("作品を投稿しました。", "success")
        return redirect(url_for("artwork_detail", artwork_id=artwork.id))
