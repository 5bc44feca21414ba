"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: routes/profile.py – личный кабинет.

Назначение модуля:
- Просмотр собственного профиля и опубликованных работ.
- Изменение имени пользователя и аватара.
- Удаление учётной записи со всеми данными.
"""

from flask import current_app, flash, redirect, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils.catalog import artworks_with_counts
from utils.session import AuthError, current_identity, delete_account
from utils.storage import StorageError, get_storage
from utils.upload_flow import UploadError, build_object_name, describe_upload_error, read_image_file
from utils.validators import validate_username

DELETE_CONFIRMATION_WORD = "DELETE"


def _upload_avatar(user, file_storage) -> tuple[str, str]:
    """Загружает новый аватар; возвращает (путь объекта, публичный URL)."""
    data, content_type, extension = read_image_file(file_storage, current_app.config["MAX_AVATAR_BYTES"])
    storage = get_storage()
    bucket = current_app.config["AVATAR_BUCKET"]
    object_name = build_object_name(user.id, extension)
    storage.upload(
        bucket,
        object_name,
        data,
        content_type=content_type,
        cache_control=current_app.config["STORAGE_CACHE_CONTROL"],
        upsert=False,
    )
    return object_name, storage.get_public_url(bucket, object_name)


def _discard_avatar(object_name: str | None) -> None:
    if not object_name:
        return
    try:
        get_storage().remove(current_app.config["AVATAR_BUCKET"], [object_name])
    except StorageError:
        current_app.logger.exception("Не удалось удалить аватар %s", object_name)


def register_routes(app):
    @app.get("/profile")
    def profile():
        user = current_identity()
        return render_template(
            "profile/view.html",
            profile_user=user,
            artworks=artworks_with_counts(user_id=user.id),
        )

    @app.route("/profile/edit", methods=["GET", "POST"])
    def profile_edit():
        user = current_identity()
        if request.method == "POST":
            username = (request.form.get("username") or "").strip()
            username_error = validate_username(username)
            if username_error:
                flash(username_error, "error")
                return render_template("profile/edit.html", profile_user=user), 400

            avatar = request.files.get("avatar")
            previous_avatar = get_storage().path_from_public_url(current_app.config["AVATAR_BUCKET"], user.avatar_url)
            new_avatar = None
            try:
                if avatar is not None and avatar.filename:
                    new_avatar, user.avatar_url = _upload_avatar(user, avatar)
                user.username = username
                db.session.commit()
            except UploadError as e:
                db.session.rollback()
                flash(str(e), "error")
                return render_template("profile/edit.html", profile_user=user), 400
            except (StorageError, SQLAlchemyError) as e:
                db.session.rollback()
                # Запись осталась со старым аватаром, новый файл никому не нужен
                _discard_avatar(new_avatar)
                current_app.logger.exception("Ошибка обновления профиля id=%s", user.id)
                flash(describe_upload_error(e), "error")
                return render_template("profile/edit.html", profile_user=user), 500

            if new_avatar:
                _discard_avatar(previous_avatar)

            flash("プロフィールを更新しました。", "success")
            return redirect(url_for("profile"))

        return render_template("profile/edit.html", profile_user=user)

    @app.route("/profile/settings", methods=["GET", "POST"])
    def profile_settings():
        user = current_identity()
        if request.method == "POST":
            confirmation = (request.form.get("confirmation") or "").strip()
            if confirmation != DELETE_CONFIRMATION_WORD:
                flash(f"確認のため「{DELETE_CONFIRMATION_WORD}」と入力してください。", "error")
                return render_template("profile/settings.html", confirmation_word=DELETE_CONFIRMATION_WORD), 400

            try:
                delete_account(user)
            except AuthError as e:
                flash(str(e), "error")
                return render_template("profile/settings.html", confirmation_word=DELETE_CONFIRMATION_WORD), 503
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Ошибка удаления учётной записи id=%s", user.id)
                flash("アカウントの削除に失敗しました。しばらくしてからもう一度お試しください。", "error")
                return render_template("profile/settings.html", confirmation_word=DELETE_CONFIRMATION_WORD), 500

            flash("アカウントを削除しました。ご利用ありがとうございました。", "success")
            return redirect(url_for("index"))

        return render_template("profile/settings.html", confirmation_word=DELETE_CONFIRMATION_WORD)
