"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: utils/upload_flow.py – публикация новой работы.

Назначение модуля:
- Подсчёт работ пользователя за текущие сутки и проверка дневного лимита.
- Проверка файла: наличие, размер, MIME-тип и реальный формат изображения.
- Загрузка файла в хранилище, получение публичного URL и создание записи Artwork.
- Компенсирующее удаление файла, если запись в базу не удалась.
"""

import uuid
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from PIL import Image, UnidentifiedImageError
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Artwork, Category, Theme
from utils.storage import StorageError, get_storage

PIL_FORMAT_TO_MIME = {"JPEG": "image/jpeg", "PNG": "image/png", "GIF": "image/gif"}

UPLOAD_ERROR_MESSAGES = (
    ("bucket not found", "ストレージのバケットが見つかりません。管理者にお問い合わせください。"),
    ("unauthorized", "アップロードする権限がありません。再度ログインしてください。"),
    ("row-level security", "作品を保存する権限がありません。再度ログインしてください。"),
)
GENERIC_UPLOAD_ERROR = "アップロード中にエラーが発生しました。しばらくしてからもう一度お試しください。"


class UploadError(Exception):
    """Ошибка проверки формы загрузки; сообщение показывается пользователю как есть."""


def describe_upload_error(error: Exception) -> str:
    """Сопоставляет текст ошибки хранилища/БД с понятным пользователю сообщением."""
    if isinstance(error, UploadError):
        return str(error)
    text = str(error).lower()
    for needle, message in UPLOAD_ERROR_MESSAGES:
        if needle in text:
            return message
    return GENERIC_UPLOAD_ERROR


def _upload_timezone():
    name = current_app.config.get("UPLOAD_DAY_TIMEZONE", "UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        current_app.logger.warning("Неизвестный часовой пояс %s, используется UTC", name)
        return timezone.utc


def local_today(now: datetime | None = None) -> date:
    """Текущая дата в UPLOAD_DAY_TIMEZONE; по ней же выбирается тема месяца."""
    tz = _upload_timezone()
    if now is None:
        return datetime.now(tz).date()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def start_of_upload_day(now: datetime | None = None) -> datetime:
    """
    Полночь текущих суток в UPLOAD_DAY_TIMEZONE, выраженная в наивном UTC.

    Граница суток определяется сервером, а не часами клиента.
    """
    local_midnight = datetime.combine(local_today(now), time.min, tzinfo=_upload_timezone())
    return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)


def count_uploads_today(user_id: int, now: datetime | None = None) -> int:
    return Artwork.query.filter(
        Artwork.user_id == user_id,
        Artwork.created_at >= start_of_upload_day(now),
    ).count()


def upload_form_state(user_id: int, now: datetime | None = None) -> dict:
    """Состояние страницы загрузки: сколько работ уже отправлено и доступна ли форма."""
    limit = int(current_app.config.get("DAILY_UPLOAD_LIMIT", 3))
    used = count_uploads_today(user_id, now)
    return {
        "daily_uploads": used,
        "daily_limit": limit,
        "limit_reached": used >= limit,
    }


def read_image_file(file_storage, max_bytes: int) -> tuple[bytes, str, str]:
    """
    Читает и проверяет файл изображения.

    Возвращает (данные, MIME-тип, расширение). Бросает UploadError при нарушении ограничений.
    """
    if file_storage is None or not file_storage.filename:
        raise UploadError("画像ファイルを選択してください。")

    allowed = current_app.config["ALLOWED_IMAGE_MIME_TYPES"]
    declared_type = (file_storage.mimetype or "").lower()
    if declared_type not in allowed:
        raise UploadError("JPEG、PNG、GIF形式の画像のみアップロードできます。")

    data = file_storage.read(max_bytes + 1)
    if not data:
        raise UploadError("画像ファイルが空です。")
    if len(data) > max_bytes:
        max_mb = max_bytes // (1024 * 1024)
        raise UploadError(f"ファイルサイズは{max_mb}MB以下にしてください。")

    file_storage.stream.seek(0)
    try:
        with Image.open(file_storage.stream) as image:
            image.verify()
            image_format = image.format
    except (UnidentifiedImageError, OSError):
        raise UploadError("画像ファイルとして読み込めませんでした。")
    finally:
        file_storage.stream.seek(0)

    actual_type = PIL_FORMAT_TO_MIME.get(image_format or "")
    if actual_type is None or actual_type not in allowed:
        raise UploadError("JPEG、PNG、GIF形式の画像のみアップロードできます。")

    return data, actual_type, allowed[actual_type]


def build_object_name(user_id: int, extension: str) -> str:
    """Имя объекта: <user_id>/<UTC-время>_<случайный суффикс>.<ext>."""
    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    return f"{user_id}/{timestamp}_{uuid.uuid4().hex[:12]}.{extension}"


def _parse_form(form) -> dict:
    title = (form.get("title") or "").strip()
    if not title:
        raise UploadError("タイトルを入力してください。")
    if len(title) > 200:
        raise UploadError("タイトルは200文字以内で入力してください。")

    category_id = form.get("category_id", type=int)
    if category_id is None or db.session.get(Category, category_id) is None:
        raise UploadError("カテゴリーを選択してください。")

    theme_id = form.get("theme_id", type=int)
    if theme_id is not None and db.session.get(Theme, theme_id) is None:
        raise UploadError("選択されたお題が見つかりません。")

    description = (form.get("description") or "").strip()
    return {
        "title": title,
        "description": description or None,
        "category_id": category_id,
        "theme_id": theme_id,
    }


def create_artwork(user_id: int, file_storage, form) -> Artwork:
    """
    Полный сценарий публикации работы.

    Шаги выполняются последовательно: проверка лимита и формы, загрузка файла,
    получение URL, вставка записи. Если вставка не удалась, загруженный файл удаляется.
    """
    if upload_form_state(user_id)["limit_reached"]:
        limit = current_app.config.get("DAILY_UPLOAD_LIMIT", 3)
        raise UploadError(f"1日の投稿制限（{limit}枚）に達しました。明日また投稿してください。")

    fields = _parse_form(form)
    data, content_type, extension = read_image_file(file_storage, current_app.config["MAX_ARTWORK_BYTES"])

    storage = get_storage()
    bucket = current_app.config["ARTWORK_BUCKET"]
    object_name = build_object_name(user_id, extension)
    storage.upload(
        bucket,
        object_name,
        data,
        content_type=content_type,
        cache_control=current_app.config["STORAGE_CACHE_CONTROL"],
        upsert=False,
    )
    public_url = storage.get_public_url(bucket, object_name)

    artwork = Artwork(
        user_id=user_id,
        image_url=public_url,
        storage_path=object_name,
        **fields,
    )
    try:
        db.session.add(artwork)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        try:
            storage.remove(bucket, [object_name])
        except StorageError:
            current_app.logger.exception("Не удалось удалить объект %s/%s после ошибки вставки", bucket, object_name)
        raise

    current_app.logger.info("Опубликована работа id=%s пользователем id=%s", artwork.id, user_id)
    return artwork


def delete_artwork(artwork: Artwork) -> None:
    """Удаляет работу вместе с лайками, комментариями и файлом в хранилище."""
    storage_path = artwork.storage_path
    db.session.delete(artwork)
    db.session.commit()

    if storage_path:
        try:
            get_storage().remove(current_app.config["ARTWORK_BUCKET"], [storage_path])
        except StorageError:
            current_app.logger.exception("Не удалось удалить файл работы %s", storage_path)
