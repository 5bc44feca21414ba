"""
Модуль: `utils/cleanup.py`.
Назначение: Удаление «осиротевших» файлов работ, на которые не ссылается ни одна запись.

Такие файлы появляются, если процесс упал между загрузкой в хранилище и вставкой строки.
"""

from datetime import datetime, timedelta

from flask import current_app

from models import Artwork
from utils.storage import StorageError, get_storage


def cleanup_orphaned_objects(grace_hours: int | None = None, now: datetime | None = None) -> list[str]:
    """Удаляет объекты бакета работ старше grace_hours без ссылающейся записи. Возвращает удалённые пути."""
    if grace_hours is None:
        grace_hours = int(current_app.config.get("ORPHAN_GRACE_HOURS", 24))
    cutoff = (now or datetime.utcnow()) - timedelta(hours=grace_hours)

    bucket = current_app.config["ARTWORK_BUCKET"]
    storage = get_storage()
    referenced = {
        path for (path,) in Artwork.query.with_entities(Artwork.storage_path).all() if path
    }

    orphaned = [
        path
        for path, modified_at in storage.list_objects(bucket)
        if path not in referenced and modified_at < cutoff
    ]

    removed = []
    for path in orphaned:
        try:
            storage.remove(bucket, [path])
        except StorageError:
            current_app.logger.exception("Не удалось удалить осиротевший объект %s/%s", bucket, path)
            continue
        removed.append(path)

    if removed:
        current_app.logger.info("Удалено осиротевших объектов: %s", len(removed))
    return removed
