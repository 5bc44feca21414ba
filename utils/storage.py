"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: utils/storage.py – хранилище объектов с именованными бакетами.

Назначение модуля:
- Загрузка байтов в бакет с указанием Content-Type и Cache-Control.
- Формирование стабильного публичного URL объекта.
- Удаление объектов (компенсирующее действие и очистка «сирот»).

Объекты лежат в STORAGE_ROOT/<bucket>/<path>, метаданные – рядом в файле <path>.meta.json.
"""

import json
import os
from datetime import datetime

from flask import current_app

META_SUFFIX = ".meta.json"


class StorageError(Exception):
    """Ошибка хранилища; текст сообщения используется для сопоставления с пользовательскими сообщениями."""


class ObjectStorage:
    """Файловое хранилище объектов, повторяющее контракт bucket/upload/getPublicUrl."""

    def __init__(self, root: str, public_url: str, auto_create_buckets: bool = True):
        self.root = root
        self.public_url = public_url.rstrip("/")
        self.auto_create_buckets = auto_create_buckets

    def _bucket_dir(self, bucket: str, create: bool = False) -> str:
        bucket_dir = os.path.join(self.root, bucket)
        if not os.path.isdir(bucket_dir):
            if create and self.auto_create_buckets:
                os.makedirs(bucket_dir, exist_ok=True)
            else:
                raise StorageError(f"Bucket not found: {bucket}")
        return bucket_dir

    def _object_path(self, bucket: str, path: str, create: bool = False) -> str:
        bucket_dir = self._bucket_dir(bucket, create=create)
        full_path = os.path.normpath(os.path.join(bucket_dir, path))
        # Не выпускаем путь за пределы бакета
        if os.path.commonpath([os.path.abspath(bucket_dir), os.path.abspath(full_path)]) != os.path.abspath(bucket_dir):
            raise StorageError(f"Invalid object path: {path}")
        return full_path

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: str = "3600",
        upsert: bool = False,
    ) -> str:
        """Сохраняет объект и возвращает его путь внутри бакета."""
        full_path = self._object_path(bucket, path, create=True)
        if os.path.exists(full_path) and not upsert:
            raise StorageError(f"Duplicate: object already exists: {bucket}/{path}")

        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(data)
            with open(full_path + META_SUFFIX, "w", encoding="utf-8") as f:
                json.dump(
                    {
                        "content_type": content_type,
                        "cache_control": cache_control,
                        "size": len(data),
                        "created_at": datetime.utcnow().isoformat(),
                    },
                    f,
                )
        except PermissionError as e:
            raise StorageError(f"Unauthorized: cannot write {bucket}/{path}") from e
        except OSError as e:
            raise StorageError(f"Upload failed: {e}") from e

        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_url}/{bucket}/{path}"

    def path_from_public_url(self, bucket: str, url: str | None) -> str | None:
        prefix = f"{self.public_url}/{bucket}/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):]

    def metadata(self, bucket: str, path: str) -> dict:
        full_path = self._object_path(bucket, path)
        try:
            with open(full_path + META_SUFFIX, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError):
            return {}

    def locate(self, bucket: str, path: str) -> str | None:
        """Абсолютный путь к объекту или None, если объекта нет."""
        try:
            full_path = self._object_path(bucket, path)
        except StorageError:
            return None
        if not os.path.isfile(full_path) or full_path.endswith(META_SUFFIX):
            return None
        return os.path.abspath(full_path)

    def remove(self, bucket: str, paths: list[str]) -> int:
        removed = 0
        for path in paths:
            full_path = self._object_path(bucket, path)
            try:
                for candidate in (full_path, full_path + META_SUFFIX):
                    if os.path.exists(candidate):
                        os.remove(candidate)
                        if candidate == full_path:
                            removed += 1
            except PermissionError as e:
                raise StorageError(f"Unauthorized: cannot remove {bucket}/{path}") from e
            except OSError as e:
                raise StorageError(f"Remove failed: {e}") from e
        return removed

    def list_objects(self, bucket: str) -> list[tuple[str, datetime]]:
        """Список (путь, время изменения) всех объектов бакета."""
        try:
            bucket_dir = self._bucket_dir(bucket)
        except StorageError:
            return []

        objects = []
        for dirpath, _dirnames, filenames in os.walk(bucket_dir):
            for filename in filenames:
                if filename.endswith(META_SUFFIX):
                    continue
                full_path = os.path.join(dirpath, filename)
                relative = os.path.relpath(full_path, bucket_dir).replace(os.sep, "/")
                objects.append((relative, datetime.utcfromtimestamp(os.path.getmtime(full_path))))
        return objects


def get_storage() -> ObjectStorage:
    """Возвращает хранилище, зарегистрированное в фабрике приложения."""
    return current_app.extensions["object_storage"]
