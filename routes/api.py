"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: routes/api.py – JSON-маршруты для интерактивных элементов страницы работы.

Назначение модуля:
- Переключение лайка с возвратом актуального счётчика.
- Список комментариев (новые сначала) и публикация комментария.
- Поток Server-Sent Events об изменениях комментариев работы.

Каждый открытый поток занимает поток-обработчик сервера, пока не истечёт COMMENT_STREAM_MAX_SECONDS;
запускать приложение нужно с многопоточным (или gevent) воркером.
"""

import queue
import time

from flask import Response, current_app, jsonify, request, stream_with_context
from sqlalchemy.exc import SQLAlchemyError

from extensions import change_feed, db
from models import Artwork
from utils.change_feed import format_sse
from utils.interactions import (
    InteractionError,
    has_liked,
    likes_count,
    list_comments,
    post_comment,
    toggle_like,
)
from utils.session import current_identity

STREAM_HEARTBEAT_SECONDS = 15
STREAM_RETRY_MILLISECONDS = 3000


def _api_error(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def _get_artwork_or_none(artwork_id: int) -> Artwork | None:
    return db.session.get(Artwork, artwork_id)


def register_routes(app):
    @app.post("/api/artworks/<int:artwork_id>/like")
    def api_toggle_like(artwork_id: int):
        user = current_identity()
        if user is None:
            return _api_error("いいねするにはログインが必要です。", 401)

        if _get_artwork_or_none(artwork_id) is None:
            return _api_error("作品が見つかりません。", 404)

        try:
            liked, count = toggle_like(user.id, artwork_id)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Ошибка переключения лайка artwork=%s", artwork_id)
            return _api_error("いいねの処理中にエラーが発生しました。", 500)

        return jsonify({"success": True, "liked": liked, "likes_count": count})

    @app.get("/api/artworks/<int:artwork_id>/like")
    def api_like_state(artwork_id: int):
        if _get_artwork_or_none(artwork_id) is None:
            return _api_error("作品が見つかりません。", 404)

        user = current_identity()
        return jsonify(
            {
                "success": True,
                "liked": has_liked(user.id if user else None, artwork_id),
                "likes_count": likes_count(artwork_id),
            }
        )

    @app.get("/api/artworks/<int:artwork_id>/comments")
    def api_list_comments(artwork_id: int):
        if _get_artwork_or_none(artwork_id) is None:
            return _api_error("作品が見つかりません。", 404)

        comments = [comment.to_dict() for comment in list_comments(artwork_id)]
        return jsonify({"success": True, "comments": comments})

    @app.post("/api/artworks/<int:artwork_id>/comments")
    def api_post_comment(artwork_id: int):
        user = current_identity()
        if user is None:
            return _api_error("コメントするにはログインが必要です。", 401)

        if _get_artwork_or_none(artwork_id) is None:
            return _api_error("作品が見つかりません。", 404)

        payload = request.get_json(silent=True) or request.form
        try:
            comment = post_comment(user.id, artwork_id, payload.get("content"))
        except InteractionError as e:
            return _api_error(str(e), 400)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Ошибка публикации комментария artwork=%s", artwork_id)
            return _api_error("コメントの投稿に失敗しました。", 500)

        return jsonify({"success": True, "comment": comment.to_dict()}), 201

    @app.get("/api/artworks/<int:artwork_id>/comments/stream")
    def api_comment_stream(artwork_id: int):
        if _get_artwork_or_none(artwork_id) is None:
            return _api_error("作品が見つかりません。", 404)

        channel = change_feed.subscribe(artwork_id)
        deadline = time.monotonic() + int(current_app.config.get("COMMENT_STREAM_MAX_SECONDS", 300))

        def events():
            try:
                yield f"retry: {STREAM_RETRY_MILLISECONDS}\n\n"
                while True:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    try:
                        event = channel.get(timeout=min(STREAM_HEARTBEAT_SECONDS, remaining))
                    except queue.Empty:
                        yield ": heartbeat\n\n"
                        continue
                    yield format_sse(event)
            finally:
                change_feed.unsubscribe(artwork_id, channel)

        response = Response(stream_with_context(events()), mimetype="text/event-stream")
        response.headers["Cache-Control"] = "no-cache"
        response.headers["X-Accel-Buffering"] = "no"
        return response
