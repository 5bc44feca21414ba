"""
Модуль: `utils/interactions.py`.
Назначение: Лайки и комментарии к работам.

После каждого переключения лайка счётчик перечитывается из базы, поэтому клиент
всегда получает согласованное с сервером состояние.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import change_feed, db
from models import Comment, Like

MAX_COMMENT_LENGTH = 1000


class InteractionError(Exception):
    """Ошибка проверки лайка/комментария с сообщением для пользователя."""


def likes_count(artwork_id: int) -> int:
    return Like.query.filter_by(artwork_id=artwork_id).count()


def has_liked(user_id: int | None, artwork_id: int) -> bool:
    if user_id is None:
        return False
    return Like.query.filter_by(user_id=user_id, artwork_id=artwork_id).first() is not None


def toggle_like(user_id: int, artwork_id: int) -> tuple[bool, int]:
    """Переключает лайк пользователя. Возвращает (liked, актуальное число лайков)."""
    existing = Like.query.filter_by(user_id=user_id, artwork_id=artwork_id).first()
    if existing is not None:
        db.session.delete(existing)
        db.session.commit()
        liked = False
    else:
        db.session.add(Like(user_id=user_id, artwork_id=artwork_id))
        try:
            db.session.commit()
        except IntegrityError:
            # Параллельный запрос успел поставить лайк первым
            db.session.rollback()
            current_app.logger.info("Повторный лайк user=%s artwork=%s", user_id, artwork_id)
        liked = True

    return liked, likes_count(artwork_id)


def list_comments(artwork_id: int) -> list[Comment]:
    return (
        Comment.query.filter_by(artwork_id=artwork_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


def post_comment(user_id: int, artwork_id: int, content: str | None) -> Comment:
    text = (content or "").strip()
    if not text:
        raise InteractionError("コメントを入力してください。")
    if len(text) > MAX_COMMENT_LENGTH:
        raise InteractionError(f"コメントは{MAX_COMMENT_LENGTH}文字以内で入力してください。")

    comment = Comment(user_id=user_id, artwork_id=artwork_id, content=text)
    db.session.add(comment)
    db.session.commit()

    change_feed.publish(artwork_id, "INSERT", comment.to_dict())
    return comment
