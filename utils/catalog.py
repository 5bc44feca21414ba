"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: utils/catalog.py – запросы для списков работ, тем и категорий.

Назначение модуля:
- Расчёт пагинации.
- Выборка работ вместе с автором, категорией, темой и счётчиками лайков/комментариев.
- Определение текущей темы и прошлых тем.
- Удаление категории только при отсутствии связанных работ.
"""

import math
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from extensions import db
from models import Artwork, Category, Comment, Like, Theme


class CategoryInUseError(Exception):
    """Категорию нельзя удалить: на неё ссылаются работы."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"このカテゴリーには{count}件の作品が関連付けられています。"
            "削除する前に作品のカテゴリーを変更してください。"
        )


@dataclass
class Page:
    page: int
    per_page: int
    total: int
    total_pages: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def pages(self) -> range:
        return range(1, self.total_pages + 1)


def paginate(total: int, page: int | None, per_page: int) -> Page:
    """Ограничивает номер страницы диапазоном [1, total_pages]."""
    total_pages = math.ceil(total / per_page) if total > 0 else 0
    current = page if page and page > 0 else 1
    if total_pages and current > total_pages:
        current = total_pages
    return Page(page=current, per_page=per_page, total=total, total_pages=total_pages)


def _likes_subquery():
    return (
        db.session.query(Like.artwork_id, func.count(Like.id).label("likes_count"))
        .group_by(Like.artwork_id)
        .subquery()
    )


def _comments_subquery():
    return (
        db.session.query(Comment.artwork_id, func.count(Comment.id).label("comments_count"))
        .group_by(Comment.artwork_id)
        .subquery()
    )


def artworks_with_counts(
    category_id: int | None = None,
    theme_id: int | None = None,
    user_id: int | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[dict]:
    """
    Работы (новые сначала) в виде словарей с ключами artwork, likes_count, comments_count.
    """
    likes_sq = _likes_subquery()
    comments_sq = _comments_subquery()
    query = (
        db.session.query(
            Artwork,
            func.coalesce(likes_sq.c.likes_count, 0),
            func.coalesce(comments_sq.c.comments_count, 0),
        )
        .outerjoin(likes_sq, likes_sq.c.artwork_id == Artwork.id)
        .outerjoin(comments_sq, comments_sq.c.artwork_id == Artwork.id)
        .options(
            joinedload(Artwork.user),
            joinedload(Artwork.category),
            joinedload(Artwork.theme),
        )
    )
    if category_id is not None:
        query = query.filter(Artwork.category_id == category_id)
    if theme_id is not None:
        query = query.filter(Artwork.theme_id == theme_id)
    if user_id is not None:
        query = query.filter(Artwork.user_id == user_id)

    query = query.order_by(Artwork.created_at.desc(), Artwork.id.desc()).offset(offset)
    if limit is not None:
        query = query.limit(limit)

    return [
        {"artwork": artwork, "likes_count": int(likes), "comments_count": int(comments)}
        for artwork, likes, comments in query.all()
    ]


def count_artworks(category_id: int | None = None) -> int:
    query = Artwork.query
    if category_id is not None:
        query = query.filter(Artwork.category_id == category_id)
    return query.count()


def artwork_page(category_id: int | None, page: int | None, per_page: int) -> tuple[list[dict], Page]:
    page_info = paginate(count_artworks(category_id), page, per_page)
    items = artworks_with_counts(category_id=category_id, limit=per_page, offset=page_info.offset)
    return items, page_info


def sorted_categories() -> list[Category]:
    return Category.query.order_by(Category.name).all()


def themes_newest_first() -> list[Theme]:
    return Theme.query.order_by(Theme.year.desc(), Theme.month.desc(), Theme.id.desc()).all()


def split_themes(themes: list[Theme]) -> tuple[Theme | None, list[Theme]]:
    """Первая тема списка (по убыванию года и месяца) считается текущей, остальные – прошлые."""
    if not themes:
        return None, []
    return themes[0], themes[1:]


def latest_theme() -> Theme | None:
    return Theme.query.order_by(Theme.year.desc(), Theme.month.desc(), Theme.id.desc()).first()


def theme_for_month(year: int, month: int) -> Theme | None:
    """Тема, назначенная на указанный месяц (при нескольких берётся последняя созданная)."""
    return (
        Theme.query.filter_by(year=year, month=month)
        .order_by(Theme.created_at.desc(), Theme.id.desc())
        .first()
    )


def delete_category(category: Category) -> None:
    """Удаляет категорию; проверка ссылок и удаление выполняются в одной транзакции."""
    referencing = Artwork.query.filter_by(category_id=category.id).count()
    if referencing > 0:
        db.session.rollback()
        raise CategoryInUseError(referencing)
    db.session.delete(category)
    db.session.commit()
