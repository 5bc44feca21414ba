"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: models/artwork.py – модель опубликованной работы.

Назначение модуля:
- Описание ORM-модели Artwork: изображение в хранилище и его метаданные.
- Связи с автором, категорией, (необязательной) темой, лайками и комментариями.
"""

from datetime import datetime

from extensions import db


class Artwork(db.Model):
    """Класс `Artwork` описывает одну загруженную работу."""
    __tablename__ = "artworks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=False)
    # Путь объекта в бакете нужен для компенсирующего удаления файла
    storage_path = db.Column(db.String(512), nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    theme_id = db.Column(db.Integer, db.ForeignKey("themes.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = db.relationship("User", back_populates="artworks")
    category = db.relationship("Category", back_populates="artworks")
    theme = db.relationship("Theme", back_populates="artworks")
    likes = db.relationship("Like", back_populates="artwork", cascade="all, delete-orphan", lazy=True)
    comments = db.relationship(
        "Comment",
        back_populates="artwork",
        cascade="all, delete-orphan",
        lazy=True,
    )
