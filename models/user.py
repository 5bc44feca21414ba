"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: models/user.py – публичный профиль пользователя.

Назначение модуля:
- Описание ORM-модели User (таблица users), зеркалирующей учётную запись аутентификации.
- Хранение имени, аватара и роли; роль профиля является единственным источником прав администратора.
"""

from datetime import datetime

from flask_login import UserMixin
from extensions import db

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(UserMixin, db.Model):
    """Класс `User` описывает профиль участника галереи."""
    __tablename__ = "users"

    id = db.Column(db.Integer, db.ForeignKey("auth_identity.id"), primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    username = db.Column(db.String(80), nullable=False, index=True)
    avatar_url = db.Column(db.String(512), nullable=True)
    role = db.Column(db.String(20), nullable=True, default=ROLE_USER)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    identity = db.relationship("AuthIdentity", lazy="joined")
    artworks = db.relationship("Artwork", back_populates="user", lazy=True)

    @property
    def effective_role(self) -> str:
        # NULL в колонке role трактуется как обычный пользователь
        return self.role or ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.effective_role == ROLE_ADMIN
