"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: models/identity.py – учётная запись сервиса аутентификации.

Назначение модуля:
- Хранение email и хеша пароля отдельно от публичного профиля.
- Отметка подтверждения email и времени последнего входа.
"""

from datetime import datetime

from extensions import db


class AuthIdentity(db.Model):
    """Учётная запись, по которой выполняется вход (аналог auth.users)."""
    __tablename__ = "auth_identity"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    email_confirmed_at = db.Column(db.DateTime, nullable=True)
    last_sign_in_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    tokens = db.relationship(
        "AuthToken",
        back_populates="identity",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def is_confirmed(self) -> bool:
        return self.email_confirmed_at is not None
