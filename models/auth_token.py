"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: models/auth_token.py – одноразовые токены подтверждения email и восстановления пароля.
"""

from datetime import datetime

from extensions import db


class AuthToken(db.Model):
    """Класс `AuthToken` хранит хеш одноразовой ссылки из письма."""
    __tablename__ = "auth_token"

    id = db.Column(db.Integer, primary_key=True)
    identity_id = db.Column(db.Integer, db.ForeignKey("auth_identity.id"), nullable=False, index=True)
    purpose = db.Column(db.String(20), nullable=False, index=True)  # signup | recovery
    token_hash = db.Column(db.String(64), unique=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    used_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    identity = db.relationship("AuthIdentity", back_populates="tokens")
