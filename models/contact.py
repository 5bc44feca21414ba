"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: models/contact.py – обращение через форму обратной связи.
"""

from datetime import datetime

from extensions import db

INQUIRY_TYPES = ("general", "bug", "feature", "account", "other")


class Contact(db.Model):
    """Класс `Contact` хранит входящее обращение; страницами не читается."""
    __tablename__ = "contacts"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    inquiry_type = db.Column(db.String(20), nullable=False)
    message = db.Column(db.Text, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="new")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
