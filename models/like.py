"""
Модуль: `models/like.py`.
Назначение: Отметка «нравится» – не более одной на пару (пользователь, работа).
"""

from datetime import datetime

from extensions import db


class Like(db.Model):
    __tablename__ = "likes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    artwork_id = db.Column(db.Integer, db.ForeignKey("artworks.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    artwork = db.relationship("Artwork", back_populates="likes")

    __table_args__ = (
        db.UniqueConstraint("user_id", "artwork_id", name="uq_likes_user_artwork"),
    )
