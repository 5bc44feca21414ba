"""
Модуль: `models/comment.py`.
Назначение: Комментарий к работе. После публикации не редактируется.
"""

from datetime import datetime

from extensions import db


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    artwork_id = db.Column(db.Integer, db.ForeignKey("artworks.id"), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = db.relationship("User")
    artwork = db.relationship("Artwork", back_populates="comments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "artwork_id": self.artwork_id,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "user": {
                "id": self.user_id,
                "username": self.user.username if self.user else None,
                "avatar_url": self.user.avatar_url if self.user else None,
            },
        }
